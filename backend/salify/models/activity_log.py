"""
操作日志模型 - 记录所有业务动作
与业务数据在同一事务中写入
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.dialects.sqlite import JSON
from salify.db.base import Base

ACTIVITY_TYPES = (
    "SALE",
    "INVENTORY_UPDATE",
    "NEW_CUSTOMER",
    "STOCK_ADD",
    "CUSTOMER_UPDATE",
    "CUSTOMER_DELETE",
    "PRODUCT_DELETE",
    "SETTINGS_UPDATE",
    "NEW_SUPPLIER",
    "SUPPLIER_UPDATE",
    "SUPPLIER_DELETE",
    "PURCHASE_RECORDED",
    "SUPPLIER_BALANCE_UPDATE",
    "BUSINESS_CASH_ADJUSTMENT",
    "QUOTATION_CREATED",
    "QUOTATION_UPDATED",
    "QUOTATION_STATUS_CHANGED",
    "RETURN_PROCESSED",
    "SHOP_NAME_UPDATE",
    "DATA_BACKUP",
    "DATA_RESTORE",
)


class ActivityLog(Base):
    """操作日志"""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)
    activity_type = Column(String(40), nullable=False, index=True, comment="日志类型")
    description = Column(String(1000), nullable=False, comment="描述")
    details = Column(JSON, comment="明细（JSON）")

    def __repr__(self):
        return f"<ActivityLog {self.activity_type}: {self.description[:40]}>"
