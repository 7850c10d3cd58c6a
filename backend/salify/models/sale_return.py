"""
销售退货模型
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from salify.db.base import Base

ADJUSTMENT_TYPES = ("deduct", "add")


class SaleReturn(Base):
    """退货单"""
    __tablename__ = "returns"

    id = Column(Integer, primary_key=True, index=True)
    numeric_return_id = Column(Integer, unique=True, nullable=False, index=True)

    original_sale_id = Column(Integer, ForeignKey("sales.id"), index=True)
    original_numeric_sale_id = Column(Integer)
    customer_id = Column(Integer, ForeignKey("customers.id"), index=True)
    customer_name = Column(String(100))

    return_date = Column(DateTime, default=datetime.utcnow, index=True)
    reason = Column(String(500), nullable=False)
    refund_method = Column(String(50))

    subtotal_returned_amount = Column(DECIMAL(12, 2), nullable=False)
    adjustment_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    adjustment_type = Column(String(10), nullable=False, default="deduct")
    net_refund_amount = Column(DECIMAL(12, 2), nullable=False)
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)

    original_sale = relationship("Sale", foreign_keys=[original_sale_id])
    items = relationship(
        "ReturnItem",
        back_populates="sale_return",
        cascade="all, delete-orphan",
        order_by="ReturnItem.id"
    )

    def __repr__(self):
        return f"<SaleReturn #{self.numeric_return_id}: {self.net_refund_amount}>"


class ReturnItem(Base):
    """退货明细

    stock_updated: True 已入库 / False 商品已不存在未入库 / None 手工商品
    """
    __tablename__ = "return_items"

    id = Column(Integer, primary_key=True, index=True)
    return_id = Column(Integer, ForeignKey("returns.id"), nullable=False, index=True)
    # 不加外键：商品删除后退货记录仍需保留原ID
    product_id = Column(Integer, index=True)
    product_code = Column(String(50))
    product_name = Column(String(200), nullable=False)
    quantity_returned = Column(Integer, nullable=False)
    original_sale_price = Column(DECIMAL(12, 2), nullable=False)
    return_reason = Column(String(500))
    item_subtotal = Column(DECIMAL(12, 2), nullable=False)
    stock_updated = Column(Boolean)

    sale_return = relationship("SaleReturn", back_populates="items")
