"""
应用设置模型 - 单行表（id=1）
保存店铺配置、各类单据的流水号计数器和当前经营现金
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Boolean, DateTime, DECIMAL
from sqlalchemy.dialects.sqlite import JSON
from salify.db.base import Base

SETTINGS_ROW_ID = 1

# 自动备份频率
BACKUP_FREQUENCIES = ("disabled", "daily", "weekly", "monthly")


class AppSettings(Base):
    """应用设置（单例）"""
    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True, default=SETTINGS_ROW_ID)

    # 库存预警
    low_stock_threshold = Column(Integer, nullable=False, default=20, comment="低库存阈值")

    # 单据流水号计数器（保存最后一次使用的编号）
    last_sale_numeric_id = Column(Integer, nullable=False, default=0)
    last_customer_numeric_id = Column(Integer, nullable=False, default=0)
    last_purchase_numeric_id = Column(Integer, nullable=False, default=0)
    last_quotation_numeric_id = Column(Integer, nullable=False, default=0)
    last_return_numeric_id = Column(Integer, nullable=False, default=0)
    last_supplier_payment_numeric_id = Column(Integer, nullable=False, default=0)

    # 店铺信息
    currency = Column(String(10), nullable=False, default="PKR", comment="币种代码")
    company_display_name = Column(String(100), nullable=False, default="Salify")
    has_completed_initial_setup = Column(Boolean, nullable=False, default=False)

    # 当前经营现金 = 所有资金流水金额之和（只允许通过 ledger 修改）
    current_business_cash = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))

    walk_in_customer_default_name = Column(String(100), nullable=False, default="Walk-in Customer")
    known_categories = Column(JSON, nullable=False, default=list)
    known_shop_names = Column(JSON, nullable=False, default=list)

    # 金额隐藏时的替代字符
    obfuscation_character = Column(String(1), nullable=False, default="*")
    # 删除商品时是否提示把库存成本退回现金
    prompt_credit_on_delete = Column(Boolean, nullable=False, default=True)

    # 备份配置
    auto_backup_frequency = Column(String(10), nullable=False, default="disabled")
    last_manual_backup_at = Column(DateTime)
    last_auto_backup_at = Column(DateTime)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<AppSettings cash={self.current_business_cash} currency={self.currency}>"
