"""
销售单模型

product_id 为空的明细是手工录入商品（不走库存）
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from salify.db.base import Base

SALE_TYPES = ("REGULAR", "INSTANT")


class Sale(Base):
    """销售单"""
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)
    numeric_sale_id = Column(Integer, unique=True, nullable=False, index=True)
    sale_type = Column(String(10), nullable=False, default="REGULAR")

    customer_id = Column(Integer, ForeignKey("customers.id"), index=True)
    customer_name = Column(String(100), comment="客户名称快照")
    shop_name = Column(String(100), comment="即时销售的店铺名")

    instant_sale_items_description = Column(Text)
    estimated_total_cogs = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="销售成本")
    sub_total = Column(DECIMAL(12, 2), nullable=False)
    discount_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    grand_total = Column(DECIMAL(12, 2), nullable=False)

    sale_date = Column(DateTime, default=datetime.utcnow, index=True)

    customer = relationship("Customer", foreign_keys=[customer_id])
    items = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.id"
    )

    def __repr__(self):
        return f"<Sale #{self.numeric_sale_id}: {self.grand_total}>"

    @property
    def gross_profit(self) -> Decimal:
        return self.grand_total - (self.estimated_total_cogs or Decimal("0"))


class SaleItem(Base):
    """销售明细"""
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True)
    product_code = Column(String(50))
    product_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(DECIMAL(12, 2), nullable=False, comment="折后单价")
    original_price_before_item_discount = Column(DECIMAL(12, 2))
    item_discount_applied_percentage = Column(DECIMAL(5, 2))
    cost_price = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    total = Column(DECIMAL(12, 2), nullable=False)

    sale = relationship("Sale", back_populates="items")

    @property
    def is_manual(self) -> bool:
        return self.product_id is None
