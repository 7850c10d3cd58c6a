"""
商品模型 - 库存直接记录在商品上
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from salify.db.base import Base

DEFAULT_CATEGORY = "Uncategorized"


class Product(Base):
    """商品"""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    product_code = Column(String(50), unique=True, nullable=False, index=True, comment="商品编码")
    name = Column(String(200), nullable=False, index=True)
    price = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="售价")
    cost_price = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="成本价")
    stock = Column(Integer, nullable=False, default=0, comment="当前库存")
    category = Column(String(100), default=DEFAULT_CATEGORY)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), comment="默认供应商")
    discount_percentage = Column(DECIMAL(5, 2), nullable=False, default=Decimal("0"), comment="折扣%")
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    supplier = relationship("Supplier", foreign_keys=[supplier_id])

    def __repr__(self):
        return f"<Product {self.product_code}: {self.name} stock={self.stock}>"

    @property
    def stock_value(self) -> Decimal:
        """库存成本金额"""
        return (self.cost_price or Decimal("0")) * self.stock

    def is_low_stock(self, threshold: int) -> bool:
        return 0 < self.stock < threshold
