"""
供应商模型

current_balance 为带符号余额：
- 正数：我们欠供应商（应付）
- 负数：供应商欠我们 / 预付款
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, DECIMAL
from sqlalchemy.orm import relationship
from salify.db.base import Base

OPENING_BALANCE_TYPES = ("owedToSupplier", "owedByUser")


class Supplier(Base):
    """供应商"""
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)

    # 基本信息
    name = Column(String(100), index=True)
    company_name = Column(String(100), index=True)
    contact_person = Column(String(100))
    phone = Column(String(30))
    email = Column(String(100))
    address = Column(String(200))
    gst_tax_number = Column(String(50), comment="税号")
    notes = Column(Text)

    # 期初余额（非负）及方向
    opening_balance = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    opening_balance_type = Column(String(20), nullable=False, default="owedToSupplier")
    current_balance = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="当前余额")

    date_added = Column(DateTime, default=datetime.utcnow)

    invoices = relationship("PurchaseInvoice", back_populates="supplier")
    payments = relationship("SupplierPayment", back_populates="supplier")

    def __repr__(self):
        return f"<Supplier {self.id}: {self.display_name} balance={self.current_balance}>"

    @property
    def display_name(self) -> str:
        return self.name or self.company_name or "Unknown Supplier"

    @property
    def signed_opening_balance(self) -> Decimal:
        """期初余额按方向取符号"""
        amount = self.opening_balance or Decimal("0")
        return amount if self.opening_balance_type == "owedToSupplier" else -amount
