"""
采购发票模型
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from salify.db.base import Base

PAYMENT_STATUSES = ("paid", "partially_paid", "unpaid")


def resolve_payment_status(grand_total: Decimal, amount_paid: Decimal) -> str:
    """根据应付金额和已付金额计算付款状态"""
    if amount_paid >= grand_total and grand_total > 0:
        return "paid"
    if amount_paid > 0:
        return "partially_paid"
    return "unpaid"


class PurchaseInvoice(Base):
    """采购发票"""
    __tablename__ = "purchase_invoices"

    id = Column(Integer, primary_key=True, index=True)
    numeric_purchase_id = Column(Integer, unique=True, nullable=False, index=True)

    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True)
    supplier_name = Column(String(100), nullable=False, comment="供应商名称快照")

    invoice_number = Column(String(100), nullable=False, comment="供应商发票号")
    invoice_date = Column(DateTime, nullable=False, index=True)

    sub_total = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    tax_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    grand_total = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    amount_paid = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    payment_status = Column(String(20), nullable=False, default="unpaid", index=True)
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    last_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    supplier = relationship("Supplier", back_populates="invoices")
    items = relationship(
        "PurchaseItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.id"
    )
    allocations = relationship("PaymentAllocation", back_populates="invoice")

    def __repr__(self):
        return f"<PurchaseInvoice #{self.numeric_purchase_id}: {self.grand_total} ({self.payment_status})>"

    @property
    def amount_due(self) -> Decimal:
        return self.grand_total - self.amount_paid

    @property
    def allocated_amount(self) -> Decimal:
        """通过供应商付款核销的部分"""
        return sum((a.amount for a in self.allocations), Decimal("0"))

    def refresh_payment_status(self) -> None:
        self.payment_status = resolve_payment_status(self.grand_total, self.amount_paid)


class PurchaseItem(Base):
    """采购明细"""
    __tablename__ = "purchase_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("purchase_invoices.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True)
    product_code = Column(String(50))
    product_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    purchase_price = Column(DECIMAL(12, 2), nullable=False)
    item_total = Column(DECIMAL(12, 2), nullable=False)
    sale_price = Column(DECIMAL(12, 2), comment="新建商品时的售价")

    invoice = relationship("PurchaseInvoice", back_populates="items")
