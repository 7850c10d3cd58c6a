"""
供应商付款模型 - 记录实际付给供应商的资金

一笔付款按 FIFO 核销多张采购发票，核销明细记录在 PaymentAllocation 中；
未核销部分作为供应商预付款（余额为负）
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from salify.db.base import Base


class SupplierPayment(Base):
    """供应商付款"""
    __tablename__ = "supplier_payments"

    id = Column(Integer, primary_key=True, index=True)

    # 付款编号，格式：PAY20241203001
    payment_no = Column(String(50), unique=True, nullable=False, index=True)

    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True)
    amount = Column(DECIMAL(12, 2), nullable=False)
    payment_date = Column(DateTime, default=datetime.utcnow)
    payment_method = Column(String(50), nullable=False, default="cash", comment="付款方式")
    reference = Column(String(100), comment="参考号")
    transaction_id = Column(String(100), comment="交易流水号")
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)

    supplier = relationship("Supplier", back_populates="payments")
    allocations = relationship(
        "PaymentAllocation",
        back_populates="payment",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<SupplierPayment {self.payment_no}: {self.amount}>"

    @property
    def allocated_amount(self) -> Decimal:
        """已核销到发票的金额"""
        return sum((a.amount for a in self.allocations), Decimal("0"))

    @property
    def unallocated_amount(self) -> Decimal:
        """未核销金额（预付款）"""
        return self.amount - self.allocated_amount


class PaymentAllocation(Base):
    """付款核销明细：某笔付款核销了某张发票多少钱"""
    __tablename__ = "payment_allocations"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(Integer, ForeignKey("supplier_payments.id"), nullable=False, index=True)
    invoice_id = Column(Integer, ForeignKey("purchase_invoices.id"), nullable=False, index=True)
    amount = Column(DECIMAL(12, 2), nullable=False)

    payment = relationship("SupplierPayment", back_populates="allocations")
    invoice = relationship("PurchaseInvoice", back_populates="allocations")

    def __repr__(self):
        return f"<PaymentAllocation payment={self.payment_id} invoice={self.invoice_id} {self.amount}>"
