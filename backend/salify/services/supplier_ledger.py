"""
供应商账务模块
- 按 FIFO（最早的发票优先）核销供应商付款
- 删除付款时回滚核销
- 按发票与付款重新计算供应商余额

余额规则：
  当前余额 = 带符号期初余额
           + Σ 发票未付金额 (grand_total - amount_paid)
           - Σ 付款未核销金额（预付款）
"""

from decimal import Decimal
from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from salify.core.money import round_money, ZERO
from salify.models.supplier import Supplier
from salify.models.supplier_payment import SupplierPayment, PaymentAllocation
from salify.models.purchase import PurchaseInvoice


async def get_open_invoices(db: AsyncSession, supplier_id: int) -> List[PurchaseInvoice]:
    """供应商未结清的发票（最早的在前）"""
    result = await db.execute(
        select(PurchaseInvoice)
        .options(
            selectinload(PurchaseInvoice.items),
            selectinload(PurchaseInvoice.allocations)
        )
        .where(
            PurchaseInvoice.supplier_id == supplier_id,
            PurchaseInvoice.payment_status.in_(("unpaid", "partially_paid"))
        )
        .order_by(PurchaseInvoice.invoice_date.asc(), PurchaseInvoice.id.asc())  # 先进先出
    )
    return list(result.scalars().all())


async def settle_invoices_fifo(
    db: AsyncSession,
    payment: SupplierPayment) -> Decimal:
    """
    把一笔付款按 FIFO 核销到供应商的未结发票

    返回未核销的剩余金额（成为供应商预付款）
    """
    remaining = round_money(payment.amount)
    invoices = await get_open_invoices(db, payment.supplier_id)

    for invoice in invoices:
        if remaining <= ZERO:
            break
        due = round_money(invoice.grand_total - invoice.amount_paid)
        if due <= ZERO:
            continue

        applied = min(remaining, due)
        invoice.amount_paid = round_money(invoice.amount_paid + applied)
        invoice.refresh_payment_status()

        payment.allocations.append(PaymentAllocation(invoice_id=invoice.id, amount=applied))
        remaining -= applied

    return remaining


async def reverse_payment_allocations(
    db: AsyncSession,
    payment: SupplierPayment) -> None:
    """回滚付款对发票的核销（payment.allocations 需已加载）"""
    for allocation in payment.allocations:
        invoice = await db.get(PurchaseInvoice, allocation.invoice_id)
        if not invoice:
            continue
        invoice.amount_paid = round_money(max(ZERO, invoice.amount_paid - allocation.amount))
        invoice.refresh_payment_status()


async def get_invoice_allocated_amount(db: AsyncSession, invoice_id: int) -> Decimal:
    """发票上通过供应商付款核销的金额"""
    result = await db.execute(
        select(PaymentAllocation.amount).where(PaymentAllocation.invoice_id == invoice_id)
    )
    return round_money(sum((Decimal(str(a)) for a in result.scalars().all()), ZERO))


async def compute_supplier_balance(db: AsyncSession, supplier: Supplier) -> Decimal:
    """按发票和付款重新计算供应商余额"""
    balance = supplier.signed_opening_balance

    invoices_result = await db.execute(
        select(PurchaseInvoice.grand_total, PurchaseInvoice.amount_paid)
        .where(PurchaseInvoice.supplier_id == supplier.id)
    )
    for grand_total, amount_paid in invoices_result.all():
        balance += Decimal(str(grand_total)) - Decimal(str(amount_paid))

    payments_result = await db.execute(
        select(SupplierPayment)
        .options(selectinload(SupplierPayment.allocations))
        .where(SupplierPayment.supplier_id == supplier.id)
    )
    for payment in payments_result.scalars().all():
        balance -= payment.unallocated_amount

    return round_money(balance)
