"""
供应商付款API

一笔付款在同一事务内：
1. 按 FIFO 核销供应商未结发票（记录核销明细）
2. 供应商余额 -= 付款金额（未核销部分成为预付款）
3. 经营现金 -= 付款金额（supplier_payment 流水）
"""

from typing import Any, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from salify.core.deps import get_db
from salify.core.logging_config import get_logger
from salify.core.money import round_money, format_money
from salify.models.supplier import Supplier
from salify.models.supplier_payment import SupplierPayment
from salify.schemas.supplier import (
    SupplierPaymentCreate, SupplierPaymentResponse, SupplierPaymentListResponse
)
from salify.services.activity import log_activity
from salify.services.app_settings import get_app_settings, next_numeric_id
from salify.services.ledger import record_business_transaction
from salify.services.supplier_ledger import settle_invoices_fifo, reverse_payment_allocations

router = APIRouter()
logger = get_logger(__name__)


async def generate_payment_no(db: AsyncSession, payment_date: datetime) -> str:
    """生成付款单号 PAY20241203001：付款日期（UTC）+ 全局递增序号"""
    seq = await next_numeric_id(db, "supplier_payment")
    return f"PAY{payment_date.strftime('%Y%m%d')}{seq:03d}"


def build_payment_response(payment: SupplierPayment, supplier: Optional[Supplier] = None) -> SupplierPaymentResponse:
    """构建付款响应（allocations / supplier 需已加载）"""
    supplier = supplier or payment.supplier
    return SupplierPaymentResponse(
        id=payment.id,
        payment_no=payment.payment_no,
        supplier_id=payment.supplier_id,
        supplier_name=supplier.display_name if supplier else "",
        amount=float(payment.amount),
        payment_date=payment.payment_date,
        payment_method=payment.payment_method,
        reference=payment.reference,
        transaction_id=payment.transaction_id,
        notes=payment.notes,
        allocations=[
            {"invoice_id": a.invoice_id, "amount": float(a.amount)}
            for a in payment.allocations
        ],
        allocated_amount=float(payment.allocated_amount),
        unallocated_amount=float(payment.unallocated_amount),
        supplier_balance=float(supplier.current_balance) if supplier else None,
        created_at=payment.created_at
    )


async def load_payment(db: AsyncSession, payment_id: int) -> Optional[SupplierPayment]:
    result = await db.execute(
        select(SupplierPayment)
        .options(
            selectinload(SupplierPayment.allocations),
            selectinload(SupplierPayment.supplier)
        )
        .where(SupplierPayment.id == payment_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


@router.get("/", response_model=SupplierPaymentListResponse)
async def list_supplier_payments(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    supplier_id: Optional[int] = Query(None)) -> Any:
    """获取供应商付款列表（最新的在前）"""
    query = select(SupplierPayment).options(
        selectinload(SupplierPayment.allocations),
        selectinload(SupplierPayment.supplier)
    )
    count_query = select(func.count(SupplierPayment.id))
    if supplier_id:
        query = query.where(SupplierPayment.supplier_id == supplier_id)
        count_query = count_query.where(SupplierPayment.supplier_id == supplier_id)

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(SupplierPayment.payment_date.desc(), SupplierPayment.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)

    return SupplierPaymentListResponse(
        data=[build_payment_response(p) for p in result.scalars().all()],
        total=total,
        page=page,
        limit=limit
    )


@router.get("/{payment_id}", response_model=SupplierPaymentResponse)
async def get_supplier_payment(
    *,
    db: AsyncSession = Depends(get_db),
    payment_id: int) -> Any:
    """获取付款详情"""
    payment = await load_payment(db, payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Supplier payment not found.")
    return build_payment_response(payment)


@router.post("/", response_model=SupplierPaymentResponse)
async def record_supplier_payment(
    *,
    db: AsyncSession = Depends(get_db),
    payment_in: SupplierPaymentCreate) -> Any:
    """付款给供应商（FIFO 核销发票）"""
    supplier = await db.get(Supplier, payment_in.supplier_id)
    if not supplier:
        raise HTTPException(status_code=404, detail=f"Supplier with ID {payment_in.supplier_id} not found.")

    amount = round_money(payment_in.amount)
    payment_date = payment_in.payment_date or datetime.utcnow()
    payment = SupplierPayment(
        payment_no=await generate_payment_no(db, payment_date),
        supplier_id=supplier.id,
        amount=amount,
        payment_date=payment_date,
        payment_method=payment_in.payment_method,
        reference=payment_in.reference,
        transaction_id=payment_in.transaction_id,
        notes=payment_in.notes,
        allocations=[],
    )
    db.add(payment)

    # FIFO 核销
    unallocated = await settle_invoices_fifo(db, payment)

    old_balance = round_money(supplier.current_balance)
    supplier.current_balance = old_balance - amount
    await db.flush()

    description = f"Payment to supplier: {supplier.display_name}. Method: {payment.payment_method}."
    if payment.reference:
        description += f" Ref: {payment.reference}"
    await record_business_transaction(
        db, "supplier_payment", -amount, description,
        related_document=f"supplier:{supplier.id}",
        notes=payment.notes,
        date=payment.payment_date
    )

    app_settings = await get_app_settings(db)
    log_activity(
        db, "SUPPLIER_BALANCE_UPDATE",
        f"Payment of {format_money(amount, app_settings.currency)} made to {supplier.display_name}. "
        f"Method: {payment.payment_method}. "
        f"New balance: {format_money(supplier.current_balance, app_settings.currency)}.",
        {
            "supplierId": supplier.id,
            "paymentNo": payment.payment_no,
            "amount": amount,
            "oldBalance": old_balance,
            "newBalance": supplier.current_balance,
            "allocations": [{"invoiceId": a.invoice_id, "amount": a.amount} for a in payment.allocations],
            "unallocated": unallocated,
        }
    )

    await db.commit()
    logger.info(
        f"💸 供应商付款: {payment.payment_no} {supplier.display_name} {amount} "
        f"(核销 {len(payment.allocations)} 张发票, 预付 {unallocated})"
    )
    return build_payment_response(payment, supplier)


@router.delete("/{payment_id}")
async def delete_supplier_payment(
    *,
    db: AsyncSession = Depends(get_db),
    payment_id: int) -> Any:
    """删除供应商付款（回滚发票核销、供应商余额和经营现金）"""
    payment = await load_payment(db, payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Supplier payment not found.")

    supplier = payment.supplier
    amount = round_money(payment.amount)

    await reverse_payment_allocations(db, payment)
    if supplier:
        supplier.current_balance = round_money(supplier.current_balance) + amount

    await record_business_transaction(
        db, "supplier_payment", amount,
        f"Reversal of payment {payment.payment_no} to supplier: "
        f"{supplier.display_name if supplier else payment.supplier_id}",
        related_document=f"supplier:{payment.supplier_id}"
    )

    app_settings = await get_app_settings(db)
    log_activity(
        db, "SUPPLIER_BALANCE_UPDATE",
        f"Payment {payment.payment_no} of {format_money(amount, app_settings.currency)} to "
        f"{supplier.display_name if supplier else 'supplier'} was deleted."
        + (f" New balance: {format_money(supplier.current_balance, app_settings.currency)}." if supplier else ""),
        {"supplierId": payment.supplier_id, "paymentNo": payment.payment_no, "amount": amount}
    )

    await db.delete(payment)
    await db.commit()
    logger.info(f"🗑️ 删除供应商付款: {payment.payment_no}")
    return {"message": "Supplier payment deleted"}
