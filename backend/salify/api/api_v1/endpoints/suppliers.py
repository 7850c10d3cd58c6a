"""供应商管理API"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from salify.core.deps import get_db
from salify.core.logging_config import get_logger
from salify.core.money import round_money, format_money
from salify.models.supplier import Supplier
from salify.models.supplier_payment import SupplierPayment
from salify.models.purchase import PurchaseInvoice
from salify.schemas.supplier import (
    SupplierCreate, SupplierUpdate, SupplierResponse, SupplierListResponse,
    BalanceRecalculation
)
from salify.schemas.purchase import PurchaseInvoiceResponse
from salify.services.activity import log_activity
from salify.services.app_settings import get_app_settings
from salify.services.supplier_ledger import get_open_invoices, compute_supplier_balance

router = APIRouter()
logger = get_logger(__name__)


async def get_supplier_or_404(db: AsyncSession, supplier_id: int) -> Supplier:
    supplier = await db.get(Supplier, supplier_id)
    if not supplier:
        raise HTTPException(status_code=404, detail=f"Supplier with ID {supplier_id} not found.")
    return supplier


@router.get("/", response_model=SupplierListResponse)
async def list_suppliers(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    search: Optional[str] = Query(None, description="名称/公司/联系人")) -> Any:
    """获取供应商列表"""
    query = select(Supplier)
    count_query = select(func.count(Supplier.id))
    if search:
        pattern = f"%{search.strip()}%"
        condition = or_(
            Supplier.name.ilike(pattern),
            Supplier.company_name.ilike(pattern),
            Supplier.contact_person.ilike(pattern)
        )
        query = query.where(condition)
        count_query = count_query.where(condition)

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(Supplier.name.asc(), Supplier.id.asc())
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)

    return SupplierListResponse(
        data=result.scalars().all(),
        total=total,
        page=page,
        limit=limit
    )


@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_id: int) -> Any:
    """获取供应商详情"""
    return await get_supplier_or_404(db, supplier_id)


@router.post("/", response_model=SupplierResponse)
async def create_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_in: SupplierCreate) -> Any:
    """
    新增供应商

    当前余额 = +期初（我们欠供应商）或 -期初（供应商欠我们）
    """
    opening = round_money(supplier_in.opening_balance)
    supplier = Supplier(
        name=(supplier_in.name or "").strip() or None,
        company_name=(supplier_in.company_name or "").strip() or None,
        contact_person=supplier_in.contact_person,
        phone=supplier_in.phone,
        email=supplier_in.email,
        address=supplier_in.address,
        gst_tax_number=supplier_in.gst_tax_number,
        opening_balance=opening,
        opening_balance_type=supplier_in.opening_balance_type,
        notes=supplier_in.notes,
    )
    supplier.current_balance = supplier.signed_opening_balance
    db.add(supplier)
    await db.flush()

    log_activity(
        db, "NEW_SUPPLIER",
        f"New supplier added: {supplier.display_name}. Opening Balance: {supplier.current_balance:.2f}",
        {
            "supplierId": supplier.id,
            "supplierName": supplier.display_name,
            "openingBalance": opening,
            "openingBalanceType": supplier.opening_balance_type,
        }
    )

    await db.commit()
    logger.info(f"🏭 新增供应商: {supplier.display_name}")
    return supplier


@router.put("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_id: int,
    supplier_in: SupplierUpdate) -> Any:
    """更新供应商（余额不可在此修改）"""
    supplier = await get_supplier_or_404(db, supplier_id)

    update_data = supplier_in.model_dump(exclude_unset=True)
    if "phone" in update_data and supplier.phone and not (update_data["phone"] or "").strip():
        raise HTTPException(status_code=400, detail="Phone number cannot be empty.")

    for field, value in update_data.items():
        if isinstance(value, str):
            value = value.strip() or None
        setattr(supplier, field, value)

    if not supplier.name and not supplier.company_name:
        raise HTTPException(status_code=400, detail="Either Supplier Name or Company Name must be provided.")

    log_activity(
        db, "SUPPLIER_UPDATE",
        f"Supplier details updated for {supplier.display_name}.",
        {"supplierId": supplier.id, "updatedFields": list(update_data.keys())}
    )

    await db.commit()
    return supplier


@router.delete("/{supplier_id}")
async def delete_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_id: int) -> Any:
    """删除供应商（有采购发票或付款记录时不可删除）"""
    supplier = await get_supplier_or_404(db, supplier_id)

    invoice_count = (await db.execute(
        select(func.count(PurchaseInvoice.id)).where(PurchaseInvoice.supplier_id == supplier.id)
    )).scalar() or 0
    payment_count = (await db.execute(
        select(func.count(SupplierPayment.id)).where(SupplierPayment.supplier_id == supplier.id)
    )).scalar() or 0
    if invoice_count or payment_count:
        raise HTTPException(
            status_code=400,
            detail=f"Supplier {supplier.display_name} has {invoice_count} purchase invoice(s) and "
                   f"{payment_count} payment(s) and cannot be deleted."
        )

    log_activity(
        db, "SUPPLIER_DELETE",
        f"Supplier removed: {supplier.display_name}",
        {"supplierId": supplier.id, "balance": supplier.current_balance}
    )

    await db.delete(supplier)
    await db.commit()
    logger.info(f"🗑️ 删除供应商: {supplier.display_name}")
    return {"message": "Supplier deleted"}


@router.get("/{supplier_id}/open-invoices", response_model=List[PurchaseInvoiceResponse])
async def list_open_invoices(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_id: int) -> Any:
    """供应商未结清的发票（最早的在前，即 FIFO 核销顺序）"""
    await get_supplier_or_404(db, supplier_id)
    return await get_open_invoices(db, supplier_id)


@router.post("/{supplier_id}/recalculate-balance", response_model=BalanceRecalculation)
async def recalculate_balance(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_id: int) -> Any:
    """按期初余额、发票和付款重新计算供应商余额"""
    supplier = await get_supplier_or_404(db, supplier_id)
    old_balance = round_money(supplier.current_balance)
    new_balance = await compute_supplier_balance(db, supplier)

    if new_balance != old_balance:
        supplier.current_balance = new_balance
        app_settings = await get_app_settings(db)
        log_activity(
            db, "SUPPLIER_BALANCE_UPDATE",
            f"Balance for supplier {supplier.display_name} recalculated from "
            f"{format_money(old_balance, app_settings.currency)} to "
            f"{format_money(new_balance, app_settings.currency)}.",
            {"supplierId": supplier.id, "oldBalance": old_balance, "newBalance": new_balance}
        )
        await db.commit()
        logger.warning(f"⚠️ 供应商余额已修正: {supplier.display_name} {old_balance} → {new_balance}")

    return BalanceRecalculation(
        supplier_id=supplier.id,
        old_balance=float(old_balance),
        new_balance=float(new_balance),
        difference=float(new_balance - old_balance)
    )
