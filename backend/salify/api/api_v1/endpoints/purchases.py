"""
采购发票API

录入/修改发票在同一事务内完成：
- 已有商品：库存增减、成本价更新
- 新商品：直接建档入库
- 供应商余额 += 未付金额
- 经营现金 -= 已付金额（purchase_payment 流水）
"""

from collections import defaultdict
from typing import Any, Dict, List, Optional, Set, Tuple
from datetime import date, datetime
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from salify.core.deps import get_db
from salify.core.logging_config import get_logger
from salify.core.money import round_money, format_money, ZERO
from salify.core.periods import PERIOD_PATTERN, resolve_date_range, apply_date_range
from salify.models.app_settings import AppSettings
from salify.models.product import Product, DEFAULT_CATEGORY
from salify.models.purchase import PurchaseInvoice, PurchaseItem
from salify.models.supplier import Supplier
from salify.schemas.purchase import (
    PurchaseItemIn, PurchaseInvoiceCreate, PurchaseInvoiceUpdate,
    PurchaseInvoiceResponse, PurchaseInvoiceListResponse
)
from salify.services.activity import log_activity
from salify.services.app_settings import get_app_settings, next_numeric_id, remember_category
from salify.services.ledger import record_business_transaction
from salify.services.supplier_ledger import get_invoice_allocated_amount

router = APIRouter()
logger = get_logger(__name__)


async def load_invoice(db: AsyncSession, invoice_id: int) -> Optional[PurchaseInvoice]:
    result = await db.execute(
        select(PurchaseInvoice)
        .options(selectinload(PurchaseInvoice.items))
        .where(PurchaseInvoice.id == invoice_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_supplier_or_404(db: AsyncSession, supplier_id: int) -> Supplier:
    supplier = await db.get(Supplier, supplier_id)
    if not supplier:
        raise HTTPException(status_code=404, detail=f"Supplier with ID {supplier_id} not found.")
    return supplier


async def _validate_new_product_items(db: AsyncSession, items_in: List[PurchaseItemIn]) -> None:
    """校验需要新建的商品：编码必填且未被使用，售价必须大于0"""
    seen_codes: Set[str] = set()
    for item in items_in:
        if item.product_id is not None:
            continue
        code = (item.product_code or "").strip()
        if not code:
            raise HTTPException(
                status_code=400,
                detail=f'A product code is required for the new item "{item.product_name}".'
            )
        if not item.sale_price or item.sale_price <= 0:
            raise HTTPException(
                status_code=400,
                detail=f'A valid sale price is required for new item "{item.product_name}".'
            )
        existing = (await db.execute(select(Product.id).where(Product.product_code == code))).scalar_one_or_none()
        if existing is not None or code in seen_codes:
            raise HTTPException(
                status_code=400,
                detail=f'A product with code "{code}" already exists. Please use the '
                       f"'Received Items (from Inventory)' section to add stock for existing products."
            )
        seen_codes.add(code)


async def _build_items(
    db: AsyncSession,
    supplier: Supplier,
    items_in: List[PurchaseItemIn],
    numeric_purchase_id: int,
    app_settings: AppSettings) -> Tuple[List[PurchaseItem], Set[int], Decimal]:
    """
    生成采购明细，新商品在此建档（库存 = 采购数量）

    返回 (明细, 新建商品ID集合, 小计)
    """
    await _validate_new_product_items(db, items_in)

    items = []
    created_ids: Set[int] = set()
    sub_total = ZERO

    for item_in in items_in:
        purchase_price = round_money(item_in.purchase_price)
        item_total = round_money(purchase_price * item_in.quantity)
        sub_total += item_total

        if item_in.product_id is None:
            product = Product(
                product_code=item_in.product_code.strip(),
                name=item_in.product_name.strip(),
                price=round_money(item_in.sale_price),
                cost_price=purchase_price,
                stock=item_in.quantity,
                category=DEFAULT_CATEGORY,
                supplier_id=supplier.id,
            )
            db.add(product)
            await db.flush()
            created_ids.add(product.id)
            remember_category(app_settings, DEFAULT_CATEGORY)

            log_activity(
                db, "INVENTORY_UPDATE",
                f'New product "{product.name}" (Code: {product.product_code}) created and added to inventory '
                f"via purchase #{numeric_purchase_id}. Initial stock: {item_in.quantity}.",
                {
                    "productId": product.id,
                    "productCode": product.product_code,
                    "productName": product.name,
                    "quantity": item_in.quantity,
                    "costPrice": purchase_price,
                    "salePrice": product.price,
                    "purchaseId": numeric_purchase_id,
                    "newProductCreated": True,
                }
            )
        else:
            product = await db.get(Product, item_in.product_id)
            if not product:
                raise HTTPException(
                    status_code=404,
                    detail=f"Product {item_in.product_name} (ID: {item_in.product_id}) not found during purchase transaction."
                )

        items.append(PurchaseItem(
            product_id=product.id,
            product_code=product.product_code,
            product_name=item_in.product_name.strip(),
            quantity=item_in.quantity,
            purchase_price=purchase_price,
            item_total=item_total,
            sale_price=round_money(item_in.sale_price) if item_in.sale_price is not None else None,
        ))

    return items, created_ids, round_money(sub_total)


def _quantities_by_product(items) -> Dict[int, int]:
    quantities: Dict[int, int] = defaultdict(int)
    for item in items:
        if item.product_id is not None:
            quantities[item.product_id] += item.quantity
    return quantities


async def _apply_stock_changes(
    db: AsyncSession,
    old_items,
    new_items: List[PurchaseItem],
    created_ids: Set[int],
    numeric_purchase_id: int,
    app_settings: AppSettings) -> None:
    """
    按新旧明细的数量差调整库存，并把成本价更新为最新采购价

    库存不能被减到负数
    """
    old_qty = _quantities_by_product(old_items)
    new_qty = _quantities_by_product(new_items)
    latest_price = {item.product_id: item.purchase_price for item in new_items}

    for product_id in sorted(set(old_qty) | set(new_qty)):
        if product_id in created_ids:
            continue
        delta = new_qty.get(product_id, 0) - old_qty.get(product_id, 0)
        product = await db.get(Product, product_id)
        if not product:
            # 旧明细对应的商品已删除
            continue

        old_stock = product.stock or 0
        if old_stock + delta < 0:
            raise HTTPException(
                status_code=400,
                detail=f"Cannot reduce stock of {product.name} below zero. "
                       f"Available: {old_stock}, Change: {delta}"
            )
        product.stock = old_stock + delta

        cost_price = latest_price.get(product_id)
        if cost_price is not None and cost_price != product.cost_price:
            product.cost_price = cost_price

        if delta > 0:
            log_activity(
                db, "STOCK_ADD",
                f"Stock for {product.name} (Code: {product.product_code}) increased by {delta} "
                f"from purchase #{numeric_purchase_id}. New stock: {product.stock}. "
                f"Cost: {format_money(product.cost_price, app_settings.currency)}.",
                {
                    "productId": product.id,
                    "productCode": product.product_code,
                    "productName": product.name,
                    "oldStock": old_stock,
                    "newStock": product.stock,
                    "quantityChanged": delta,
                    "purchaseId": numeric_purchase_id,
                    "costPrice": product.cost_price,
                }
            )
        elif delta < 0:
            log_activity(
                db, "INVENTORY_UPDATE",
                f"Stock for {product.name} (Code: {product.product_code}) decreased by {-delta} "
                f"after purchase #{numeric_purchase_id} was updated. New stock: {product.stock}.",
                {
                    "productId": product.id,
                    "oldStock": old_stock,
                    "newStock": product.stock,
                    "quantityChanged": delta,
                    "purchaseId": numeric_purchase_id,
                }
            )


def _log_supplier_balance_change(
    db: AsyncSession,
    supplier: Supplier,
    change: Decimal,
    numeric_purchase_id: int,
    app_settings: AppSettings) -> None:
    if change == ZERO:
        return
    log_activity(
        db, "SUPPLIER_BALANCE_UPDATE",
        f"Balance for supplier {supplier.display_name} updated by {format_money(change, app_settings.currency)} "
        f"due to purchase #{numeric_purchase_id}. "
        f"New balance: {format_money(supplier.current_balance, app_settings.currency)}.",
        {
            "supplierId": supplier.id,
            "supplierName": supplier.display_name,
            "change": change,
            "newBalance": supplier.current_balance,
            "purchaseId": numeric_purchase_id,
        }
    )


@router.get("/", response_model=PurchaseInvoiceListResponse)
async def list_purchase_invoices(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    period: Optional[str] = Query(None, pattern=PERIOD_PATTERN),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    supplier_id: Optional[int] = Query(None),
    payment_status: Optional[str] = Query(None, pattern="^(paid|partially_paid|unpaid)$")) -> Any:
    """获取采购发票列表（按发票日期倒序）"""
    conditions = []
    if supplier_id:
        conditions.append(PurchaseInvoice.supplier_id == supplier_id)
    if payment_status:
        conditions.append(PurchaseInvoice.payment_status == payment_status)

    date_range = resolve_date_range(period, start_date, end_date)
    query = apply_date_range(
        select(PurchaseInvoice).options(selectinload(PurchaseInvoice.items)),
        PurchaseInvoice.invoice_date, date_range
    )
    count_query = apply_date_range(select(func.count(PurchaseInvoice.id)), PurchaseInvoice.invoice_date, date_range)
    if conditions:
        query = query.where(and_(*conditions))
        count_query = count_query.where(and_(*conditions))

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(PurchaseInvoice.invoice_date.desc(), PurchaseInvoice.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)

    return PurchaseInvoiceListResponse(
        data=result.scalars().all(),
        total=total,
        page=page,
        limit=limit
    )


@router.get("/{invoice_id}", response_model=PurchaseInvoiceResponse)
async def get_purchase_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    invoice_id: int) -> Any:
    """获取采购发票详情"""
    invoice = await load_invoice(db, invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Purchase invoice not found.")
    return invoice


@router.post("/", response_model=PurchaseInvoiceResponse)
async def record_purchase_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    invoice_in: PurchaseInvoiceCreate) -> Any:
    """录入采购发票"""
    supplier = await get_supplier_or_404(db, invoice_in.supplier_id)
    app_settings = await get_app_settings(db)
    numeric_id = await next_numeric_id(db, "purchase")

    items, created_ids, sub_total = await _build_items(db, supplier, invoice_in.items, numeric_id, app_settings)
    tax_amount = round_money(invoice_in.tax_amount)
    grand_total = sub_total + tax_amount
    amount_paid = round_money(invoice_in.amount_paid)
    if amount_paid > grand_total:
        raise HTTPException(status_code=400, detail="Amount paid cannot exceed the grand total.")

    await _apply_stock_changes(db, [], items, created_ids, numeric_id, app_settings)

    invoice = PurchaseInvoice(
        numeric_purchase_id=numeric_id,
        supplier_id=supplier.id,
        supplier_name=supplier.display_name,
        invoice_number=(invoice_in.invoice_number or "").strip() or f"AUTOGEN-{numeric_id}",
        invoice_date=invoice_in.invoice_date or datetime.utcnow(),
        sub_total=sub_total,
        tax_amount=tax_amount,
        grand_total=grand_total,
        amount_paid=amount_paid,
        notes=invoice_in.notes,
        items=items,
    )
    invoice.refresh_payment_status()
    db.add(invoice)
    await db.flush()

    # 供应商余额 += 未付金额
    owed = grand_total - amount_paid
    supplier.current_balance = round_money(supplier.current_balance) + owed
    _log_supplier_balance_change(db, supplier, owed, numeric_id, app_settings)

    if amount_paid > ZERO:
        await record_business_transaction(
            db, "purchase_payment", -amount_paid,
            f"Payment for Purchase #{numeric_id} to {supplier.display_name}",
            related_document=f"purchase:{invoice.id}",
            notes=f"Invoice: {invoice.invoice_number}"
        )

    log_activity(
        db, "PURCHASE_RECORDED",
        f"Purchase Invoice #{numeric_id} recorded from {supplier.display_name} for "
        f"{format_money(grand_total, app_settings.currency)}.",
        {
            "purchaseId": invoice.id,
            "numericPurchaseId": numeric_id,
            "supplierName": supplier.display_name,
            "grandTotal": grand_total,
            "amountPaid": amount_paid,
        }
    )

    await db.commit()
    logger.info(f"🧾 采购发票 #{numeric_id}: {supplier.display_name} {grand_total} (已付 {amount_paid})")
    return await load_invoice(db, invoice.id)


@router.put("/{invoice_id}", response_model=PurchaseInvoiceResponse)
async def update_purchase_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    invoice_id: int,
    invoice_in: PurchaseInvoiceUpdate) -> Any:
    """
    修改采购发票

    库存按新旧数量差调整；供应商余额按欠款变化调整；
    已付金额的变化记入经营现金
    """
    invoice = await load_invoice(db, invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Original purchase invoice not found.")

    app_settings = await get_app_settings(db)
    numeric_id = invoice.numeric_purchase_id
    allocated = await get_invoice_allocated_amount(db, invoice.id)

    old_supplier = await get_supplier_or_404(db, invoice.supplier_id)
    new_supplier = old_supplier
    if invoice_in.supplier_id is not None and invoice_in.supplier_id != invoice.supplier_id:
        if allocated > ZERO:
            raise HTTPException(
                status_code=400,
                detail="The supplier cannot be changed because supplier payments have been applied to this invoice."
            )
        new_supplier = await get_supplier_or_404(db, invoice_in.supplier_id)

    old_owed = invoice.grand_total - invoice.amount_paid
    old_paid = invoice.amount_paid

    items, created_ids, sub_total = await _build_items(db, new_supplier, invoice_in.items, numeric_id, app_settings)
    tax_amount = round_money(invoice_in.tax_amount)
    grand_total = sub_total + tax_amount
    amount_paid = round_money(invoice_in.amount_paid)
    if amount_paid > grand_total:
        raise HTTPException(status_code=400, detail="Amount paid cannot exceed the grand total.")
    if amount_paid < allocated:
        raise HTTPException(
            status_code=400,
            detail=f"Amount paid cannot be less than {allocated:.2f} already applied from supplier payments."
        )

    await _apply_stock_changes(db, list(invoice.items), items, created_ids, numeric_id, app_settings)

    invoice.items = items
    invoice.supplier_id = new_supplier.id
    invoice.supplier_name = new_supplier.display_name
    if invoice_in.invoice_number is not None:
        invoice.invoice_number = invoice_in.invoice_number.strip() or f"AUTOGEN-{numeric_id}"
    if invoice_in.invoice_date is not None:
        invoice.invoice_date = invoice_in.invoice_date
    invoice.sub_total = sub_total
    invoice.tax_amount = tax_amount
    invoice.grand_total = grand_total
    invoice.amount_paid = amount_paid
    invoice.notes = invoice_in.notes
    invoice.last_updated_at = datetime.utcnow()
    invoice.refresh_payment_status()

    # 供应商余额
    new_owed = grand_total - amount_paid
    if new_supplier is old_supplier:
        change = new_owed - old_owed
        old_supplier.current_balance = round_money(old_supplier.current_balance) + change
        _log_supplier_balance_change(db, old_supplier, change, numeric_id, app_settings)
    else:
        old_supplier.current_balance = round_money(old_supplier.current_balance) - old_owed
        new_supplier.current_balance = round_money(new_supplier.current_balance) + new_owed
        _log_supplier_balance_change(db, old_supplier, -old_owed, numeric_id, app_settings)
        _log_supplier_balance_change(db, new_supplier, new_owed, numeric_id, app_settings)

    # 已付金额变化
    paid_change = amount_paid - old_paid
    if paid_change != ZERO:
        await record_business_transaction(
            db, "purchase_payment", -paid_change,
            f"Payment adjustment for Purchase #{numeric_id} to {new_supplier.display_name}",
            related_document=f"purchase:{invoice.id}",
            notes=f"Amount paid changed from {old_paid:.2f} to {amount_paid:.2f}"
        )

    log_activity(
        db, "PURCHASE_RECORDED",
        f"Purchase Invoice #{numeric_id} was updated.",
        {
            "purchaseId": invoice.id,
            "numericPurchaseId": numeric_id,
            "supplierName": new_supplier.display_name,
            "grandTotal": grand_total,
            "amountPaid": amount_paid,
        }
    )

    await db.commit()
    logger.info(f"🧾 采购发票 #{numeric_id} 已修改")
    return await load_invoice(db, invoice.id)
