"""
报价单API

报价单不影响库存和经营现金；列表查询前先同步过期状态
"""

from typing import Any, List, Optional
from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from salify.core.deps import get_db
from salify.core.logging_config import get_logger
from salify.core.money import round_money, format_money
from salify.core.periods import PERIOD_PATTERN, resolve_date_range, apply_date_range
from salify.models.customer import Customer
from salify.models.quotation import Quotation, QuotationItem
from salify.schemas.quotation import (
    QuotationItemIn, QuotationCreate, QuotationUpdate, QuotationResponse, QuotationListResponse
)
from salify.services.activity import log_activity
from salify.services.app_settings import get_app_settings, next_numeric_id
from salify.services.quotation import calculate_item_amounts, calculate_totals, sync_expired_quotations

router = APIRouter()
logger = get_logger(__name__)

MONEY_FIELDS = ("overall_discount_amount", "overall_tax_amount", "shipping_charges", "extra_costs")


async def load_quotation(db: AsyncSession, quotation_id: int) -> Optional[Quotation]:
    result = await db.execute(
        select(Quotation)
        .options(selectinload(Quotation.items))
        .where(Quotation.id == quotation_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def snapshot_customer_details(customer: Customer) -> dict:
    """客户联系方式快照"""
    return {
        "email": customer.email,
        "phone": customer.phone,
        "address": customer.address,
        "companyName": customer.company_name,
    }


def build_items(items_in: List[QuotationItemIn]) -> List[QuotationItem]:
    items = []
    for item_in in items_in:
        amounts = calculate_item_amounts(
            item_in.quantity, item_in.sale_price, item_in.discount_percentage, item_in.tax_percentage
        )
        items.append(QuotationItem(
            product_id=item_in.product_id,
            product_code=item_in.product_code,
            name=item_in.name.strip(),
            quantity=round_money(item_in.quantity),
            sale_price=round_money(item_in.sale_price),
            cost_price=round_money(item_in.cost_price) if item_in.cost_price is not None else None,
            discount_percentage=round_money(item_in.discount_percentage),
            tax_percentage=round_money(item_in.tax_percentage),
            item_subtotal=amounts.item_subtotal,
            item_discount_amount=amounts.item_discount_amount,
            price_after_item_discount=amounts.price_after_item_discount,
            item_tax_amount=amounts.item_tax_amount,
            item_total=amounts.item_total,
        ))
    return items


def apply_totals(quotation: Quotation) -> None:
    """按明细和整单费用重新计算汇总金额"""
    totals = calculate_totals(
        quotation.items,
        quotation.overall_discount_amount,
        quotation.overall_tax_amount,
        quotation.shipping_charges,
        quotation.extra_costs,
    )
    quotation.sub_total = totals.sub_total
    quotation.total_item_discount_amount = totals.total_item_discount_amount
    quotation.total_item_tax_amount = totals.total_item_tax_amount
    quotation.grand_total = totals.grand_total


def check_dates(quote_date: date, valid_till_date: date) -> None:
    if valid_till_date < quote_date:
        raise HTTPException(status_code=400, detail="Valid Till date cannot be before the Quote Date.")


async def get_customer_or_404(db: AsyncSession, customer_id: int) -> Customer:
    customer = await db.get(Customer, customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail=f"Customer with ID {customer_id} not found.")
    return customer


@router.get("/", response_model=QuotationListResponse)
async def list_quotations(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    period: Optional[str] = Query(None, pattern=PERIOD_PATTERN, description="按创建时间筛选"),
    status: Optional[str] = Query(None, pattern="^(Draft|Sent|Accepted|Declined|Expired)$"),
    customer_id: Optional[int] = Query(None)) -> Any:
    """获取报价单列表（先同步过期状态）"""
    expired = await sync_expired_quotations(db)
    if expired:
        await db.commit()

    conditions = []
    if status:
        conditions.append(Quotation.status == status)
    if customer_id:
        conditions.append(Quotation.customer_id == customer_id)

    date_range = resolve_date_range(period)
    query = apply_date_range(
        select(Quotation).options(selectinload(Quotation.items)), Quotation.created_at, date_range
    )
    count_query = apply_date_range(select(func.count(Quotation.id)), Quotation.created_at, date_range)
    if conditions:
        query = query.where(and_(*conditions))
        count_query = count_query.where(and_(*conditions))

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(Quotation.quote_date.desc(), Quotation.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)

    return QuotationListResponse(
        data=result.scalars().all(),
        total=total,
        page=page,
        limit=limit
    )


@router.post("/sync-expired")
async def sync_expired(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    """手动同步过期报价单"""
    expired = await sync_expired_quotations(db)
    await db.commit()
    return {"expired_count": len(expired)}


@router.get("/{quotation_id}", response_model=QuotationResponse)
async def get_quotation(
    *,
    db: AsyncSession = Depends(get_db),
    quotation_id: int) -> Any:
    """获取报价单详情"""
    quotation = await load_quotation(db, quotation_id)
    if not quotation:
        raise HTTPException(status_code=404, detail="Quotation not found.")
    return quotation


@router.post("/", response_model=QuotationResponse)
async def create_quotation(
    *,
    db: AsyncSession = Depends(get_db),
    quotation_in: QuotationCreate) -> Any:
    """新建报价单（状态为 Draft）"""
    check_dates(quotation_in.quote_date, quotation_in.valid_till_date)

    customer_details = None
    if quotation_in.customer_id is not None:
        customer = await get_customer_or_404(db, quotation_in.customer_id)
        customer_details = snapshot_customer_details(customer)

    app_settings = await get_app_settings(db)
    numeric_id = await next_numeric_id(db, "quotation")

    quotation = Quotation(
        numeric_quotation_id=numeric_id,
        customer_id=quotation_in.customer_id,
        customer_name=quotation_in.customer_name,
        customer_details=customer_details,
        quote_date=quotation_in.quote_date,
        valid_till_date=quotation_in.valid_till_date,
        items=build_items(quotation_in.items),
        terms_and_conditions=quotation_in.terms_and_conditions,
        payment_methods=quotation_in.payment_methods,
        notes=quotation_in.notes,
        status="Draft",
    )
    for field in MONEY_FIELDS:
        setattr(quotation, field, round_money(getattr(quotation_in, field)))
    apply_totals(quotation)

    db.add(quotation)
    await db.flush()

    log_activity(
        db, "QUOTATION_CREATED",
        f"New Quotation #{numeric_id} created for {quotation.customer_name}. Status: Draft. "
        f"Total: {format_money(quotation.grand_total, app_settings.currency)}.",
        {
            "quotationId": quotation.id,
            "numericQuotationId": numeric_id,
            "customerName": quotation.customer_name,
            "grandTotal": quotation.grand_total,
            "itemCount": len(quotation.items),
        }
    )

    await db.commit()
    logger.info(f"📄 新建报价单 #{numeric_id}: {quotation.customer_name} {quotation.grand_total}")
    return await load_quotation(db, quotation.id)


@router.put("/{quotation_id}", response_model=QuotationResponse)
async def update_quotation(
    *,
    db: AsyncSession = Depends(get_db),
    quotation_id: int,
    quotation_in: QuotationUpdate) -> Any:
    """
    更新报价单（部分更新）

    传入 items 时整体替换明细；汇总金额每次重新计算
    """
    quotation = await load_quotation(db, quotation_id)
    if not quotation:
        raise HTTPException(status_code=404, detail="Quotation not found.")

    update_data = quotation_in.model_dump(exclude_unset=True)
    changes = []

    # 客户关联
    if quotation_in.unlink_customer:
        if quotation.customer_id is not None:
            changes.append("customer unlinked")
        quotation.customer_id = None
        quotation.customer_details = None
    elif quotation_in.customer_id is not None and quotation_in.customer_id != quotation.customer_id:
        customer = await get_customer_or_404(db, quotation_in.customer_id)
        quotation.customer_id = customer.id
        quotation.customer_details = snapshot_customer_details(customer)
        if "customer_name" not in update_data:
            quotation.customer_name = customer.display_name
        changes.append(f"customer changed to {customer.display_name}")

    if quotation_in.customer_name is not None:
        name = quotation_in.customer_name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Customer Name is required.")
        if name != quotation.customer_name:
            quotation.customer_name = name
            changes.append("customer name")

    quote_date = quotation_in.quote_date or quotation.quote_date
    valid_till_date = quotation_in.valid_till_date or quotation.valid_till_date
    check_dates(quote_date, valid_till_date)
    if quote_date != quotation.quote_date or valid_till_date != quotation.valid_till_date:
        changes.append("dates")
    quotation.quote_date = quote_date
    quotation.valid_till_date = valid_till_date

    if quotation_in.items is not None:
        quotation.items = build_items(quotation_in.items)
        changes.append("items")

    for field in MONEY_FIELDS:
        value = update_data.get(field)
        if value is not None:
            setattr(quotation, field, round_money(value))

    for field in ("terms_and_conditions", "payment_methods", "notes"):
        if field in update_data:
            setattr(quotation, field, update_data[field])

    old_total = round_money(quotation.grand_total)
    apply_totals(quotation)
    if quotation.grand_total != old_total:
        changes.append("totals")

    old_status = quotation.status
    if quotation_in.status is not None:
        quotation.status = quotation_in.status
    quotation.last_updated_at = datetime.utcnow()

    app_settings = await get_app_settings(db)
    numeric_id = quotation.numeric_quotation_id
    if quotation.status != old_status:
        log_activity(
            db, "QUOTATION_STATUS_CHANGED",
            f"Quotation #{numeric_id} for {quotation.customer_name} status changed "
            f"from {old_status} to {quotation.status}.",
            {
                "quotationId": quotation.id,
                "numericQuotationId": numeric_id,
                "oldStatus": old_status,
                "newStatus": quotation.status,
                "grandTotal": quotation.grand_total,
            }
        )
    else:
        description = f"Quotation #{numeric_id} for {quotation.customer_name} updated."
        if changes:
            description += f" Changes: {', '.join(changes)}."
        log_activity(
            db, "QUOTATION_UPDATED",
            description,
            {
                "quotationId": quotation.id,
                "numericQuotationId": numeric_id,
                "changes": changes,
                "grandTotal": quotation.grand_total,
                "currency": app_settings.currency,
            }
        )

    await db.commit()
    return await load_quotation(db, quotation.id)


@router.delete("/{quotation_id}")
async def delete_quotation(
    *,
    db: AsyncSession = Depends(get_db),
    quotation_id: int) -> Any:
    """删除报价单"""
    quotation = await load_quotation(db, quotation_id)
    if not quotation:
        raise HTTPException(status_code=404, detail="Quotation not found.")

    log_activity(
        db, "QUOTATION_UPDATED",
        f"Quotation #{quotation.numeric_quotation_id} for {quotation.customer_name} was deleted.",
        {"quotationId": quotation.id, "numericQuotationId": quotation.numeric_quotation_id}
    )

    await db.delete(quotation)
    await db.commit()
    logger.info(f"🗑️ 删除报价单 #{quotation.numeric_quotation_id}")
    return {"message": "Quotation deleted"}
