"""
销售API

结账在同一事务内：
1. 校验库存（任一商品不足则整单失败，不产生任何写入）
2. 扣减库存、计算销售成本
3. 散客输入了名字时自动建档
4. 经营现金 += 应收合计（sale_income 流水）
"""

import re
from collections import defaultdict
from typing import Any, Dict, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from salify.api.api_v1.endpoints.customers import create_customer
from salify.core.deps import get_db
from salify.core.logging_config import get_logger
from salify.core.money import round_money, format_money, ZERO
from salify.core.periods import PERIOD_PATTERN, resolve_date_range, apply_date_range
from salify.models.customer import Customer
from salify.models.product import Product
from salify.models.sale import Sale, SaleItem
from salify.schemas.sale import SaleCreate, SaleResponse, SaleListResponse
from salify.services.activity import log_activity
from salify.services.app_settings import get_app_settings, next_numeric_id, remember_shop_name
from salify.services.ledger import record_business_transaction

router = APIRouter()
logger = get_logger(__name__)

# 形如电话号码的客户名
PHONE_LIKE_PATTERN = re.compile(r"^\+?\d[\d\s-]*\d$")


async def load_sale(db: AsyncSession, sale_id: int) -> Optional[Sale]:
    result = await db.execute(
        select(Sale)
        .options(selectinload(Sale.items))
        .where(Sale.id == sale_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def looks_like_phone(value: str) -> bool:
    return bool(PHONE_LIKE_PATTERN.match(value.strip()))


@router.get("/", response_model=SaleListResponse)
async def list_sales(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    period: Optional[str] = Query(None, pattern=PERIOD_PATTERN),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    customer_id: Optional[int] = Query(None)) -> Any:
    """获取销售单列表（最新的在前）"""
    date_range = resolve_date_range(period, start_date, end_date)
    query = apply_date_range(select(Sale).options(selectinload(Sale.items)), Sale.sale_date, date_range)
    count_query = apply_date_range(select(func.count(Sale.id)), Sale.sale_date, date_range)
    if customer_id:
        query = query.where(Sale.customer_id == customer_id)
        count_query = count_query.where(Sale.customer_id == customer_id)

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(Sale.sale_date.desc(), Sale.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)

    return SaleListResponse(
        data=result.scalars().all(),
        total=total,
        page=page,
        limit=limit
    )


@router.get("/by-number/{numeric_sale_id}", response_model=SaleResponse)
async def get_sale_by_number(
    *,
    db: AsyncSession = Depends(get_db),
    numeric_sale_id: int) -> Any:
    """按销售单号查询（退货时使用）"""
    result = await db.execute(
        select(Sale).options(selectinload(Sale.items)).where(Sale.numeric_sale_id == numeric_sale_id)
    )
    sale = result.scalar_one_or_none()
    if not sale:
        raise HTTPException(status_code=404, detail=f"Sale #{numeric_sale_id} not found.")
    return sale


@router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(
    *,
    db: AsyncSession = Depends(get_db),
    sale_id: int) -> Any:
    """获取销售单详情"""
    sale = await load_sale(db, sale_id)
    if not sale:
        raise HTTPException(status_code=404, detail="Sale not found.")
    return sale


@router.post("/", response_model=SaleResponse)
async def process_sale(
    *,
    db: AsyncSession = Depends(get_db),
    sale_in: SaleCreate) -> Any:
    """结账"""
    if sale_in.sale_type == "REGULAR" and not sale_in.customer_id:
        raise HTTPException(status_code=400, detail="Customer ID is missing for a regular sale.")

    customer = None
    if sale_in.customer_id:
        customer = await db.get(Customer, sale_in.customer_id)
        if not customer:
            raise HTTPException(status_code=404, detail=f"Customer with ID {sale_in.customer_id} not found.")

    # 1. 校验库存（同一商品多行时合并数量）
    requested: Dict[int, int] = defaultdict(int)
    for item in sale_in.items:
        if item.product_id is not None:
            requested[item.product_id] += item.quantity

    products: Dict[int, Product] = {}
    for product_id, quantity in requested.items():
        product = await db.get(Product, product_id)
        if not product:
            raise HTTPException(status_code=404, detail=f"Product with ID {product_id} not found.")
        if (product.stock or 0) < quantity:
            raise HTTPException(
                status_code=400,
                detail=f"Not enough stock for {product.name}. Available: {product.stock}, Requested: {quantity}"
            )
        products[product_id] = product

    app_settings = await get_app_settings(db)
    numeric_id = await next_numeric_id(db, "sale")
    shop_name = (sale_in.shop_name or "").strip() or None

    # 2. 散客自动建档
    typed_name = (sale_in.customer_name or "").strip()
    walk_in_name = app_settings.walk_in_customer_default_name
    if (customer is None or customer.is_walk_in) and typed_name and typed_name != walk_in_name:
        if looks_like_phone(typed_name):
            customer = await create_customer(db, name="Cash", phone=typed_name)
        else:
            customer = await create_customer(db, name=typed_name, phone="N/A")
        log_activity(
            db, "NEW_CUSTOMER",
            f'New customer "{customer.display_name}" was automatically created from sale #{numeric_id}.',
            {"customerId": customer.id, "customerCode": customer.code, "saleId": numeric_id}
        )

    if customer is not None:
        customer_name = customer.display_name
    else:
        customer_name = typed_name or walk_in_name

    # 3. 明细、库存、成本
    items = []
    sub_total = ZERO
    computed_cogs = ZERO
    manual_names = []
    for item_in in sale_in.items:
        price = round_money(item_in.price)
        line_total = round_money(price * item_in.quantity)
        sub_total += line_total

        if item_in.product_id is None:
            cost_price = round_money(item_in.cost_price or 0)
            product_code = item_in.product_code
            manual_names.append(f"{item_in.product_name} (x{item_in.quantity})")
        else:
            product = products[item_in.product_id]
            cost_price = round_money(product.cost_price)
            product_code = product.product_code
            old_stock = product.stock
            product.stock = old_stock - item_in.quantity
            log_activity(
                db, "INVENTORY_UPDATE",
                f"Stock for {product.name} decreased by {item_in.quantity} due to sale #{numeric_id}. "
                f"New stock: {product.stock}.",
                {
                    "productId": product.id,
                    "productCode": product.product_code,
                    "oldStock": old_stock,
                    "newStock": product.stock,
                    "quantityChanged": -item_in.quantity,
                    "saleId": numeric_id,
                }
            )
        computed_cogs += cost_price * item_in.quantity

        items.append(SaleItem(
            product_id=item_in.product_id,
            product_code=product_code,
            product_name=item_in.product_name.strip(),
            quantity=item_in.quantity,
            price=price,
            original_price_before_item_discount=(
                round_money(item_in.original_price_before_item_discount)
                if item_in.original_price_before_item_discount is not None else None
            ),
            item_discount_applied_percentage=item_in.item_discount_applied_percentage,
            cost_price=cost_price,
            total=line_total,
        ))

    sub_total = round_money(sub_total)
    discount_amount = round_money(sale_in.discount_amount)
    grand_total = max(ZERO, sub_total - discount_amount)
    if sale_in.estimated_total_cogs is not None:
        estimated_cogs = round_money(sale_in.estimated_total_cogs)
    else:
        estimated_cogs = round_money(computed_cogs)

    instant_description = None
    if sale_in.sale_type == "INSTANT" and manual_names:
        instant_description = ", ".join(manual_names)

    sale = Sale(
        numeric_sale_id=numeric_id,
        sale_type=sale_in.sale_type,
        customer_id=customer.id if customer else None,
        customer_name=customer_name,
        shop_name=shop_name,
        instant_sale_items_description=instant_description,
        estimated_total_cogs=estimated_cogs,
        sub_total=sub_total,
        discount_amount=discount_amount,
        grand_total=grand_total,
        items=items,
    )
    db.add(sale)
    await db.flush()

    if shop_name:
        remember_shop_name(app_settings, shop_name)

    # 4. 经营现金
    description = f"Income from Sale #{numeric_id} to {customer_name}"
    if shop_name:
        description += f" at {shop_name}"
    await record_business_transaction(
        db, "sale_income", grand_total, description,
        related_document=f"sale:{sale.id}",
        notes=f"{len(items)} item(s) sold.",
        date=sale.sale_date
    )

    sale_label = "Regular" if sale_in.sale_type == "REGULAR" else "Instant"
    log_activity(
        db, "SALE",
        f"{sale_label} Sale #{numeric_id} processed. "
        f"Total: {format_money(grand_total, app_settings.currency)}. "
        f"Customer: {customer_name}. Shop: {shop_name or 'N/A'}.",
        {
            "saleId": sale.id,
            "numericSaleId": numeric_id,
            "saleType": sale_in.sale_type,
            "customerId": sale.customer_id,
            "grandTotal": grand_total,
            "discountAmount": discount_amount,
            "itemCount": len(items),
        }
    )

    await db.commit()
    logger.info(f"🛒 销售 #{numeric_id}: {customer_name} {grand_total} ({len(items)} 项)")
    return await load_sale(db, sale.id)
