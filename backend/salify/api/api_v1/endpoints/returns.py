"""
销售退货API

退货在同一事务内：库存回补、经营现金 -= 净退款（sale_return 流水）
"""

from collections import defaultdict
from typing import Any, Dict, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from salify.core.deps import get_db
from salify.core.logging_config import get_logger
from salify.core.money import round_money, format_money, ZERO
from salify.core.periods import PERIOD_PATTERN, resolve_date_range, apply_date_range
from salify.models.customer import Customer
from salify.models.product import Product
from salify.models.sale import Sale
from salify.models.sale_return import SaleReturn, ReturnItem
from salify.schemas.sale_return import SaleReturnCreate, SaleReturnResponse, SaleReturnListResponse
from salify.services.activity import log_activity
from salify.services.app_settings import get_app_settings, next_numeric_id
from salify.services.ledger import record_business_transaction

router = APIRouter()
logger = get_logger(__name__)


async def load_return(db: AsyncSession, return_id: int) -> Optional[SaleReturn]:
    result = await db.execute(
        select(SaleReturn)
        .options(selectinload(SaleReturn.items))
        .where(SaleReturn.id == return_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_returned_quantities(db: AsyncSession, sale_id: int) -> Dict[int, int]:
    """原销售单各商品已退数量"""
    result = await db.execute(
        select(ReturnItem.product_id, func.sum(ReturnItem.quantity_returned))
        .join(SaleReturn, ReturnItem.return_id == SaleReturn.id)
        .where(SaleReturn.original_sale_id == sale_id, ReturnItem.product_id.isnot(None))
        .group_by(ReturnItem.product_id)
    )
    return {product_id: int(quantity or 0) for product_id, quantity in result.all()}


def calculate_net_refund(subtotal, adjustment_amount, adjustment_type: str):
    """净退款：add 加上调整额，deduct 扣除调整额（不低于0）"""
    if adjustment_type == "add":
        return subtotal + adjustment_amount
    return max(ZERO, subtotal - adjustment_amount)


async def check_return_limits(db: AsyncSession, sale: Sale, return_in: SaleReturnCreate) -> None:
    """每个商品的累计退货数量不能超过原单销售数量"""
    sold: Dict[int, int] = defaultdict(int)
    for item in sale.items:
        if item.product_id is not None:
            sold[item.product_id] += item.quantity

    requested: Dict[int, int] = defaultdict(int)
    names: Dict[int, str] = {}
    for item in return_in.items:
        if item.product_id is not None:
            requested[item.product_id] += item.quantity_returned
            names[item.product_id] = item.product_name

    already_returned = await get_returned_quantities(db, sale.id)
    for product_id, quantity in requested.items():
        if product_id not in sold:
            raise HTTPException(
                status_code=400,
                detail=f"{names[product_id]} was not part of sale #{sale.numeric_sale_id}."
            )
        previous = already_returned.get(product_id, 0)
        if previous + quantity > sold[product_id]:
            raise HTTPException(
                status_code=400,
                detail=f"Cannot return more {names[product_id]} than sold. "
                       f"Sold: {sold[product_id]}, Already returned: {previous}, Requested: {quantity}"
            )


@router.get("/", response_model=SaleReturnListResponse)
async def list_returns(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    period: Optional[str] = Query(None, pattern=PERIOD_PATTERN),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    original_sale_id: Optional[int] = Query(None)) -> Any:
    """获取退货单列表（最新的在前）"""
    date_range = resolve_date_range(period, start_date, end_date)
    query = apply_date_range(
        select(SaleReturn).options(selectinload(SaleReturn.items)), SaleReturn.return_date, date_range
    )
    count_query = apply_date_range(select(func.count(SaleReturn.id)), SaleReturn.return_date, date_range)
    if original_sale_id:
        query = query.where(SaleReturn.original_sale_id == original_sale_id)
        count_query = count_query.where(SaleReturn.original_sale_id == original_sale_id)

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(SaleReturn.return_date.desc(), SaleReturn.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)

    return SaleReturnListResponse(
        data=result.scalars().all(),
        total=total,
        page=page,
        limit=limit
    )


@router.get("/{return_id}", response_model=SaleReturnResponse)
async def get_return(
    *,
    db: AsyncSession = Depends(get_db),
    return_id: int) -> Any:
    """获取退货单详情"""
    sale_return = await load_return(db, return_id)
    if not sale_return:
        raise HTTPException(status_code=404, detail="Return not found.")
    return sale_return


@router.post("/", response_model=SaleReturnResponse)
async def process_return(
    *,
    db: AsyncSession = Depends(get_db),
    return_in: SaleReturnCreate) -> Any:
    """处理退货"""
    sale = None
    if return_in.original_sale_id is not None:
        result = await db.execute(
            select(Sale).options(selectinload(Sale.items)).where(Sale.id == return_in.original_sale_id)
        )
        sale = result.scalar_one_or_none()
        if not sale:
            raise HTTPException(status_code=404, detail="Original sale not found.")
        await check_return_limits(db, sale, return_in)

    customer_id = return_in.customer_id
    if customer_id is None and sale is not None:
        customer_id = sale.customer_id
    customer = await db.get(Customer, customer_id) if customer_id else None
    if customer_id and not customer:
        raise HTTPException(status_code=404, detail=f"Customer with ID {customer_id} not found.")

    customer_name = (return_in.customer_name or "").strip()
    if not customer_name:
        if customer is not None:
            customer_name = customer.display_name
        elif sale is not None:
            customer_name = sale.customer_name
    customer_name = customer_name or "N/A"

    app_settings = await get_app_settings(db)
    numeric_id = await next_numeric_id(db, "return")

    items = []
    subtotal = ZERO
    for item_in in return_in.items:
        original_price = round_money(item_in.original_sale_price)
        item_subtotal = round_money(original_price * item_in.quantity_returned)
        subtotal += item_subtotal

        stock_updated = None
        product_code = item_in.product_code
        if item_in.product_id is None:
            log_activity(
                db, "RETURN_PROCESSED",
                f'Manual item "{item_in.product_name}" (qty: {item_in.quantity_returned}) included in '
                f"return #{numeric_id}. No stock updated.",
                {"returnId": numeric_id, "productName": item_in.product_name, "quantity": item_in.quantity_returned}
            )
        else:
            product = await db.get(Product, item_in.product_id)
            if product:
                old_stock = product.stock or 0
                product.stock = old_stock + item_in.quantity_returned
                product_code = product.product_code
                stock_updated = True
                log_activity(
                    db, "STOCK_ADD",
                    f"Stock for {product.name} (Code: {product.product_code}) increased by "
                    f"{item_in.quantity_returned} due to return #{numeric_id}. New stock: {product.stock}.",
                    {
                        "productId": product.id,
                        "productCode": product.product_code,
                        "oldStock": old_stock,
                        "newStock": product.stock,
                        "quantityChanged": item_in.quantity_returned,
                        "returnId": numeric_id,
                    }
                )
            else:
                stock_updated = False
                log_activity(
                    db, "RETURN_PROCESSED",
                    f'Product "{item_in.product_name}" (ID: {item_in.product_id}) no longer exists. '
                    f"Stock not updated for return #{numeric_id}.",
                    {"returnId": numeric_id, "productId": item_in.product_id, "quantity": item_in.quantity_returned}
                )

        items.append(ReturnItem(
            product_id=item_in.product_id,
            product_code=product_code,
            product_name=item_in.product_name.strip(),
            quantity_returned=item_in.quantity_returned,
            original_sale_price=original_price,
            return_reason=item_in.return_reason,
            item_subtotal=item_subtotal,
            stock_updated=stock_updated,
        ))

    subtotal = round_money(subtotal)
    adjustment_amount = round_money(return_in.adjustment_amount)
    net_refund = round_money(calculate_net_refund(subtotal, adjustment_amount, return_in.adjustment_type))

    sale_return = SaleReturn(
        numeric_return_id=numeric_id,
        original_sale_id=sale.id if sale else None,
        original_numeric_sale_id=sale.numeric_sale_id if sale else None,
        customer_id=customer.id if customer else None,
        customer_name=customer_name,
        reason=return_in.reason.strip(),
        refund_method=return_in.refund_method,
        subtotal_returned_amount=subtotal,
        adjustment_amount=adjustment_amount,
        adjustment_type=return_in.adjustment_type,
        net_refund_amount=net_refund,
        notes=return_in.notes,
        items=items,
    )
    db.add(sale_return)
    await db.flush()

    invoice_ref = sale.numeric_sale_id if sale else "N/A"
    await record_business_transaction(
        db, "sale_return", -net_refund,
        f"Refund for Sale Return #{numeric_id} (Inv: {invoice_ref}) to {customer_name}.",
        related_document=f"return:{sale_return.id}",
        notes=return_in.reason.strip(),
        date=sale_return.return_date
    )

    log_activity(
        db, "RETURN_PROCESSED",
        f"Return #{numeric_id} processed for {customer_name}. "
        f"Net refund: {format_money(net_refund, app_settings.currency)}.",
        {
            "returnId": sale_return.id,
            "numericReturnId": numeric_id,
            "originalSaleId": sale_return.original_numeric_sale_id,
            "subtotal": subtotal,
            "adjustmentAmount": adjustment_amount,
            "adjustmentType": return_in.adjustment_type,
            "netRefund": net_refund,
        }
    )

    await db.commit()
    logger.info(f"↩️ 退货 #{numeric_id}: {customer_name} 退款 {net_refund}")
    return await load_return(db, sale_return.id)
