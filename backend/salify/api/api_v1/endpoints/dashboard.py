"""仪表盘API"""

from typing import Any
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from salify.core.deps import get_db
from salify.core.periods import PERIOD_PATTERN, get_period_range, get_period_label, apply_date_range
from salify.models.customer import Customer
from salify.models.product import Product
from salify.models.sale import Sale, SaleItem
from salify.models.supplier import Supplier
from salify.schemas.dashboard import DashboardStats, TopProductItem, TopProductsResponse
from salify.services.app_settings import get_app_settings

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    *,
    db: AsyncSession = Depends(get_db),
    period: str = Query("this_month", pattern=PERIOD_PATTERN)) -> Any:
    """获取仪表盘统计"""
    app_settings = await get_app_settings(db)
    threshold = app_settings.low_stock_threshold
    date_range = get_period_range(period)

    # 期间销售
    sales_result = await db.execute(
        apply_date_range(
            select(func.coalesce(func.sum(Sale.grand_total), 0), func.count(Sale.id)),
            Sale.sale_date, date_range
        )
    )
    sales_row = sales_result.first()
    total_revenue = float(sales_row[0]) if sales_row else 0
    sales_count = int(sales_row[1]) if sales_row else 0

    # 期间新客户（不含系统散客）
    customers_result = await db.execute(
        apply_date_range(
            select(func.count(Customer.id)).where(Customer.is_walk_in == False),
            Customer.joined_date, date_range
        )
    )
    new_customers = customers_result.scalar() or 0

    low_stock_result = await db.execute(
        select(func.count(Product.id)).where(and_(Product.stock > 0, Product.stock < threshold))
    )
    out_of_stock_result = await db.execute(
        select(func.count(Product.id)).where(Product.stock <= 0)
    )
    product_count_result = await db.execute(select(func.count(Product.id)))
    supplier_count_result = await db.execute(select(func.count(Supplier.id)))

    return DashboardStats(
        period=period,
        period_label=get_period_label(period),
        total_revenue=total_revenue,
        sales_count=sales_count,
        new_customers=new_customers,
        low_stock_count=low_stock_result.scalar() or 0,
        out_of_stock_count=out_of_stock_result.scalar() or 0,
        low_stock_threshold=threshold,
        product_count=product_count_result.scalar() or 0,
        supplier_count=supplier_count_result.scalar() or 0,
        current_business_cash=float(app_settings.current_business_cash or 0)
    )


@router.get("/top-products", response_model=TopProductsResponse)
async def get_top_selling_products(
    *,
    db: AsyncSession = Depends(get_db),
    count: int = Query(5, ge=1, le=50),
    period: str = Query("this_month", pattern=PERIOD_PATTERN)) -> Any:
    """畅销商品排行（按销售数量，只统计库存商品）"""
    total_quantity = func.sum(SaleItem.quantity).label("total_quantity")
    query = (
        select(
            SaleItem.product_id,
            func.max(SaleItem.product_code).label("product_code"),
            func.max(SaleItem.product_name).label("product_name"),
            total_quantity,
            func.sum(SaleItem.total).label("total_revenue")
        )
        .join(Sale, SaleItem.sale_id == Sale.id)
        .where(SaleItem.product_id.isnot(None))
    )
    query = apply_date_range(query, Sale.sale_date, get_period_range(period))
    query = query.group_by(SaleItem.product_id).order_by(total_quantity.desc()).limit(count)
    result = await db.execute(query)

    # 商品名以当前资料为准（商品已删除时用明细快照）
    rows = result.all()
    product_ids = [row.product_id for row in rows]
    names = {}
    if product_ids:
        products_result = await db.execute(
            select(Product.id, Product.name, Product.product_code).where(Product.id.in_(product_ids))
        )
        names = {p.id: (p.name, p.product_code) for p in products_result.all()}

    data = []
    for row in rows:
        name, code = names.get(row.product_id, (row.product_name, row.product_code))
        data.append(TopProductItem(
            product_id=row.product_id,
            product_code=code,
            product_name=name,
            total_quantity=int(row.total_quantity or 0),
            total_revenue=float(row.total_revenue or 0)
        ))

    return TopProductsResponse(period=period, data=data)
