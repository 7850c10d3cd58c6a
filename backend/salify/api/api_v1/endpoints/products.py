"""商品管理API"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from salify.core.deps import get_db
from salify.core.logging_config import get_logger
from salify.core.money import round_money, format_money, ZERO
from salify.models.product import Product, DEFAULT_CATEGORY
from salify.models.supplier import Supplier
from salify.schemas.product import (
    ProductCreate, ProductUpdate, StockUpdate, ProductResponse, ProductListResponse
)
from salify.services.activity import log_activity
from salify.services.app_settings import get_app_settings, remember_category
from salify.services.ledger import record_business_transaction

router = APIRouter()
logger = get_logger(__name__)


async def get_product_by_code(db: AsyncSession, product_code: str) -> Optional[Product]:
    result = await db.execute(
        select(Product).where(Product.product_code == product_code.strip())
    )
    return result.scalar_one_or_none()


async def get_product_or_404(db: AsyncSession, product_id: int) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail=f"Product with ID {product_id} not found.")
    return product


async def ensure_supplier_exists(db: AsyncSession, supplier_id: Optional[int]) -> None:
    if supplier_id is not None and not await db.get(Supplier, supplier_id):
        raise HTTPException(status_code=404, detail=f"Supplier with ID {supplier_id} not found.")


@router.get("/", response_model=ProductListResponse)
async def list_products(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    search: Optional[str] = Query(None, description="名称/编码"),
    category: Optional[str] = Query(None),
    supplier_id: Optional[int] = Query(None),
    low_stock: bool = Query(False, description="只看低库存"),
    out_of_stock: bool = Query(False, description="只看缺货")) -> Any:
    """获取商品列表"""
    conditions = []
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(or_(Product.name.ilike(pattern), Product.product_code.ilike(pattern)))
    if category:
        conditions.append(Product.category == category)
    if supplier_id:
        conditions.append(Product.supplier_id == supplier_id)
    if low_stock:
        app_settings = await get_app_settings(db)
        conditions.append(and_(Product.stock > 0, Product.stock < app_settings.low_stock_threshold))
    if out_of_stock:
        conditions.append(Product.stock <= 0)

    query = select(Product)
    count_query = select(func.count(Product.id))
    if conditions:
        query = query.where(and_(*conditions))
        count_query = count_query.where(and_(*conditions))

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(Product.name.asc()).offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)

    return ProductListResponse(
        data=result.scalars().all(),
        total=total,
        page=page,
        limit=limit
    )


@router.get("/by-code/{product_code}", response_model=ProductResponse)
async def get_product_by_code_endpoint(
    *,
    db: AsyncSession = Depends(get_db),
    product_code: str) -> Any:
    """按编码查询商品"""
    product = await get_product_by_code(db, product_code)
    if not product:
        raise HTTPException(status_code=404, detail=f'Product with code "{product_code}" not found.')
    return product


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int) -> Any:
    """获取商品详情"""
    return await get_product_or_404(db, product_id)


@router.post("/", response_model=ProductResponse)
async def create_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_in: ProductCreate) -> Any:
    """
    新增商品

    期初库存有成本时，按 成本 × 数量 从经营现金中支出
    """
    existing = await get_product_by_code(db, product_in.product_code)
    if existing:
        raise HTTPException(
            status_code=400,
            detail=f'Product with code "{product_in.product_code}" already exists (Name: {existing.name}). '
                   f'Product codes must be unique.'
        )
    await ensure_supplier_exists(db, product_in.supplier_id)

    category = (product_in.category or "").strip() or DEFAULT_CATEGORY
    product = Product(
        product_code=product_in.product_code,
        name=product_in.name.strip(),
        price=round_money(product_in.price),
        cost_price=round_money(product_in.cost_price),
        stock=product_in.stock,
        category=category,
        supplier_id=product_in.supplier_id,
        discount_percentage=round_money(product_in.discount_percentage),
    )
    db.add(product)
    await db.flush()

    app_settings = await get_app_settings(db)
    remember_category(app_settings, category)

    if product.stock > 0 and product.cost_price > ZERO:
        await record_business_transaction(
            db, "purchase_payment",
            -(product.cost_price * product.stock),
            f"Initial stock purchase: {product.name} (x{product.stock})",
            related_document=f"product:{product.id}"
        )

    log_activity(
        db, "INVENTORY_UPDATE",
        f"New product added: {product.name} (Code: {product.product_code}). "
        f"Stock: {product.stock} @ {product.cost_price:.2f} each. Discount: {product.discount_percentage}%.",
        {
            "productId": product.id,
            "productCode": product.product_code,
            "productName": product.name,
            "stock": product.stock,
            "costPrice": product.cost_price,
            "category": category,
        }
    )

    await db.commit()
    logger.info(f"📦 新增商品: {product.product_code} {product.name}")
    return product


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int,
    product_in: ProductUpdate) -> Any:
    """更新商品资料（不含编码和库存）"""
    product = await get_product_or_404(db, product_id)

    update_data = product_in.model_dump(exclude_unset=True)
    if "supplier_id" in update_data:
        await ensure_supplier_exists(db, update_data["supplier_id"])

    updated_fields = []
    for field, value in update_data.items():
        if field in ("price", "cost_price", "discount_percentage"):
            if value is None:
                continue
            value = round_money(value)
        elif field == "name":
            if value is None:
                continue
            value = value.strip()
        elif field == "category":
            value = (value or "").strip() or DEFAULT_CATEGORY
        if getattr(product, field) != value:
            setattr(product, field, value)
            updated_fields.append(field)

    if not updated_fields:
        return product

    if "category" in updated_fields:
        app_settings = await get_app_settings(db)
        remember_category(app_settings, product.category)

    log_activity(
        db, "INVENTORY_UPDATE",
        f"Details updated for product: {product.name} (Code: {product.product_code}).",
        {"productId": product.id, "updatedFields": updated_fields}
    )

    await db.commit()
    return product


@router.post("/{product_id}/stock", response_model=ProductResponse)
async def update_product_stock(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int,
    stock_in: StockUpdate) -> Any:
    """
    调整库存

    set: 设为指定数量；add / remove: 增减指定数量；结果小于0时按0处理。
    库存增加时按 单价 × 增量 从经营现金支出
    """
    product = await get_product_or_404(db, product_id)
    old_stock = product.stock or 0

    if stock_in.mode == "set":
        new_stock = stock_in.quantity
    elif stock_in.mode == "add":
        new_stock = old_stock + stock_in.quantity
    else:
        new_stock = old_stock - stock_in.quantity
    new_stock = max(0, new_stock)

    product.stock = new_stock
    increase = new_stock - old_stock

    unit_cost = round_money(stock_in.cost_price) if stock_in.cost_price is not None else product.cost_price
    if increase > 0 and unit_cost > ZERO:
        await record_business_transaction(
            db, "purchase_payment",
            -(unit_cost * increase),
            f"Stock added for {product.name} (x{increase})",
            related_document=f"product:{product.id}"
        )

    description = f"Stock for {product.name} (Code: {product.product_code}) "
    if stock_in.mode == "set":
        description += f"set to {new_stock}."
    elif stock_in.mode == "add":
        description += f"increased by {stock_in.quantity}. New stock: {new_stock}."
    else:
        description += f"decreased by {stock_in.quantity}. New stock: {new_stock}."

    log_activity(
        db, "STOCK_ADD" if stock_in.mode == "add" else "INVENTORY_UPDATE",
        description,
        {
            "productId": product.id,
            "productCode": product.product_code,
            "productName": product.name,
            "oldStock": old_stock,
            "newStock": new_stock,
            "quantityChanged": stock_in.quantity,
            "action": stock_in.mode,
        }
    )

    await db.commit()
    logger.info(f"📦 库存调整: {product.product_code} {old_stock} → {new_stock}")
    return product


@router.delete("/{product_id}")
async def delete_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int,
    credit_cash_for_stock: bool = Query(False, description="把剩余库存成本退回经营现金")) -> Any:
    """删除商品"""
    product = await get_product_or_404(db, product_id)

    credited = ZERO
    if credit_cash_for_stock and product.stock > 0 and product.cost_price > ZERO:
        credited = round_money(product.cost_price * product.stock)
        await record_business_transaction(
            db, "stock_adjustment_credit", credited,
            f"Stock value credited for deleted product: {product.name}",
            related_document=f"product:{product.id}"
        )

    app_settings = await get_app_settings(db)
    description = f"Product removed from inventory: {product.name} (Code: {product.product_code})."
    if credited > ZERO:
        description += f" Stock value of {format_money(credited, app_settings.currency)} credited to business cash."
    log_activity(db, "PRODUCT_DELETE", description, {
        "productId": product.id,
        "productCode": product.product_code,
        "productName": product.name,
        "stock": product.stock,
        "creditedAmount": credited if credited > ZERO else None,
    })

    await db.delete(product)
    await db.commit()
    logger.info(f"🗑️ 删除商品: {product.product_code}")
    return {"message": "Product deleted", "credited_amount": float(credited)}
