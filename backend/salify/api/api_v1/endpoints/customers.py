"""客户管理API"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, or_, and_, update
from sqlalchemy.ext.asyncio import AsyncSession

from salify.core.deps import get_db
from salify.core.logging_config import get_logger
from salify.core.periods import PERIOD_PATTERN, resolve_date_range, apply_date_range
from salify.models.customer import Customer
from salify.models.sale import Sale
from salify.models.quotation import Quotation
from salify.models.sale_return import SaleReturn
from salify.schemas.customer import (
    CustomerCreate, CustomerUpdate, CustomerResponse, CustomerListResponse
)
from salify.services.activity import log_activity
from salify.services.app_settings import next_numeric_id

router = APIRouter()
logger = get_logger(__name__)

WALK_IN_PROTECTED_MESSAGE = "The default 'Walk-in Customer' cannot be deleted."


async def generate_customer_code(db: AsyncSession) -> str:
    """生成客户编码 CUST001"""
    numeric_id = await next_numeric_id(db, "customer")
    return f"CUST{numeric_id:03d}"


async def create_customer(
    db: AsyncSession,
    name: Optional[str],
    phone: str,
    company_name: Optional[str] = None,
    email: Optional[str] = None,
    address: Optional[str] = None) -> Customer:
    """创建客户（不提交），供新增客户和销售自动建档共用"""
    customer = Customer(
        code=await generate_customer_code(db),
        name=(name or "").strip(),
        company_name=(company_name or "").strip() or None,
        phone=phone.strip(),
        email=email,
        address=address,
        is_walk_in=False,
    )
    db.add(customer)
    await db.flush()
    return customer


async def get_customer_or_404(db: AsyncSession, customer_id: int) -> Customer:
    customer = await db.get(Customer, customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found.")
    return customer


@router.get("/", response_model=CustomerListResponse)
async def list_customers(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    period: Optional[str] = Query(None, pattern=PERIOD_PATTERN, description="按加入时间筛选"),
    search: Optional[str] = Query(None, description="姓名/公司/电话"),
    include_walk_in: bool = Query(True)) -> Any:
    """获取客户列表"""
    conditions = []
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(or_(
            Customer.name.ilike(pattern),
            Customer.company_name.ilike(pattern),
            Customer.phone.ilike(pattern)
        ))
    if not include_walk_in:
        conditions.append(Customer.is_walk_in == False)

    date_range = resolve_date_range(period)
    query = apply_date_range(select(Customer), Customer.joined_date, date_range)
    count_query = apply_date_range(select(func.count(Customer.id)), Customer.joined_date, date_range)
    if conditions:
        query = query.where(and_(*conditions))
        count_query = count_query.where(and_(*conditions))

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(Customer.joined_date.desc(), Customer.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)

    return CustomerListResponse(
        data=result.scalars().all(),
        total=total,
        page=page,
        limit=limit
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    *,
    db: AsyncSession = Depends(get_db),
    customer_id: int) -> Any:
    """获取客户详情"""
    return await get_customer_or_404(db, customer_id)


@router.post("/", response_model=CustomerResponse)
async def add_customer(
    *,
    db: AsyncSession = Depends(get_db),
    customer_in: CustomerCreate) -> Any:
    """新增客户"""
    customer = await create_customer(
        db,
        name=customer_in.name,
        phone=customer_in.phone,
        company_name=customer_in.company_name,
        email=customer_in.email,
        address=customer_in.address,
    )
    log_activity(
        db, "NEW_CUSTOMER",
        f"New customer registered: {customer.display_name} (ID: {customer.code})",
        {"customerId": customer.id, "customerCode": customer.code, "customerName": customer.display_name}
    )

    await db.commit()
    logger.info(f"👤 新增客户: {customer.code} {customer.display_name}")
    return customer


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    *,
    db: AsyncSession = Depends(get_db),
    customer_id: int,
    customer_in: CustomerUpdate) -> Any:
    """更新客户（系统散客不可修改）"""
    customer = await get_customer_or_404(db, customer_id)
    if customer.is_walk_in:
        raise HTTPException(status_code=400, detail="The default 'Walk-in Customer' cannot be edited.")

    update_data = customer_in.model_dump(exclude_unset=True)
    if "phone" in update_data and not (update_data["phone"] or "").strip():
        raise HTTPException(status_code=400, detail="Phone number cannot be empty.")

    for field, value in update_data.items():
        if isinstance(value, str):
            value = value.strip()
        if field == "name":
            value = value or ""
        setattr(customer, field, value)

    if not customer.name and not customer.company_name:
        raise HTTPException(status_code=400, detail="Customer Name or Company Name is required.")

    log_activity(
        db, "CUSTOMER_UPDATE",
        f"Customer details updated for {customer.display_name}",
        {"customerId": customer.id, "updatedFields": list(update_data.keys())}
    )

    await db.commit()
    return customer


@router.delete("/{customer_id}")
async def delete_customer(
    *,
    db: AsyncSession = Depends(get_db),
    customer_id: int) -> Any:
    """
    删除客户

    销售单、报价单、退货单中的客户关联被解除（保留名称快照）
    """
    customer = await get_customer_or_404(db, customer_id)
    if customer.is_walk_in:
        raise HTTPException(status_code=400, detail=WALK_IN_PROTECTED_MESSAGE)

    for model in (Sale, Quotation, SaleReturn):
        await db.execute(
            update(model).where(model.customer_id == customer.id).values(customer_id=None)
        )

    log_activity(
        db, "CUSTOMER_DELETE",
        f"Customer removed: {customer.display_name}",
        {"customerId": customer.id, "customerCode": customer.code}
    )

    await db.delete(customer)
    await db.commit()
    logger.info(f"🗑️ 删除客户: {customer.code}")
    return {"message": "Customer deleted"}
