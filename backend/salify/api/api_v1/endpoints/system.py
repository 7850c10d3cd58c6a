"""系统管理API - 清空业务数据"""

from typing import Any
from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from salify.core.deps import get_db
from salify.core.logging_config import get_logger
from salify.db.init_db import seed_base_data
from salify.models import (
    ActivityLog, AppSettings, BusinessTransaction, Customer, PaymentAllocation, Product,
    PurchaseInvoice, PurchaseItem, Quotation, QuotationItem, ReturnItem, Sale, SaleItem,
    SaleReturn, Supplier, SupplierPayment
)
from salify.services.activity import log_activity

router = APIRouter()
logger = get_logger(__name__)

# 按外键依赖顺序删除（从子表到父表）
RESET_MODELS = [
    PaymentAllocation,
    SupplierPayment,
    PurchaseItem,
    PurchaseInvoice,
    ReturnItem,
    SaleReturn,
    SaleItem,
    Sale,
    QuotationItem,
    Quotation,
    Product,
    Supplier,
    Customer,
    BusinessTransaction,
    ActivityLog,
    AppSettings,
]


@router.post("/reset-business-data")
async def reset_business_data(
    *,
    db: AsyncSession = Depends(get_db),
    confirm: bool = Query(False, description="确认执行")) -> Any:
    """
    清除所有业务数据

    设置恢复默认值（计数器、经营现金归零），重新创建系统散客
    """
    if not confirm:
        return {
            "preview": True,
            "message": "Preview only - all business data will be deleted",
            "tip": "Add ?confirm=true to execute"
        }

    cleared = {}
    for model in RESET_MODELS:
        result = await db.execute(delete(model))
        cleared[model.__tablename__] = result.rowcount
    db.expunge_all()

    await seed_base_data(db)
    log_activity(
        db, "SETTINGS_UPDATE",
        "All business data was reset. Settings restored to defaults.",
        {"clearedTables": cleared}
    )
    await db.commit()

    logger.warning(f"🧹 业务数据已清空: {sum(cleared.values())} 条记录")
    return {
        "success": True,
        "message": "Business data reset",
        "cleared_tables": cleared
    }
