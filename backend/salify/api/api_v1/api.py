"""V1 API 路由聚合 - 单机版（无认证）"""
from fastapi import APIRouter

from salify.api.api_v1.endpoints import (
    settings, activity, financial, products, customers, suppliers, supplier_payments,
    purchases, sales, returns, quotations, dashboard, backup, system
)

api_router = APIRouter()

# 核心业务API
api_router.include_router(products.router, prefix="/products", tags=["商品管理"])
api_router.include_router(customers.router, prefix="/customers", tags=["客户管理"])
api_router.include_router(sales.router, prefix="/sales", tags=["销售"])
api_router.include_router(returns.router, prefix="/returns", tags=["销售退货"])
api_router.include_router(quotations.router, prefix="/quotations", tags=["报价单"])

# 采购与供应商API
api_router.include_router(suppliers.router, prefix="/suppliers", tags=["供应商管理"])
api_router.include_router(purchases.router, prefix="/purchases", tags=["采购发票"])
api_router.include_router(supplier_payments.router, prefix="/supplier-payments", tags=["供应商付款"])

# 财务API
api_router.include_router(financial.router, prefix="/financial", tags=["经营现金"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["仪表盘"])

# 系统API
api_router.include_router(settings.router, prefix="/settings", tags=["应用设置"])
api_router.include_router(activity.router, prefix="/activity", tags=["操作日志"])
api_router.include_router(backup.router, prefix="/backup", tags=["数据备份"])
api_router.include_router(system.router, prefix="/system", tags=["系统管理"])
