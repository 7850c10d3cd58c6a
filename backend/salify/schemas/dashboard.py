"""仪表盘 Schema"""
from typing import Optional, List
from pydantic import BaseModel


class DashboardStats(BaseModel):
    """仪表盘统计"""
    period: str
    period_label: str
    total_revenue: float = 0
    sales_count: int = 0
    new_customers: int = 0
    low_stock_count: int = 0
    out_of_stock_count: int = 0
    low_stock_threshold: int = 0
    product_count: int = 0
    supplier_count: int = 0
    current_business_cash: float = 0


class TopProductItem(BaseModel):
    product_id: int
    product_code: Optional[str] = None
    product_name: str
    total_quantity: int
    total_revenue: float


class TopProductsResponse(BaseModel):
    period: str
    data: List[TopProductItem]
