"""销售单 Schema"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field


class SaleItemIn(BaseModel):
    """
    销售明细

    product_id 为空表示手工录入商品，不扣库存，成本取 cost_price
    """
    product_id: Optional[int] = None
    product_code: Optional[str] = Field(None, max_length=50)
    product_name: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0, description="折后单价")
    original_price_before_item_discount: Optional[float] = Field(None, ge=0)
    item_discount_applied_percentage: Optional[float] = Field(None, ge=0, le=100)
    cost_price: Optional[float] = Field(None, ge=0, description="手工商品成本")


class SaleCreate(BaseModel):
    """结账"""
    sale_type: str = Field("REGULAR", pattern="^(REGULAR|INSTANT)$")
    customer_id: Optional[int] = None
    customer_name: Optional[str] = Field(None, max_length=100)
    shop_name: Optional[str] = Field(None, max_length=100)
    items: List[SaleItemIn] = Field(..., min_length=1)
    discount_amount: float = Field(0, ge=0)
    estimated_total_cogs: Optional[float] = Field(None, ge=0)


class SaleItemResponse(BaseModel):
    id: int
    product_id: Optional[int] = None
    product_code: Optional[str] = None
    product_name: str
    quantity: int
    price: float
    original_price_before_item_discount: Optional[float] = None
    item_discount_applied_percentage: Optional[float] = None
    cost_price: float = 0
    total: float

    class Config:
        from_attributes = True


class SaleResponse(BaseModel):
    """销售单响应"""
    id: int
    numeric_sale_id: int
    sale_type: str
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    shop_name: Optional[str] = None
    items: List[SaleItemResponse] = []
    instant_sale_items_description: Optional[str] = None
    estimated_total_cogs: float = 0
    sub_total: float
    discount_amount: float = 0
    grand_total: float
    gross_profit: float = 0
    sale_date: datetime

    class Config:
        from_attributes = True


class SaleListResponse(BaseModel):
    data: List[SaleResponse]
    total: int
    page: int
    limit: int
