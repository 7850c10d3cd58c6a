"""退货 Schema"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field


class ReturnItemIn(BaseModel):
    """退货明细（product_id 为空表示手工商品）"""
    product_id: Optional[int] = None
    product_code: Optional[str] = Field(None, max_length=50)
    product_name: str = Field(..., min_length=1, max_length=200)
    quantity_returned: int = Field(..., gt=0)
    original_sale_price: float = Field(..., ge=0)
    return_reason: Optional[str] = Field(None, max_length=500)


class SaleReturnCreate(BaseModel):
    """处理退货"""
    original_sale_id: Optional[int] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = Field(None, max_length=100)
    items: List[ReturnItemIn] = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=500)
    refund_method: Optional[str] = Field(None, max_length=50)
    adjustment_amount: float = Field(0, ge=0)
    adjustment_type: str = Field("deduct", pattern="^(deduct|add)$")
    notes: Optional[str] = None


class ReturnItemResponse(BaseModel):
    id: int
    product_id: Optional[int] = None
    product_code: Optional[str] = None
    product_name: str
    quantity_returned: int
    original_sale_price: float
    return_reason: Optional[str] = None
    item_subtotal: float
    stock_updated: Optional[bool] = None

    class Config:
        from_attributes = True


class SaleReturnResponse(BaseModel):
    """退货单响应"""
    id: int
    numeric_return_id: int
    original_sale_id: Optional[int] = None
    original_numeric_sale_id: Optional[int] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    items: List[ReturnItemResponse] = []
    return_date: datetime
    reason: str
    refund_method: Optional[str] = None
    subtotal_returned_amount: float
    adjustment_amount: float
    adjustment_type: str
    net_refund_amount: float
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SaleReturnListResponse(BaseModel):
    data: List[SaleReturnResponse]
    total: int
    page: int
    limit: int
