"""报价单 Schema"""
from typing import Optional, List, Any
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator


class QuotationItemIn(BaseModel):
    product_id: Optional[int] = None
    product_code: Optional[str] = Field(None, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    quantity: float = Field(..., gt=0)
    sale_price: float = Field(..., ge=0)
    cost_price: Optional[float] = Field(None, ge=0)
    discount_percentage: float = Field(0, ge=0, le=100)
    tax_percentage: float = Field(0, ge=0, le=100)


class QuotationCreate(BaseModel):
    """新建报价单"""
    customer_id: Optional[int] = None
    customer_name: str = Field(..., max_length=100)
    quote_date: date
    valid_till_date: date
    items: List[QuotationItemIn] = Field(..., min_length=1)
    overall_discount_amount: float = Field(0, ge=0)
    overall_tax_amount: float = Field(0, ge=0)
    shipping_charges: float = Field(0, ge=0)
    extra_costs: float = Field(0, ge=0)
    terms_and_conditions: Optional[str] = None
    payment_methods: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('customer_name')
    @classmethod
    def strip_customer_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Customer Name is required.")
        return v


class QuotationUpdate(BaseModel):
    """更新报价单（部分更新，明细传入则整体替换）"""
    customer_id: Optional[int] = None
    unlink_customer: bool = Field(False, description="解除客户关联")
    customer_name: Optional[str] = Field(None, min_length=1, max_length=100)
    quote_date: Optional[date] = None
    valid_till_date: Optional[date] = None
    items: Optional[List[QuotationItemIn]] = Field(None, min_length=1)
    overall_discount_amount: Optional[float] = Field(None, ge=0)
    overall_tax_amount: Optional[float] = Field(None, ge=0)
    shipping_charges: Optional[float] = Field(None, ge=0)
    extra_costs: Optional[float] = Field(None, ge=0)
    terms_and_conditions: Optional[str] = None
    payment_methods: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = Field(None, pattern="^(Draft|Sent|Accepted|Declined|Expired)$")


class QuotationItemResponse(BaseModel):
    id: int
    product_id: Optional[int] = None
    product_code: Optional[str] = None
    name: str
    quantity: float
    sale_price: float
    cost_price: Optional[float] = None
    discount_percentage: float
    tax_percentage: float
    item_subtotal: float
    item_discount_amount: float
    price_after_item_discount: float
    item_tax_amount: float
    item_total: float

    class Config:
        from_attributes = True


class QuotationResponse(BaseModel):
    """报价单响应"""
    id: int
    numeric_quotation_id: int
    customer_id: Optional[int] = None
    customer_name: str
    customer_details: Optional[Any] = None
    quote_date: date
    valid_till_date: date
    items: List[QuotationItemResponse] = []
    sub_total: float
    total_item_discount_amount: float
    total_item_tax_amount: float
    overall_discount_amount: float
    overall_tax_amount: float
    shipping_charges: float
    extra_costs: float
    grand_total: float
    terms_and_conditions: Optional[str] = None
    payment_methods: Optional[str] = None
    notes: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuotationListResponse(BaseModel):
    data: List[QuotationResponse]
    total: int
    page: int
    limit: int
