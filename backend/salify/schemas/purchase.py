"""采购发票 Schema"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field


class PurchaseItemIn(BaseModel):
    """
    采购明细

    product_id 为空表示新商品：需要 product_code 和 sale_price
    """
    product_id: Optional[int] = None
    product_code: Optional[str] = Field(None, max_length=50)
    product_name: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., gt=0)
    purchase_price: float = Field(..., ge=0)
    sale_price: Optional[float] = Field(None, ge=0, description="新商品售价")


class PurchaseInvoiceCreate(BaseModel):
    """录入采购发票"""
    supplier_id: int
    invoice_number: Optional[str] = Field(None, max_length=100)
    invoice_date: Optional[datetime] = None
    items: List[PurchaseItemIn] = Field(..., min_length=1)
    tax_amount: float = Field(0, ge=0)
    amount_paid: float = Field(0, ge=0)
    notes: Optional[str] = None


class PurchaseInvoiceUpdate(BaseModel):
    """修改采购发票（明细整体替换）"""
    supplier_id: Optional[int] = None
    invoice_number: Optional[str] = Field(None, max_length=100)
    invoice_date: Optional[datetime] = None
    items: List[PurchaseItemIn] = Field(..., min_length=1)
    tax_amount: float = Field(0, ge=0)
    amount_paid: float = Field(0, ge=0)
    notes: Optional[str] = None


class PurchaseItemResponse(BaseModel):
    id: int
    product_id: Optional[int] = None
    product_code: Optional[str] = None
    product_name: str
    quantity: int
    purchase_price: float
    item_total: float
    sale_price: Optional[float] = None

    class Config:
        from_attributes = True


class PurchaseInvoiceResponse(BaseModel):
    """采购发票响应"""
    id: int
    numeric_purchase_id: int
    supplier_id: int
    supplier_name: str
    invoice_number: str
    invoice_date: datetime
    items: List[PurchaseItemResponse] = []
    sub_total: float
    tax_amount: float
    grand_total: float
    amount_paid: float
    amount_due: float = 0
    payment_status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PurchaseInvoiceListResponse(BaseModel):
    data: List[PurchaseInvoiceResponse]
    total: int
    page: int
    limit: int
