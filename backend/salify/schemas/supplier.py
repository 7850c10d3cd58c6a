"""供应商与供应商付款 Schema"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, model_validator


class SupplierCreate(BaseModel):
    """新增供应商"""
    name: Optional[str] = Field(None, max_length=100)
    company_name: Optional[str] = Field(None, max_length=100)
    contact_person: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=200)
    gst_tax_number: Optional[str] = Field(None, max_length=50)
    opening_balance: float = Field(0, ge=0, description="期初余额")
    opening_balance_type: str = Field("owedToSupplier", pattern="^(owedToSupplier|owedByUser)$")
    notes: Optional[str] = None

    @model_validator(mode='after')
    def check_name(self):
        if not (self.name or "").strip() and not (self.company_name or "").strip():
            raise ValueError("Either Supplier Name or Company Name is required.")
        return self


class SupplierUpdate(BaseModel):
    """更新供应商（余额和期初余额不可修改）"""
    name: Optional[str] = Field(None, max_length=100)
    company_name: Optional[str] = Field(None, max_length=100)
    contact_person: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=200)
    gst_tax_number: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class SupplierResponse(BaseModel):
    """供应商响应"""
    id: int
    name: Optional[str] = None
    company_name: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_tax_number: Optional[str] = None
    opening_balance: float = 0
    opening_balance_type: str
    current_balance: float = 0
    notes: Optional[str] = None
    date_added: Optional[datetime] = None

    class Config:
        from_attributes = True


class SupplierListResponse(BaseModel):
    data: List[SupplierResponse]
    total: int
    page: int
    limit: int


class SupplierPaymentCreate(BaseModel):
    """付款给供应商"""
    supplier_id: int
    amount: float = Field(..., gt=0)
    payment_date: Optional[datetime] = None
    payment_method: str = Field("cash", min_length=1, max_length=50)
    reference: Optional[str] = Field(None, max_length=100)
    transaction_id: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PaymentAllocationResponse(BaseModel):
    invoice_id: int
    amount: float

    class Config:
        from_attributes = True


class SupplierPaymentResponse(BaseModel):
    """供应商付款响应"""
    id: int
    payment_no: str
    supplier_id: int
    supplier_name: str = ""
    amount: float
    payment_date: datetime
    payment_method: str
    reference: Optional[str] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    allocations: List[PaymentAllocationResponse] = []
    allocated_amount: float = 0
    unallocated_amount: float = 0
    supplier_balance: Optional[float] = None
    created_at: Optional[datetime] = None


class SupplierPaymentListResponse(BaseModel):
    data: List[SupplierPaymentResponse]
    total: int
    page: int
    limit: int


class BalanceRecalculation(BaseModel):
    """余额重算结果"""
    supplier_id: int
    old_balance: float
    new_balance: float
    difference: float
