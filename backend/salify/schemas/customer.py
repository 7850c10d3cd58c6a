"""客户 Schema"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, model_validator


class CustomerCreate(BaseModel):
    """新增客户（姓名和公司名至少填一个）"""
    name: Optional[str] = Field(None, max_length=100)
    company_name: Optional[str] = Field(None, max_length=100)
    phone: str = Field(..., max_length=30)
    email: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=200)

    @model_validator(mode='after')
    def check_required(self):
        if not self.phone.strip():
            raise ValueError("Phone Number is required.")
        if not (self.name or "").strip() and not (self.company_name or "").strip():
            raise ValueError("Customer Name or Company Name is required.")
        return self


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    company_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=200)


class CustomerResponse(BaseModel):
    """客户响应"""
    id: int
    code: Optional[str] = None
    name: str
    company_name: Optional[str] = None
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None
    joined_date: Optional[datetime] = None
    is_walk_in: bool = False

    class Config:
        from_attributes = True


class CustomerListResponse(BaseModel):
    data: List[CustomerResponse]
    total: int
    page: int
    limit: int
