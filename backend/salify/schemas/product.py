"""商品 Schema"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, field_validator


class ProductBase(BaseModel):
    """商品基础字段"""
    name: str = Field(..., min_length=1, max_length=200, description="名称")
    price: float = Field(..., ge=0, description="售价")
    cost_price: float = Field(0, ge=0, description="成本价")
    category: Optional[str] = Field(None, max_length=100)
    supplier_id: Optional[int] = None
    discount_percentage: float = Field(0, ge=0, le=100, description="折扣%")


class ProductCreate(ProductBase):
    """新增商品"""
    product_code: str = Field(..., max_length=50, description="商品编码")
    stock: int = Field(0, ge=0, description="期初库存")

    @field_validator('product_code')
    @classmethod
    def strip_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Product Code is required.")
        return v


class ProductUpdate(BaseModel):
    """更新商品资料（编码和库存不可在此修改）"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[float] = Field(None, ge=0)
    cost_price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = Field(None, max_length=100)
    supplier_id: Optional[int] = None
    discount_percentage: Optional[float] = Field(None, ge=0, le=100)


class StockUpdate(BaseModel):
    """库存调整"""
    mode: str = Field(..., pattern="^(set|add|remove)$")
    quantity: int = Field(..., ge=0)
    cost_price: Optional[float] = Field(None, ge=0, description="本次入库单价（不传则用商品成本价）")


class ProductResponse(BaseModel):
    """商品响应"""
    id: int
    product_code: str
    name: str
    price: float
    cost_price: float
    stock: int
    category: Optional[str] = None
    supplier_id: Optional[int] = None
    discount_percentage: float = 0
    stock_value: float = 0
    last_updated: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    data: List[ProductResponse]
    total: int
    page: int
    limit: int
