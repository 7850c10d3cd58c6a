"""应用设置 Schema"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field


class AppSettingsResponse(BaseModel):
    """应用设置响应"""
    low_stock_threshold: int
    last_sale_numeric_id: int
    last_customer_numeric_id: int
    last_purchase_numeric_id: int
    last_quotation_numeric_id: int
    last_return_numeric_id: int
    last_supplier_payment_numeric_id: int = 0
    currency: str
    company_display_name: str
    has_completed_initial_setup: bool
    current_business_cash: float
    walk_in_customer_default_name: str
    known_categories: List[str] = []
    known_shop_names: List[str] = []
    obfuscation_character: str
    prompt_credit_on_delete: bool
    auto_backup_frequency: str
    last_manual_backup_at: Optional[datetime] = None
    last_auto_backup_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AppSettingsUpdate(BaseModel):
    """
    更新应用设置（部分更新）

    经营现金与流水号计数器不可在此修改
    """
    low_stock_threshold: Optional[int] = Field(None, ge=0, description="低库存阈值")
    currency: Optional[str] = Field(None, min_length=1, max_length=10)
    company_display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    has_completed_initial_setup: Optional[bool] = None
    walk_in_customer_default_name: Optional[str] = Field(None, min_length=1, max_length=100)
    known_categories: Optional[List[str]] = None
    known_shop_names: Optional[List[str]] = None
    obfuscation_character: Optional[str] = Field(None, pattern="^(\\*|•)$")
    prompt_credit_on_delete: Optional[bool] = None
    auto_backup_frequency: Optional[str] = Field(None, pattern="^(disabled|daily|weekly|monthly)$")


class InitialBalanceSet(BaseModel):
    """期初现金设置"""
    amount: float = Field(..., description="目标现金余额")
    notes: Optional[str] = None
