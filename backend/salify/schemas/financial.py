"""资金流水 Schema"""
from typing import Optional, List, Dict
from datetime import datetime
from pydantic import BaseModel, Field


class BusinessTransactionResponse(BaseModel):
    """资金流水响应"""
    id: int
    date: datetime
    description: str
    transaction_type: str
    amount: float
    notes: Optional[str] = None
    related_document: Optional[str] = None

    class Config:
        from_attributes = True


class BusinessTransactionListResponse(BaseModel):
    data: List[BusinessTransactionResponse]
    total: int
    page: int
    limit: int


class CashAdjustment(BaseModel):
    """手工调整经营现金"""
    amount: float = Field(..., gt=0)
    adjustment_type: str = Field(..., pattern="^(credit|debit)$")
    notes: Optional[str] = None


class OtherTransactionCreate(BaseModel):
    """其他收入/支出"""
    transaction_type: str = Field(..., pattern="^(other_income|other_expense)$")
    amount: float = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=500)
    notes: Optional[str] = None
    date: Optional[datetime] = None


class FinancialSummary(BaseModel):
    """周期资金汇总"""
    period: Optional[str] = None
    total_inflow: float = 0
    total_outflow: float = 0      # 正数表示
    net: float = 0
    by_type: Dict[str, float] = {}
    current_business_cash: float = 0


class SupplierBalanceCheck(BaseModel):
    supplier_id: int
    supplier_name: str
    stored_balance: float
    computed_balance: float
    difference: float


class ReconcileResponse(BaseModel):
    """对账结果"""
    current_business_cash: float
    ledger_sum: float
    difference: float
    is_consistent: bool
    suppliers: List[SupplierBalanceCheck] = []
