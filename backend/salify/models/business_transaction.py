"""
资金流水模型 - 每一笔影响经营现金的事件

amount 为带符号金额：正数 = 现金流入，负数 = 现金流出
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, DECIMAL
from salify.db.base import Base

TRANSACTION_TYPES = (
    "sale_income",
    "purchase_payment",
    "manual_adjustment_credit",
    "manual_adjustment_debit",
    "supplier_payment",
    "other_expense",
    "other_income",
    "initial_balance_set",
    "sale_return",
    "stock_adjustment_credit",
)


class BusinessTransaction(Base):
    """资金流水"""
    __tablename__ = "business_transactions"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(DateTime, default=datetime.utcnow, index=True)
    description = Column(String(500), nullable=False)
    transaction_type = Column(String(40), nullable=False, index=True, comment="流水类型")
    amount = Column(DECIMAL(12, 2), nullable=False, comment="带符号金额")
    notes = Column(Text)
    # 关联单据，如 sale:12 / purchase:3 / supplier:4 / MANUAL_ADJUSTMENT
    related_document = Column(String(50), index=True)

    def __repr__(self):
        return f"<BusinessTransaction {self.transaction_type} {self.amount}>"

    @property
    def is_inflow(self) -> bool:
        return self.amount > 0
