"""
资金流水工具

经营现金只能通过 record_business_transaction 修改：
插入流水的同时调整 AppSettings.current_business_cash，
保证 现金 == 所有流水金额之和
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from salify.core.logging_config import get_cash_logger
from salify.core.money import round_money, ZERO, Number
from salify.models.business_transaction import BusinessTransaction, TRANSACTION_TYPES
from salify.services.app_settings import get_app_settings

cash_logger = get_cash_logger()


async def record_business_transaction(
    db: AsyncSession,
    transaction_type: str,
    amount: Number,
    description: str,
    related_document: Optional[str] = None,
    notes: Optional[str] = None,
    date: Optional[datetime] = None) -> Optional[BusinessTransaction]:
    """
    记录一笔资金流水并更新经营现金

    amount 为带符号金额，0 不记录（返回 None）
    """
    if transaction_type not in TRANSACTION_TYPES:
        raise ValueError(f"Unknown transaction type: {transaction_type}")
    amount = round_money(amount)
    if amount == ZERO:
        return None

    app_settings = await get_app_settings(db)
    app_settings.current_business_cash = round_money(
        (app_settings.current_business_cash or ZERO) + amount
    )

    transaction = BusinessTransaction(
        date=date or datetime.utcnow(),
        description=description[:500],
        transaction_type=transaction_type,
        amount=amount,
        notes=notes,
        related_document=related_document,
    )
    db.add(transaction)
    cash_logger.info(
        f"{transaction_type:<26} {amount:>12} -> {app_settings.current_business_cash:>12} | {description}"
    )
    return transaction


async def get_ledger_sum(db: AsyncSession) -> Decimal:
    """所有流水金额之和"""
    result = await db.execute(
        select(func.coalesce(func.sum(BusinessTransaction.amount), 0))
    )
    return round_money(result.scalar() or 0)
