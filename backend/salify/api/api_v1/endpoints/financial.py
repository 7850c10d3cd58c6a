"""
资金管理API
- 资金流水查询与汇总
- 手工调整经营现金、其他收入/支出、期初现金
- 对账（现金 vs 流水合计，供应商余额 vs 重算余额）
"""

from typing import Any, Optional
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from salify.core.deps import get_db
from salify.core.logging_config import get_logger
from salify.core.money import round_money, format_money, ZERO
from salify.core.periods import PERIOD_PATTERN, resolve_date_range, apply_date_range
from salify.models.business_transaction import BusinessTransaction
from salify.models.supplier import Supplier
from salify.schemas.financial import (
    BusinessTransactionResponse, BusinessTransactionListResponse,
    CashAdjustment, OtherTransactionCreate, FinancialSummary,
    SupplierBalanceCheck, ReconcileResponse
)
from salify.schemas.app_settings import AppSettingsResponse, InitialBalanceSet
from salify.services.activity import log_activity
from salify.services.app_settings import get_app_settings
from salify.services.ledger import record_business_transaction, get_ledger_sum
from salify.services.supplier_ledger import compute_supplier_balance

router = APIRouter()
logger = get_logger(__name__)


@router.get("/transactions", response_model=BusinessTransactionListResponse)
async def list_transactions(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    period: Optional[str] = Query(None, pattern=PERIOD_PATTERN),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    transaction_type: Optional[str] = Query(None)) -> Any:
    """获取资金流水列表（最新的在前）"""
    date_range = resolve_date_range(period, start_date, end_date)

    query = apply_date_range(select(BusinessTransaction), BusinessTransaction.date, date_range)
    count_query = apply_date_range(select(func.count(BusinessTransaction.id)), BusinessTransaction.date, date_range)
    if transaction_type:
        query = query.where(BusinessTransaction.transaction_type == transaction_type)
        count_query = count_query.where(BusinessTransaction.transaction_type == transaction_type)

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(BusinessTransaction.date.desc(), BusinessTransaction.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)

    return BusinessTransactionListResponse(
        data=result.scalars().all(),
        total=total,
        page=page,
        limit=limit
    )


@router.get("/summary", response_model=FinancialSummary)
async def get_financial_summary(
    *,
    db: AsyncSession = Depends(get_db),
    period: Optional[str] = Query("this_month", pattern=PERIOD_PATTERN),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None)) -> Any:
    """周期资金汇总：流入、流出、净额、分类合计"""
    date_range = resolve_date_range(period, start_date, end_date)
    query = apply_date_range(
        select(BusinessTransaction.transaction_type, func.sum(BusinessTransaction.amount))
        .group_by(BusinessTransaction.transaction_type),
        BusinessTransaction.date,
        date_range
    )
    result = await db.execute(query)

    inflow = ZERO
    outflow = ZERO
    by_type = {}
    for transaction_type, amount in result.all():
        amount = round_money(amount)
        by_type[transaction_type] = float(amount)

    # 分类合计可能正负抵消，流入流出按单笔统计
    detail_query = apply_date_range(select(BusinessTransaction.amount), BusinessTransaction.date, date_range)
    for amount in (await db.execute(detail_query)).scalars().all():
        amount = round_money(amount)
        if amount > 0:
            inflow += amount
        else:
            outflow += -amount

    app_settings = await get_app_settings(db)
    return FinancialSummary(
        period=None if (start_date or end_date) else period,
        total_inflow=float(inflow),
        total_outflow=float(outflow),
        net=float(inflow - outflow),
        by_type=by_type,
        current_business_cash=float(app_settings.current_business_cash or 0)
    )


@router.post("/adjust-cash", response_model=BusinessTransactionResponse)
async def adjust_business_cash(
    *,
    db: AsyncSession = Depends(get_db),
    adjustment_in: CashAdjustment
) -> Any:
    """手工调整经营现金"""
    amount = round_money(adjustment_in.amount)
    is_credit = adjustment_in.adjustment_type == "credit"

    transaction = await record_business_transaction(
        db,
        "manual_adjustment_credit" if is_credit else "manual_adjustment_debit",
        amount if is_credit else -amount,
        f"Manual cash balance adjustment: {'Credit' if is_credit else 'Debit'}",
        related_document="MANUAL_ADJUSTMENT",
        notes=adjustment_in.notes
    )

    app_settings = await get_app_settings(db)
    description = (
        f"Business cash balance {'increased' if is_credit else 'decreased'} by "
        f"{format_money(amount, app_settings.currency)}. "
        f"New balance: {format_money(app_settings.current_business_cash, app_settings.currency)}."
    )
    if adjustment_in.notes:
        description += f" Notes: {adjustment_in.notes}"
    log_activity(db, "BUSINESS_CASH_ADJUSTMENT", description, {
        "adjustmentType": adjustment_in.adjustment_type,
        "amount": amount,
        "newBalance": app_settings.current_business_cash,
        "notes": adjustment_in.notes,
    })

    await db.commit()
    logger.info(f"💰 手工调整现金: {adjustment_in.adjustment_type} {amount}")
    return transaction


@router.post("/other", response_model=BusinessTransactionResponse)
async def record_other_transaction(
    *,
    db: AsyncSession = Depends(get_db),
    transaction_in: OtherTransactionCreate
) -> Any:
    """记录其他收入/支出"""
    amount = round_money(transaction_in.amount)
    is_income = transaction_in.transaction_type == "other_income"
    description = transaction_in.description.strip()

    transaction = await record_business_transaction(
        db,
        transaction_in.transaction_type,
        amount if is_income else -amount,
        description,
        notes=transaction_in.notes,
        date=transaction_in.date
    )

    app_settings = await get_app_settings(db)
    log_activity(
        db, "BUSINESS_CASH_ADJUSTMENT",
        f"{'Other income' if is_income else 'Other expense'} recorded: {description} "
        f"({format_money(amount, app_settings.currency)}). "
        f"New balance: {format_money(app_settings.current_business_cash, app_settings.currency)}.",
        {"transactionType": transaction_in.transaction_type, "amount": amount, "notes": transaction_in.notes}
    )

    await db.commit()
    return transaction


@router.post("/initial-balance", response_model=AppSettingsResponse)
async def set_initial_balance(
    *,
    db: AsyncSession = Depends(get_db),
    balance_in: InitialBalanceSet
) -> Any:
    """
    设置期初现金

    以差额记一笔 initial_balance_set 流水，并标记初始设置完成
    """
    app_settings = await get_app_settings(db)
    target = round_money(balance_in.amount)
    old_balance = round_money(app_settings.current_business_cash)

    await record_business_transaction(
        db, "initial_balance_set", target - old_balance,
        "Initial business cash balance set",
        notes=balance_in.notes
    )
    app_settings.has_completed_initial_setup = True

    log_activity(
        db, "SETTINGS_UPDATE",
        f"Settings updated: Business cash balance set to {target:.2f}, Initial setup completed.",
        {"oldBalance": old_balance, "newBalance": target}
    )

    await db.commit()
    logger.info(f"💰 期初现金: {old_balance} → {target}")
    return app_settings


@router.get("/reconcile", response_model=ReconcileResponse)
async def reconcile(
    *,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """对账：经营现金 vs 流水合计，供应商余额 vs 重算余额"""
    app_settings = await get_app_settings(db)
    cash = round_money(app_settings.current_business_cash)
    ledger_sum = await get_ledger_sum(db)

    checks = []
    suppliers = (await db.execute(select(Supplier).order_by(Supplier.id))).scalars().all()
    for supplier in suppliers:
        computed = await compute_supplier_balance(db, supplier)
        stored = round_money(supplier.current_balance)
        checks.append(SupplierBalanceCheck(
            supplier_id=supplier.id,
            supplier_name=supplier.display_name,
            stored_balance=float(stored),
            computed_balance=float(computed),
            difference=float(stored - computed)
        ))

    return ReconcileResponse(
        current_business_cash=float(cash),
        ledger_sum=float(ledger_sum),
        difference=float(cash - ledger_sum),
        is_consistent=cash == ledger_sum and all(c.difference == 0 for c in checks),
        suppliers=checks
    )
