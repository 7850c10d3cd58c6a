"""
统计周期工具

this_month / last_month / this_year / all_time 转换为 [start, end) 时间区间
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple

PERIODS = ("this_month", "last_month", "this_year", "all_time")

PERIOD_LABELS = {
    "this_month": "This Month",
    "last_month": "Last Month",
    "this_year": "This Year",
    "all_time": "All Time",
}

PERIOD_PATTERN = "^(this_month|last_month|this_year|all_time)$"

DateRange = Tuple[Optional[datetime], Optional[datetime]]


def _next_month_start(year: int, month: int) -> datetime:
    if month == 12:
        return datetime(year + 1, 1, 1)
    return datetime(year, month + 1, 1)


def get_period_range(period: str, now: Optional[datetime] = None) -> DateRange:
    """
    获取周期的起止时间（左闭右开）

    all_time 返回 (None, None)
    """
    if period not in PERIODS:
        raise ValueError(f"Unknown period: {period}")
    now = now or datetime.utcnow()

    if period == "this_month":
        return datetime(now.year, now.month, 1), _next_month_start(now.year, now.month)
    if period == "last_month":
        if now.month == 1:
            start = datetime(now.year - 1, 12, 1)
        else:
            start = datetime(now.year, now.month - 1, 1)
        return start, datetime(now.year, now.month, 1)
    if period == "this_year":
        return datetime(now.year, 1, 1), datetime(now.year + 1, 1, 1)
    return None, None


def get_period_label(period: str) -> str:
    return PERIOD_LABELS.get(period, "All Time")


def resolve_date_range(
    period: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> DateRange:
    """
    明确的起止日期优先，否则按周期

    end_date 当天包含在内
    """
    if start_date or end_date:
        start = datetime.combine(start_date, datetime.min.time()) if start_date else None
        end = datetime.combine(end_date + timedelta(days=1), datetime.min.time()) if end_date else None
        return start, end
    if period:
        return get_period_range(period)
    return None, None


def apply_date_range(query, column, date_range: DateRange):
    """给查询加上时间区间条件"""
    start, end = date_range
    if start is not None:
        query = query.where(column >= start)
    if end is not None:
        query = query.where(column < end)
    return query
