"""
操作日志工具

日志与业务数据写在同一个会话里，随业务一起提交或回滚
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from salify.models.activity_log import ActivityLog, ACTIVITY_TYPES


def _to_json_value(value: Any) -> Any:
    """Decimal / 日期转为 JSON 可序列化的值"""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _to_json_value(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_to_json_value(v) for v in value]
    return value


def clean_details(details: Optional[dict]) -> Optional[dict]:
    """去掉值为 None 的字段"""
    if not details:
        return None
    return _to_json_value(details)


def log_activity(
    db: AsyncSession,
    activity_type: str,
    description: str,
    details: Optional[dict] = None) -> ActivityLog:
    """创建操作日志"""
    if activity_type not in ACTIVITY_TYPES:
        raise ValueError(f"Unknown activity type: {activity_type}")
    entry = ActivityLog(
        timestamp=datetime.utcnow(),
        activity_type=activity_type,
        description=description[:1000],
        details=clean_details(details),
    )
    db.add(entry)
    return entry
