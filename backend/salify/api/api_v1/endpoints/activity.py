"""操作日志API"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from salify.core.deps import get_db
from salify.core.logging_config import get_logger
from salify.models.activity_log import ActivityLog
from salify.schemas.activity_log import ActivityLogListResponse

router = APIRouter()
logger = get_logger(__name__)


@router.get("/", response_model=ActivityLogListResponse)
async def list_activity(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    activity_type: Optional[str] = Query(None)) -> Any:
    """获取操作日志列表（最新的在前）"""
    query = select(ActivityLog)
    count_query = select(func.count(ActivityLog.id))
    if activity_type:
        query = query.where(ActivityLog.activity_type == activity_type)
        count_query = count_query.where(ActivityLog.activity_type == activity_type)

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)

    return ActivityLogListResponse(
        data=result.scalars().all(),
        total=total,
        page=page,
        limit=limit
    )


@router.delete("/")
async def clear_activity(
    *,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """清空操作日志"""
    result = await db.execute(delete(ActivityLog))
    await db.commit()
    logger.info(f"🗑️ 已清空 {result.rowcount} 条操作日志")
    return {"message": "Activity log cleared", "deleted_count": result.rowcount}
