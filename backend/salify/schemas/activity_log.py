"""操作日志 Schema"""
from typing import Optional, List, Any
from datetime import datetime
from pydantic import BaseModel


class ActivityLogResponse(BaseModel):
    id: int
    timestamp: datetime
    activity_type: str
    description: str
    details: Optional[Any] = None

    class Config:
        from_attributes = True


class ActivityLogListResponse(BaseModel):
    """操作日志列表响应"""
    data: List[ActivityLogResponse]
    total: int
    page: int
    limit: int
