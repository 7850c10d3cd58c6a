"""依赖注入 - 单机版（无认证）"""
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession

from salify.db import session as db_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    获取数据库会话依赖

    每个请求一个会话；端点末尾 commit，异常时会话关闭即回滚
    """
    # 通过模块属性取工厂，恢复备份重建引擎后仍然有效
    async with db_session.SessionLocal() as session:
        yield session
