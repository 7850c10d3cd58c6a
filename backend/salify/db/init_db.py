import asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salify.core.config import settings
from salify.core.logging_config import get_logger
from salify.db import session as db_session
from salify.db.base import Base

# 导入所有模型，确保表能被创建
from salify.models import AppSettings, Customer
from salify.models.app_settings import SETTINGS_ROW_ID
from salify.models.customer import WALK_IN_CUSTOMER_CODE

logger = get_logger(__name__)


def build_default_settings() -> AppSettings:
    """按配置生成默认设置行"""
    return AppSettings(
        id=SETTINGS_ROW_ID,
        low_stock_threshold=settings.DEFAULT_LOW_STOCK_THRESHOLD,
        currency=settings.DEFAULT_CURRENCY,
        walk_in_customer_default_name=settings.WALK_IN_CUSTOMER_NAME,
        known_categories=[],
        known_shop_names=[],
    )


async def ensure_tables_exist() -> None:
    """
    确保数据库表存在（应用启动时调用）
    """
    async with db_session.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_base_data(db: AsyncSession) -> None:
    """
    写入基础数据：设置单例行 + 系统散客

    已存在则跳过，调用方负责 commit
    """
    app_settings = await db.get(AppSettings, SETTINGS_ROW_ID)
    if not app_settings:
        app_settings = build_default_settings()
        db.add(app_settings)
        logger.info("⚙️ 已创建默认应用设置")

    result = await db.execute(
        select(Customer).where(Customer.code == WALK_IN_CUSTOMER_CODE)
    )
    if not result.scalar_one_or_none():
        db.add(Customer(
            code=WALK_IN_CUSTOMER_CODE,
            name=app_settings.walk_in_customer_default_name or settings.WALK_IN_CUSTOMER_NAME,
            phone="N/A",
            is_walk_in=True,
        ))
        logger.info("👤 已创建系统散客")
    await db.flush()


async def init_db() -> None:
    """
    初始化数据库 - 创建所有表并写入基础数据
    """
    await ensure_tables_exist()
    async with db_session.SessionLocal() as db:
        await seed_base_data(db)
        await db.commit()


if __name__ == "__main__":
    asyncio.run(init_db())
