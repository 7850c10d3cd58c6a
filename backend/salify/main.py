from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from salify.api.api_v1.api import api_router
from salify.core.config import settings
from salify.core.logging_config import setup_logging, get_logger
from salify.db import session as db_session
from salify.db.init_db import ensure_tables_exist, seed_base_data
from salify.services.app_settings import get_app_settings
from salify.services.ledger import get_ledger_sum
from salify.services.scheduler import init_scheduler, shutdown_scheduler

setup_logging(settings.LOG_LEVEL, Path(settings.LOG_DIR), settings.LOG_RETENTION_DAYS)
logger = get_logger(__name__)


async def check_cash_consistency() -> None:
    """启动时核对经营现金与流水合计，不一致只告警"""
    async with db_session.SessionLocal() as db:
        app_settings = await get_app_settings(db)
        ledger_sum = await get_ledger_sum(db)
        cash = app_settings.current_business_cash
        if cash != ledger_sum:
            logger.warning(f"⚠️ 经营现金 {cash} 与流水合计 {ledger_sum} 不一致，请在 /financial/reconcile 核对")
        else:
            logger.info(f"💰 经营现金: {cash}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 {settings.PROJECT_NAME} 启动中...")

    try:
        await ensure_tables_exist()
    except Exception as e:
        logger.warning(f"数据库表初始化警告: {e}")

    # 设置单例行 + 系统散客
    async with db_session.SessionLocal() as db:
        await seed_base_data(db)
        await db.commit()

    await check_cash_consistency()
    init_scheduler()
    yield
    logger.info(f"🛑 {settings.PROJECT_NAME} 关闭中...")
    shutdown_scheduler()
    await db_session.engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    description="Salify 零售门店管理 - 销售、采购、供应商、报价、经营现金",
    lifespan=lifespan
)

if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    return {"name": settings.PROJECT_NAME, "docs": "/docs", "api": settings.API_V1_STR}


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000, log_level="info")
