import os
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from salify.core.config import settings


def get_async_database_url() -> str:
    """sqlite:/// 地址转换为 aiosqlite 驱动地址"""
    return settings.SQLITE_DATABASE_URI.replace("sqlite:///", "sqlite+aiosqlite:///")


def use_immediate_transactions(engine: AsyncEngine) -> None:
    """
    每个事务开始即获取写锁（BEGIN IMMEDIATE）

    现金、库存、供应商余额、流水号都是先读后写，
    并发请求在事务开始处排队，读到的一定是上一个事务提交后的值
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        # 驱动不再自动发 BEGIN，由下面的 begin 事件接管
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_for_file() -> AsyncEngine:
    engine = create_async_engine(
        get_async_database_url(),
        echo=os.getenv("SQL_DEBUG", "false").lower() == "true",
        # 等待其它事务释放写锁的秒数
        connect_args={"timeout": 30},
    )
    use_immediate_transactions(engine)
    return engine


def create_session_factory(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


engine = create_engine_for_file()
SessionLocal = create_session_factory(engine)


async def reload_database_engine() -> None:
    """
    恢复备份时调用：关闭连接池后重建引擎和会话工厂

    其它模块必须通过 db_session.SessionLocal / db_session.engine 访问，
    不能 from ... import 到本地，否则拿到的还是旧引擎
    """
    global engine, SessionLocal

    await engine.dispose()
    engine = create_engine_for_file()
    SessionLocal = create_session_factory(engine)
