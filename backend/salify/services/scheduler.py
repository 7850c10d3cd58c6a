"""
定时任务调度器服务
使用 APScheduler 实现自动备份和报价单过期检查
"""

from datetime import datetime, timedelta
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from salify.core.config import settings
from salify.core.logging_config import get_logger
from salify.db import session as db_session
from salify.services.app_settings import get_app_settings
from salify.services.backup import create_backup_file, cleanup_old_backups, AUTO_BACKUP_PREFIX
from salify.services.quotation import sync_expired_quotations

logger = get_logger(__name__)

# 全局调度器实例
scheduler: Optional[AsyncIOScheduler] = None

# 频率 -> 两次自动备份的最小间隔
BACKUP_INTERVALS = {
    "daily": timedelta(days=0),
    "weekly": timedelta(days=7),
    "monthly": timedelta(days=30),
}


def is_backup_due(frequency: str, last_backup_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """根据备份频率和上次自动备份时间判断今天是否需要备份"""
    if frequency not in BACKUP_INTERVALS:
        return False
    if last_backup_at is None:
        return True
    now = now or datetime.utcnow()
    return now - last_backup_at >= BACKUP_INTERVALS[frequency]


async def auto_backup(force: bool = False) -> Optional[dict]:
    """
    执行自动备份任务

    force=True 时忽略频率设置（手动触发）
    """
    try:
        async with db_session.SessionLocal() as db:
            app_settings = await get_app_settings(db)
            if not force and not is_backup_due(app_settings.auto_backup_frequency, app_settings.last_auto_backup_at):
                logger.info(f"📦 跳过自动备份（频率: {app_settings.auto_backup_frequency}）")
                return None

            backup = create_backup_file(prefix=AUTO_BACKUP_PREFIX)
            app_settings.last_auto_backup_at = datetime.utcnow()
            await db.commit()

        logger.info(f"✅ 自动备份完成: {backup['filename']} ({backup['size_display']})")

        # 清理旧的自动备份（保留最近 N 个）
        cleanup_old_backups(keep_count=settings.AUTO_BACKUP_KEEP_COUNT)
        return backup
    except Exception as e:
        logger.error(f"❌ 自动备份失败: {str(e)}")
        if force:
            raise
        return None


async def expire_quotations() -> int:
    """过期报价单同步任务"""
    try:
        async with db_session.SessionLocal() as db:
            expired = await sync_expired_quotations(db)
            await db.commit()
        return len(expired)
    except Exception as e:
        logger.error(f"❌ 报价单过期检查失败: {str(e)}")
        return 0


def init_scheduler():
    """初始化并启动调度器"""
    global scheduler

    scheduler = AsyncIOScheduler()

    if settings.AUTO_BACKUP_ENABLED:
        # 每天检查一次，是否真正备份由 AppSettings.auto_backup_frequency 决定
        scheduler.add_job(
            auto_backup,
            trigger=CronTrigger(
                hour=settings.AUTO_BACKUP_HOUR,
                minute=settings.AUTO_BACKUP_MINUTE
            ),
            id="auto_backup",
            name="自动数据库备份",
            replace_existing=True
        )
    else:
        logger.info("📦 自动备份已禁用")

    scheduler.add_job(
        expire_quotations,
        trigger=CronTrigger(hour=settings.QUOTATION_EXPIRY_HOUR, minute=5),
        id="expire_quotations",
        name="报价单过期检查",
        replace_existing=True
    )

    scheduler.start()
    logger.info(
        f"⏰ 定时任务调度器已启动 - 备份检查: 每天 {settings.AUTO_BACKUP_HOUR:02d}:{settings.AUTO_BACKUP_MINUTE:02d}, "
        f"报价单过期检查: 每天 {settings.QUOTATION_EXPIRY_HOUR:02d}:05"
    )


def shutdown_scheduler():
    """关闭调度器"""
    global scheduler
    if scheduler:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("⏰ 定时任务调度器已关闭")


def get_scheduler_status() -> dict:
    """获取调度器状态"""
    if not scheduler:
        return {
            "enabled": settings.AUTO_BACKUP_ENABLED,
            "running": False,
            "jobs": []
        }

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None
        })

    return {
        "enabled": settings.AUTO_BACKUP_ENABLED,
        "running": scheduler.running,
        "jobs": jobs
    }


async def trigger_backup_now() -> Optional[dict]:
    """立即触发一次自动备份（忽略频率设置）"""
    return await auto_backup(force=True)
