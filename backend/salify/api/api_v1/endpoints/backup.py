"""数据备份API - 单机版（无权限检查）"""

import os
import shutil
from datetime import datetime
from typing import Any
from urllib.parse import unquote
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from salify.core.config import settings
from salify.core.deps import get_db
from salify.core.logging_config import get_logger
from salify.db import session as db_session
from salify.db.init_db import ensure_tables_exist
from salify.db.session import reload_database_engine
from salify.services.activity import log_activity
from salify.services.app_settings import get_app_settings
from salify.services.backup import (
    get_db_path, get_backup_dir, create_backup_file, list_backup_files, resolve_backup_path
)
from salify.services.scheduler import get_scheduler_status, trigger_backup_now

router = APIRouter()
logger = get_logger(__name__)

# 恢复备份后保留恢复前的备份配置
PRESERVED_BACKUP_SETTINGS = ("auto_backup_frequency", "last_manual_backup_at", "last_auto_backup_at")


@router.get("/")
async def list_backups() -> Any:
    """获取备份列表"""
    return {
        "backups": list_backup_files(),
        "backup_dir": get_backup_dir()
    }


@router.post("/create")
async def create_backup(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    """创建备份"""
    try:
        backup = create_backup_file()
    except Exception as e:
        logger.error(f"❌ 备份失败: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Backup failed: {str(e)}")

    app_settings = await get_app_settings(db)
    app_settings.last_manual_backup_at = datetime.utcnow()
    log_activity(
        db, "DATA_BACKUP",
        f"Database backup created: {backup['filename']} ({backup['size_display']}).",
        {"filename": backup["filename"], "size": backup["size"]}
    )
    await db.commit()

    logger.info(f"💾 手动备份完成: {backup['filename']}")
    return {
        "message": "Backup created successfully",
        "backup": backup
    }


@router.get("/download/{filename}")
async def download_backup(filename: str) -> Any:
    """下载备份文件"""
    decoded_filename = unquote(filename)
    backup_path = resolve_backup_path(decoded_filename)

    return FileResponse(
        path=backup_path,
        filename=decoded_filename,
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{decoded_filename}"'
        }
    )


@router.delete("/{filename}")
async def delete_backup(
    *,
    db: AsyncSession = Depends(get_db),
    filename: str) -> Any:
    """删除备份文件"""
    backup_path = resolve_backup_path(filename)
    os.remove(backup_path)

    log_activity(db, "DATA_BACKUP", f"Backup file deleted: {filename}.", {"filename": filename})
    await db.commit()

    logger.info(f"🗑️ 删除备份: {filename}")
    return {"message": "Backup deleted"}


@router.post("/restore/{filename}")
async def restore_backup(filename: str) -> Any:
    """
    恢复备份（危险操作）

    先把当前数据库复制为 pre_restore_*.db，再用备份覆盖数据库文件；
    恢复后沿用恢复前的备份配置
    """
    backup_path = resolve_backup_path(filename)

    async with db_session.SessionLocal() as db:
        app_settings = await get_app_settings(db)
        preserved = {field: getattr(app_settings, field) for field in PRESERVED_BACKUP_SETTINGS}

    try:
        db_path = get_db_path()
        backup_dir = get_backup_dir()

        # 先备份当前数据库
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        pre_restore_filename = f"pre_restore_{timestamp}.db"
        shutil.copy2(db_path, os.path.join(backup_dir, pre_restore_filename))

        # 重新加载数据库引擎（关闭所有连接）
        await reload_database_engine()

        # 恢复备份
        shutil.copy2(backup_path, db_path)

        # 再次重新加载，确保使用新的数据库文件
        await reload_database_engine()
        await ensure_tables_exist()
    except Exception as e:
        logger.error(f"❌ 恢复失败: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Restore failed: {str(e)}")

    async with db_session.SessionLocal() as db:
        app_settings = await get_app_settings(db)
        for field, value in preserved.items():
            setattr(app_settings, field, value)
        log_activity(
            db, "DATA_RESTORE",
            f"Database restored from backup: {filename}. Previous data saved as {pre_restore_filename}.",
            {"filename": filename, "preRestoreBackup": pre_restore_filename}
        )
        await db.commit()

    logger.warning(f"♻️ 数据库已从备份恢复: {filename}")
    return {
        "message": "Restore completed",
        "pre_restore_backup": pre_restore_filename
    }


@router.get("/scheduler/status")
async def get_backup_scheduler_status(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    """获取自动备份调度器状态"""
    app_settings = await get_app_settings(db)
    return {
        "auto_backup": {
            "enabled": settings.AUTO_BACKUP_ENABLED,
            "frequency": app_settings.auto_backup_frequency,
            "schedule": f"Daily check at {settings.AUTO_BACKUP_HOUR:02d}:{settings.AUTO_BACKUP_MINUTE:02d}",
            "keep_count": settings.AUTO_BACKUP_KEEP_COUNT,
            "last_auto_backup_at": app_settings.last_auto_backup_at,
            "last_manual_backup_at": app_settings.last_manual_backup_at,
        },
        "scheduler": get_scheduler_status()
    }


@router.post("/trigger")
async def trigger_auto_backup() -> Any:
    """立即执行一次自动备份（忽略频率设置）"""
    try:
        backup = await trigger_backup_now()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Backup failed: {str(e)}")
    return {"message": "Automatic backup completed", "backup": backup}
