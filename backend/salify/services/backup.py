"""
SQLite 文件备份

备份文件保存在数据库文件同级的 backups/ 目录：
- backup_YYYYmmdd_HHMMSS.db       手动备份
- auto_backup_YYYYmmdd_HHMMSS.db  自动备份
- pre_restore_YYYYmmdd_HHMMSS.db  恢复前的自动快照
"""

import os
import shutil
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException

from salify.core.config import settings
from salify.core.logging_config import get_logger

logger = get_logger(__name__)

AUTO_BACKUP_PREFIX = "auto_backup_"


def get_db_path() -> str:
    """获取数据库文件路径"""
    db_url = settings.SQLITE_DATABASE_URI
    if db_url.startswith("sqlite:///"):
        return db_url.replace("sqlite:///", "")
    elif db_url.startswith("sqlite+aiosqlite:///"):
        return db_url.replace("sqlite+aiosqlite:///", "")
    raise HTTPException(status_code=400, detail="Only SQLite databases can be backed up")


def get_backup_dir() -> str:
    """获取备份目录"""
    db_path = get_db_path()
    backup_dir = os.path.join(os.path.dirname(os.path.abspath(db_path)), "backups")
    os.makedirs(backup_dir, exist_ok=True)
    return backup_dir


def describe_backup(filepath: str) -> dict:
    stat = os.stat(filepath)
    filename = os.path.basename(filepath)
    return {
        "filename": filename,
        "size": stat.st_size,
        "size_display": f"{stat.st_size / 1024 / 1024:.2f} MB",
        "is_auto": filename.startswith(AUTO_BACKUP_PREFIX),
        "created_at": datetime.fromtimestamp(stat.st_mtime).isoformat()
    }


def create_backup_file(prefix: str = "backup_") -> dict:
    """复制数据库文件生成备份"""
    db_path = get_db_path()
    if not os.path.exists(db_path):
        raise FileNotFoundError(f"Database file not found: {db_path}")

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = os.path.join(get_backup_dir(), f"{prefix}{timestamp}.db")
    shutil.copy2(db_path, backup_path)
    return describe_backup(backup_path)


def list_backup_files() -> List[dict]:
    """所有备份（最新的在前）"""
    backup_dir = get_backup_dir()
    backups = [
        describe_backup(os.path.join(backup_dir, filename))
        for filename in os.listdir(backup_dir)
        if filename.endswith(".db")
    ]
    backups.sort(key=lambda x: x["created_at"], reverse=True)
    return backups


def resolve_backup_path(filename: str) -> str:
    """
    备份文件名 -> 绝对路径

    防止路径遍历：文件必须位于备份目录内
    """
    backup_dir = os.path.abspath(get_backup_dir())
    backup_path = os.path.abspath(os.path.join(backup_dir, filename))

    if os.path.dirname(backup_path) != backup_dir:
        raise HTTPException(status_code=403, detail="Access to this file is not allowed")
    if not os.path.exists(backup_path):
        raise HTTPException(status_code=404, detail="Backup file not found")
    return backup_path


def cleanup_old_backups(backup_dir: Optional[str] = None, keep_count: int = 7) -> List[str]:
    """清理旧的自动备份，只保留最近的 N 个"""
    backup_dir = backup_dir or get_backup_dir()
    removed = []
    try:
        auto_backups = []
        for filename in os.listdir(backup_dir):
            if filename.startswith(AUTO_BACKUP_PREFIX) and filename.endswith(".db"):
                filepath = os.path.join(backup_dir, filename)
                auto_backups.append((os.stat(filepath).st_mtime, filename, filepath))

        # 最新的在前
        auto_backups.sort(reverse=True)

        for _, filename, filepath in auto_backups[keep_count:]:
            os.remove(filepath)
            removed.append(filename)
            logger.info(f"🗑️ 清理旧备份: {filename}")
    except OSError as e:
        logger.warning(f"清理旧备份时出错: {str(e)}")
    return removed
