"""
日志配置

- 控制台：彩色输出
- logs/salify.log：全部 INFO 以上日志，每天午夜切分
- logs/error.log：只记 ERROR
- logs/cash.log：经营现金流水（salify.cash 日志器），便于和数据库流水对账
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
CASH_LOG_FORMAT = "%(asctime)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 现金流水专用日志器
CASH_LOGGER_NAME = "salify.cash"


class ColoredFormatter(logging.Formatter):
    """控制台按级别着色"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        # 复制记录，文件处理器不能带颜色码
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _daily_file_handler(path: Path, level: int, fmt: str, backup_count: int) -> TimedRotatingFileHandler:
    handler = TimedRotatingFileHandler(
        path, when="midnight", backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, DATE_FORMAT))
    return handler


def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None, retention_days: int = 30):
    """
    配置日志系统

    Args:
        log_level: 控制台与根日志器级别
        log_dir: 日志目录，默认 ./logs
        retention_days: 切分后的日志保留天数
    """
    log_dir = Path(log_dir or "logs")
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)

    root_logger.addHandler(_daily_file_handler(log_dir / "salify.log", logging.INFO, LOG_FORMAT, retention_days))
    root_logger.addHandler(_daily_file_handler(log_dir / "error.log", logging.ERROR, LOG_FORMAT, retention_days))

    # 现金流水始终记录，不受根级别影响，也不再向上传播
    cash_logger = logging.getLogger(CASH_LOGGER_NAME)
    cash_logger.setLevel(logging.INFO)
    cash_logger.handlers.clear()
    cash_logger.propagate = False
    cash_logger.addHandler(_daily_file_handler(log_dir / "cash.log", logging.INFO, CASH_LOG_FORMAT, retention_days))

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    logging.info(f"📋 日志系统初始化完成，目录: {log_dir.resolve()}")


def get_logger(name: str) -> logging.Logger:
    """获取命名日志器：logger = get_logger(__name__)"""
    return logging.getLogger(name)


def get_cash_logger() -> logging.Logger:
    return logging.getLogger(CASH_LOGGER_NAME)
