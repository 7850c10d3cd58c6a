from typing import List, Union
import logging

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    部署级配置（环境变量 / .env）

    店铺经营相关的设置（币种、低库存阈值、备份频率等）保存在数据库 AppSettings 中，
    这里只提供首次启动时的默认值
    """
    PROJECT_NAME: str = "Salify"
    API_V1_STR: str = "/api/v1"

    # 前端开发服务器
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173"
    ]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # 只支持 SQLite 文件数据库（备份/恢复直接复制文件）
    SQLITE_DATABASE_URI: str = "sqlite:///./salify.db"

    @field_validator("SQLITE_DATABASE_URI")
    @classmethod
    def check_sqlite_uri(cls, v: str) -> str:
        if not v.startswith(("sqlite:///", "sqlite+aiosqlite:///")):
            raise ValueError("SQLITE_DATABASE_URI must point to a SQLite file")
        return v

    # 自动备份：每天固定时间检查一次，是否真正备份由 AppSettings.auto_backup_frequency 决定
    AUTO_BACKUP_ENABLED: bool = True
    AUTO_BACKUP_HOUR: int = Field(3, ge=0, le=23)
    AUTO_BACKUP_MINUTE: int = Field(0, ge=0, le=59)
    AUTO_BACKUP_KEEP_COUNT: int = Field(7, ge=1)

    QUOTATION_EXPIRY_HOUR: int = Field(0, ge=0, le=23)

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_RETENTION_DAYS: int = Field(30, ge=1)

    # 首次启动时写入 AppSettings 的默认值
    DEFAULT_CURRENCY: str = "PKR"
    DEFAULT_LOW_STOCK_THRESHOLD: int = 20
    WALK_IN_CUSTOMER_NAME: str = "Walk-in Customer"

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
logger.info(f"加载配置: DB={settings.SQLITE_DATABASE_URI}, 自动备份={'开' if settings.AUTO_BACKUP_ENABLED else '关'}")
