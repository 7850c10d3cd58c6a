"""应用设置API"""

from typing import Any, List, Tuple
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salify.core.deps import get_db
from salify.core.logging_config import get_logger
from salify.models.app_settings import AppSettings
from salify.models.customer import Customer
from salify.schemas.app_settings import AppSettingsResponse, AppSettingsUpdate
from salify.services.activity import log_activity
from salify.services.app_settings import get_app_settings

router = APIRouter()
logger = get_logger(__name__)


def _same_list(a, b) -> bool:
    return sorted(a or []) == sorted(b or [])


def detect_changes(current: AppSettings, update: AppSettingsUpdate) -> Tuple[List[str], List[str]]:
    """
    对比新旧设置

    返回 (变更描述列表, 实际变更的字段列表)
    """
    data = update.model_dump(exclude_unset=True)
    changes = []
    fields = []

    for field, value in data.items():
        if value is None:
            continue
        old = getattr(current, field)

        if field in ("known_categories", "known_shop_names"):
            if _same_list(value, old):
                continue
        elif value == old:
            continue
        fields.append(field)

        if field == "low_stock_threshold":
            changes.append(f"Low stock threshold to {value}")
        elif field == "currency":
            changes.append(f"Currency to {value}")
        elif field == "company_display_name":
            changes.append(f'Company display name to "{value}"')
        elif field == "has_completed_initial_setup":
            changes.append("Initial setup completed" if value else "Initial setup marked incomplete")
        elif field == "walk_in_customer_default_name":
            changes.append(f'Walk-in customer default name to "{value}"')
        elif field == "known_categories":
            changes.append("Known categories list updated")
        elif field == "known_shop_names":
            changes.append("Known shop names list updated")
        elif field == "obfuscation_character":
            changes.append(f'Obfuscation character for hidden amounts changed to "{value}"')
        elif field == "prompt_credit_on_delete":
            changes.append(f"Prompt to credit stock value on product delete turned {'on' if value else 'off'}")
        elif field == "auto_backup_frequency":
            changes.append(f"Auto-backup frequency changed from {old} to {value}")

    return changes, fields


@router.get("/", response_model=AppSettingsResponse)
async def read_settings(
    *,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """获取应用设置"""
    app_settings = await get_app_settings(db)
    await db.commit()
    return app_settings


@router.put("/", response_model=AppSettingsResponse)
async def update_settings(
    *,
    db: AsyncSession = Depends(get_db),
    settings_in: AppSettingsUpdate
) -> Any:
    """更新应用设置（只记录真正变化的字段）"""
    app_settings = await get_app_settings(db)
    changes, fields = detect_changes(app_settings, settings_in)

    if not fields:
        return app_settings

    data = settings_in.model_dump(exclude_unset=True)
    for field in fields:
        value = data[field]
        if field in ("known_categories", "known_shop_names"):
            value = sorted({v.strip() for v in value if v and v.strip()})
        setattr(app_settings, field, value)

    # 散客名称同步到系统散客
    if "walk_in_customer_default_name" in fields:
        result = await db.execute(select(Customer).where(Customer.is_walk_in == True))
        walk_in = result.scalar_one_or_none()
        if walk_in:
            walk_in.name = app_settings.walk_in_customer_default_name

    if fields == ["known_shop_names"]:
        log_activity(db, "SHOP_NAME_UPDATE", f"{changes[0]}.", {"updatedFields": fields})
    else:
        log_activity(
            db, "SETTINGS_UPDATE",
            f"Settings updated: {', '.join(changes)}.",
            {"updatedFields": fields}
        )

    await db.commit()
    logger.info(f"⚙️ 设置已更新: {', '.join(fields)}")
    return app_settings
