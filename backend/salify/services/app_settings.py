"""应用设置读取与流水号生成"""

from sqlalchemy.ext.asyncio import AsyncSession

from salify.db.init_db import build_default_settings
from salify.models.app_settings import AppSettings, SETTINGS_ROW_ID

# 计数器名称 -> 字段
NUMERIC_ID_COUNTERS = {
    "sale": "last_sale_numeric_id",
    "customer": "last_customer_numeric_id",
    "purchase": "last_purchase_numeric_id",
    "quotation": "last_quotation_numeric_id",
    "return": "last_return_numeric_id",
    "supplier_payment": "last_supplier_payment_numeric_id",
}


async def get_app_settings(db: AsyncSession) -> AppSettings:
    """获取设置行，不存在时按默认值创建"""
    app_settings = await db.get(AppSettings, SETTINGS_ROW_ID)
    if not app_settings:
        app_settings = build_default_settings()
        db.add(app_settings)
        await db.flush()
    return app_settings


async def next_numeric_id(db: AsyncSession, counter: str) -> int:
    """
    计数器 +1 并返回新编号

    在调用方的事务内执行，业务失败时计数器一起回滚
    """
    field = NUMERIC_ID_COUNTERS[counter]
    app_settings = await get_app_settings(db)
    value = (getattr(app_settings, field) or 0) + 1
    setattr(app_settings, field, value)
    return value


def remember_category(app_settings: AppSettings, category: str) -> None:
    """分类加入已知分类列表（JSON 列需整体赋值才会被检测到修改）"""
    category = (category or "").strip()
    known = list(app_settings.known_categories or [])
    if category and category not in known:
        app_settings.known_categories = sorted(known + [category])


def remember_shop_name(app_settings: AppSettings, shop_name: str) -> None:
    shop_name = (shop_name or "").strip()
    known = list(app_settings.known_shop_names or [])
    if shop_name and shop_name not in known:
        app_settings.known_shop_names = sorted(known + [shop_name])
