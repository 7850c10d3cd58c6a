"""金额工具 - 所有金额计算统一使用 Decimal，结果四舍五入到分"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[int, float, str, Decimal]


def to_decimal(value: Optional[Number]) -> Decimal:
    """任意数字转 Decimal（float 先转字符串，避免二进制误差）"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Optional[Number]) -> Decimal:
    """四舍五入到分"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Optional[Number], currency: str = "") -> str:
    """日志描述用的金额格式：PKR 1,234.50"""
    text = f"{round_money(value):,.2f}"
    return f"{currency} {text}" if currency else text
