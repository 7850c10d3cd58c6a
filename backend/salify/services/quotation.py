"""
报价单计算与过期同步

计算规则：
  明细小计   = 数量 × 单价
  明细折扣   = 小计 × 折扣%
  折后金额   = 小计 - 折扣
  明细税额   = 折后金额 × 税率%
  明细合计   = 折后金额 + 税额
  总计 = Σ小计 - Σ折扣 + Σ税额 - 整单折扣 + 整单税额 + 运费 + 其他费用
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salify.core.logging_config import get_logger
from salify.core.money import round_money, to_decimal, ZERO, Number
from salify.models.quotation import Quotation, EXPIRABLE_STATUSES
from salify.services.activity import log_activity

logger = get_logger(__name__)

HUNDRED = Decimal("100")


@dataclass
class QuotationItemAmounts:
    item_subtotal: Decimal
    item_discount_amount: Decimal
    price_after_item_discount: Decimal
    item_tax_amount: Decimal
    item_total: Decimal


@dataclass
class QuotationTotals:
    sub_total: Decimal
    total_item_discount_amount: Decimal
    total_item_tax_amount: Decimal
    grand_total: Decimal


def calculate_item_amounts(
    quantity: Number,
    sale_price: Number,
    discount_percentage: Number = 0,
    tax_percentage: Number = 0) -> QuotationItemAmounts:
    """计算单行报价金额"""
    subtotal = round_money(to_decimal(quantity) * to_decimal(sale_price))
    discount = round_money(subtotal * to_decimal(discount_percentage) / HUNDRED)
    after_discount = subtotal - discount
    tax = round_money(after_discount * to_decimal(tax_percentage) / HUNDRED)
    return QuotationItemAmounts(
        item_subtotal=subtotal,
        item_discount_amount=discount,
        price_after_item_discount=after_discount,
        item_tax_amount=tax,
        item_total=after_discount + tax,
    )


def calculate_totals(
    items: Iterable[QuotationItemAmounts],
    overall_discount_amount: Number = 0,
    overall_tax_amount: Number = 0,
    shipping_charges: Number = 0,
    extra_costs: Number = 0) -> QuotationTotals:
    """计算报价单汇总金额"""
    items = list(items)
    sub_total = sum((i.item_subtotal for i in items), ZERO)
    total_discount = sum((i.item_discount_amount for i in items), ZERO)
    total_tax = sum((i.item_tax_amount for i in items), ZERO)
    grand_total = (
        sub_total - total_discount + total_tax
        - to_decimal(overall_discount_amount)
        + to_decimal(overall_tax_amount)
        + to_decimal(shipping_charges)
        + to_decimal(extra_costs)
    )
    return QuotationTotals(
        sub_total=round_money(sub_total),
        total_item_discount_amount=round_money(total_discount),
        total_item_tax_amount=round_money(total_tax),
        grand_total=round_money(grand_total),
    )


async def sync_expired_quotations(db: AsyncSession, today: Optional[date] = None) -> List[Quotation]:
    """
    有效期已过的草稿/已发送报价单标记为过期

    每张报价单记录一条 QUOTATION_STATUS_CHANGED 日志，调用方负责 commit
    """
    today = today or datetime.utcnow().date()
    result = await db.execute(
        select(Quotation).where(
            Quotation.status.in_(EXPIRABLE_STATUSES),
            Quotation.valid_till_date < today
        )
    )
    expired = list(result.scalars().all())

    for quotation in expired:
        old_status = quotation.status
        quotation.status = "Expired"
        quotation.last_updated_at = datetime.utcnow()
        log_activity(
            db, "QUOTATION_STATUS_CHANGED",
            f"Quotation #{quotation.numeric_quotation_id} for {quotation.customer_name} automatically expired. "
            f"Status changed from {old_status} to Expired.",
            {
                "quotationId": quotation.id,
                "numericQuotationId": quotation.numeric_quotation_id,
                "customerName": quotation.customer_name,
                "oldStatus": old_status,
                "newStatus": "Expired",
                "grandTotal": quotation.grand_total,
            }
        )

    if expired:
        logger.info(f"📄 {len(expired)} 张报价单已过期")
    return expired
