from datetime import datetime, timedelta
from decimal import Decimal

from salify.models.purchase import resolve_payment_status
from salify.services.quotation import calculate_item_amounts, calculate_totals
from salify.services.scheduler import is_backup_due


def test_item_amounts_discount_then_tax():
    amounts = calculate_item_amounts(2, 100, discount_percentage=10, tax_percentage=5)
    assert amounts.item_subtotal == Decimal("200.00")
    assert amounts.item_discount_amount == Decimal("20.00")
    assert amounts.price_after_item_discount == Decimal("180.00")
    assert amounts.item_tax_amount == Decimal("9.00")
    assert amounts.item_total == Decimal("189.00")


def test_totals_with_overall_charges():
    items = [
        calculate_item_amounts(2, 100, 10, 5),
        calculate_item_amounts(1, 50),
    ]
    totals = calculate_totals(
        items, overall_discount_amount=9, overall_tax_amount=1, shipping_charges=20, extra_costs=4
    )
    assert totals.sub_total == Decimal("250.00")
    assert totals.total_item_discount_amount == Decimal("20.00")
    assert totals.total_item_tax_amount == Decimal("9.00")
    # 250 - 20 + 9 - 9 + 1 + 20 + 4
    assert totals.grand_total == Decimal("255.00")


def test_fractional_quantity():
    amounts = calculate_item_amounts(1.5, "19.99")
    assert amounts.item_subtotal == Decimal("29.99")


def test_payment_status():
    assert resolve_payment_status(Decimal("100"), Decimal("0")) == "unpaid"
    assert resolve_payment_status(Decimal("100"), Decimal("40")) == "partially_paid"
    assert resolve_payment_status(Decimal("100"), Decimal("100")) == "paid"
    assert resolve_payment_status(Decimal("0"), Decimal("0")) == "unpaid"


def test_backup_due_by_frequency():
    now = datetime(2024, 5, 10, 3, 0)
    assert is_backup_due("daily", None, now)
    assert is_backup_due("daily", now - timedelta(hours=23), now)
    assert not is_backup_due("weekly", now - timedelta(days=3), now)
    assert is_backup_due("weekly", now - timedelta(days=7), now)
    assert not is_backup_due("monthly", now - timedelta(days=29), now)
    assert not is_backup_due("disabled", None, now)
