from datetime import date, datetime
from decimal import Decimal

import pytest

from salify.core.money import round_money, format_money, to_decimal
from salify.core.periods import get_period_range, get_period_label, resolve_date_range


def test_round_money_half_up():
    assert round_money(2.675) == Decimal("2.68")
    assert round_money("10") == Decimal("10.00")
    assert round_money(None) == Decimal("0.00")


def test_to_decimal_avoids_float_artifacts():
    assert to_decimal(0.1) + to_decimal(0.2) == Decimal("0.3")


def test_format_money():
    assert format_money(1234.5, "PKR") == "PKR 1,234.50"
    assert format_money(-20) == "-20.00"


def test_this_month_range():
    start, end = get_period_range("this_month", now=datetime(2024, 12, 15, 10, 30))
    assert start == datetime(2024, 12, 1)
    assert end == datetime(2025, 1, 1)


def test_last_month_range_crosses_year():
    start, end = get_period_range("last_month", now=datetime(2024, 1, 15))
    assert start == datetime(2023, 12, 1)
    assert end == datetime(2024, 1, 1)


def test_this_year_and_all_time():
    assert get_period_range("this_year", now=datetime(2024, 6, 1)) == (datetime(2024, 1, 1), datetime(2025, 1, 1))
    assert get_period_range("all_time") == (None, None)


def test_unknown_period_rejected():
    with pytest.raises(ValueError):
        get_period_range("next_week")


def test_period_labels():
    assert get_period_label("this_month") == "This Month"
    assert get_period_label("last_month") == "Last Month"
    assert get_period_label("this_year") == "This Year"
    assert get_period_label("all_time") == "All Time"


def test_explicit_dates_include_end_day():
    start, end = resolve_date_range("this_month", date(2024, 3, 1), date(2024, 3, 31))
    assert start == datetime(2024, 3, 1)
    assert end == datetime(2024, 4, 1)


def test_no_period_means_no_range():
    assert resolve_date_range() == (None, None)
