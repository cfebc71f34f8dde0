from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from subtracker.domain.billing import monthly_cost, next_payment_date, parse_price, total_monthly_spend


def _item(price, cycle):
    return SimpleNamespace(price=price, billing_cycle=cycle)


@pytest.mark.parametrize(
    "price, cycle, expected",
    [
        ("10.00", "Weekly", Decimal("43.30")),
        ("30.00", "Quarterly", Decimal("10.00")),
        ("120.00", "Yearly", Decimal("10.00")),
        ("19.99", "Monthly", Decimal("19.99")),
        ("10", "Biweekly", Decimal("21.70")),
        ("5", "Daily", Decimal("5.00")),
    ],
)
def test_monthly_normalization(price, cycle, expected):
    assert total_monthly_spend([_item(price, cycle)]) == expected


def test_cycle_match_ignores_case():
    assert monthly_cost("10", "weekly") == monthly_cost("10", "WEEKLY") == Decimal("43.30")


def test_unknown_cycle_is_taken_as_monthly():
    assert monthly_cost("7.5", "Fortnightly") == Decimal("7.5")


def test_unparseable_price_counts_as_zero():
    assert parse_price("abc") is None
    assert parse_price("NaN") is None
    assert total_monthly_spend([_item("abc", "Monthly"), _item("1.00", "Monthly")]) == Decimal("1.00")


def test_total_rounds_once_at_the_end():
    # Three quarterly 1.00 items are 0.333... each; rounding per item would give 0.99.
    items = [_item("1.00", "Quarterly")] * 3
    assert total_monthly_spend(items) == Decimal("1.00")


def test_half_up_rounding():
    assert total_monthly_spend([_item("0.015", "Monthly")]) == Decimal("0.02")


def test_empty_total_is_zero():
    assert total_monthly_spend([]) == Decimal("0.00")


@pytest.mark.parametrize(
    "start, cycle, expected",
    [
        (date(2024, 1, 10), "Daily", date(2024, 1, 11)),
        (date(2024, 1, 10), "Weekly", date(2024, 1, 17)),
        (date(2024, 1, 10), "Biweekly", date(2024, 1, 24)),
        (date(2024, 1, 31), "Monthly", date(2024, 2, 29)),
        (date(2023, 1, 31), "Monthly", date(2023, 2, 28)),
        (date(2024, 11, 30), "Quarterly", date(2025, 2, 28)),
        (date(2024, 2, 29), "Yearly", date(2025, 2, 28)),
        (date(2024, 12, 15), "monthly", date(2025, 1, 15)),
    ],
)
def test_next_payment_date(start, cycle, expected):
    assert next_payment_date(start, cycle) == expected
