"""Billing-cycle rules: monthly normalization and next payment dates.

Account deletion summaries and the registry dashboard both total spend
through :func:`total_monthly_spend`, so the two figures never disagree.
"""

import calendar
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional, Union

BILLING_CYCLES = ("Daily", "Weekly", "Biweekly", "Monthly", "Quarterly", "Yearly")

_CENT = Decimal("0.01")

# (multiplier, divisor) to turn one cycle's price into a monthly figure.
_MONTHLY_FACTORS = {
    "weekly": (Decimal("4.33"), Decimal(1)),
    "biweekly": (Decimal("2.17"), Decimal(1)),
    "monthly": (Decimal(1), Decimal(1)),
    "quarterly": (Decimal(1), Decimal(3)),
    "yearly": (Decimal(1), Decimal(12)),
}


def parse_price(value: Union[str, Decimal, int, float, None]) -> Optional[Decimal]:
    """Return ``value`` as a Decimal, or None when it is not a finite number."""
    if value is None:
        return None
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite():
        return None
    return price


def monthly_cost(price: Union[str, Decimal, None], billing_cycle: Optional[str]) -> Decimal:
    """Unrounded monthly equivalent of one subscription.

    Daily and unrecognized cycles are taken as already monthly. A price that
    does not parse contributes nothing.
    """
    amount = parse_price(price)
    if amount is None:
        return Decimal(0)
    multiplier, divisor = _MONTHLY_FACTORS.get((billing_cycle or "").lower(), (Decimal(1), Decimal(1)))
    return amount * multiplier / divisor


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def total_monthly_spend(items: Iterable) -> Decimal:
    """Sum of normalized monthly costs, rounded to cents once at the end.

    ``items`` is any iterable of objects exposing ``price`` and
    ``billing_cycle`` (live subscriptions or registry summaries).
    """
    total = sum((monthly_cost(item.price, item.billing_cycle) for item in items), Decimal(0))
    return round_money(total)


def _add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def next_payment_date(start: date, billing_cycle: str) -> date:
    """First payment date after ``start`` for the given cycle."""
    cycle = (billing_cycle or "").lower()
    if cycle == "daily":
        return start + timedelta(days=1)
    if cycle == "weekly":
        return start + timedelta(days=7)
    if cycle == "biweekly":
        return start + timedelta(days=14)
    if cycle == "quarterly":
        return _add_months(start, 3)
    if cycle == "yearly":
        return _add_months(start, 12)
    return _add_months(start, 1)
