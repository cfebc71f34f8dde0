"""Subscription domain model for recurring payments tracked by a user."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from ..billing import monthly_cost


class Subscription:
    """
    Subscription entity representing one recurring payment.

    Attributes:
        id: Unique identifier
        user_id: Reference to the owning User
        name: Service name
        price: Price per billing cycle as a decimal string (currency-agnostic)
        category: Free-text category
        billing_cycle: One of Daily, Weekly, Biweekly, Monthly, Quarterly, Yearly
        start_date: First billing date (YYYY-MM-DD)
        next_payment: Next billing date (YYYY-MM-DD)
        description: Optional description, shown as the provider in the registry
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: int,
        user_id: int,
        name: str,
        price: str,
        category: str,
        billing_cycle: str,
        start_date: str,
        next_payment: str,
        description: str = "",
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.user_id = user_id
        self.name = name
        self.price = price
        self.category = category
        self.billing_cycle = billing_cycle
        self.start_date = start_date
        self.next_payment = next_payment
        self.description = description or ""
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)

    def monthly_cost(self) -> Decimal:
        """Unrounded monthly equivalent of this subscription's price."""
        return monthly_cost(self.price, self.billing_cycle)

    def __repr__(self) -> str:
        return f"<Subscription id={self.id} user_id={self.user_id} cycle={self.billing_cycle}>"
