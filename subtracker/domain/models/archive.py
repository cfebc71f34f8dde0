"""Immutable snapshots written when a user or subscription is destroyed."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

ACTORS = ("user", "admin", "system")
DELETION_METHODS = ("individual", "bulk")


@dataclass(frozen=True, slots=True)
class DeletedUser:
    id: int
    original_id: int
    name: str
    email: str
    bio: Optional[str]
    created_at: datetime
    deleted_at: datetime
    subscription_count: int
    total_spent: Decimal
    reason: Optional[str]
    deleted_by: str


@dataclass(frozen=True, slots=True)
class DeletedSubscription:
    id: int
    user_id: int
    original_id: int
    name: str
    price: str
    category: str
    billing_cycle: str
    start_date: str
    description: str
    next_payment: Optional[str]
    deleted_at: datetime
    deleted_by: str
    deletion_method: str
    deletion_reason: Optional[str]


@dataclass(frozen=True, slots=True)
class EmailHistory:
    """One committed email change. Append-only."""

    id: int
    user_id: int
    previous_email: str
    new_email: str
    changed_at: datetime
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
