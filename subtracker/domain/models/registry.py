"""Denormalized per-user aggregate kept by the registry synchronizer."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

EMAIL_SOURCES = ("signup", "change", "import", "admin")
SUMMARY_STATUSES = ("active", "cancelled", "paused")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass(slots=True)
class EmailEntry:
    email: str
    is_primary: bool
    is_verified: bool
    added_at: datetime
    source: str = "change"
    last_used_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["added_at"] = _iso(self.added_at)
        data["last_used_at"] = _iso(self.last_used_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmailEntry":
        return cls(
            email=data["email"],
            is_primary=bool(data.get("is_primary")),
            is_verified=bool(data.get("is_verified")),
            added_at=_parse(data.get("added_at")),
            source=data.get("source", "change"),
            last_used_at=_parse(data.get("last_used_at")),
        )


@dataclass(slots=True)
class SubscriptionSummary:
    subscription_id: int
    name: str
    provider: str
    price: str
    billing_cycle: str
    added_at: datetime
    last_updated_at: datetime
    status: str = "active"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["added_at"] = _iso(self.added_at)
        data["last_updated_at"] = _iso(self.last_updated_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubscriptionSummary":
        return cls(
            subscription_id=data["subscription_id"],
            name=data["name"],
            provider=data.get("provider", ""),
            price=data["price"],
            billing_cycle=data["billing_cycle"],
            added_at=_parse(data.get("added_at")),
            last_updated_at=_parse(data.get("last_updated_at")),
            status=data.get("status", "active"),
        )


@dataclass(slots=True)
class UserRegistry:
    user_id: int
    name: str
    current_email: str
    account_created_at: datetime
    email_history: List[EmailEntry] = field(default_factory=list)
    subscriptions: List[SubscriptionSummary] = field(default_factory=list)
    total_monthly_spend: Decimal = Decimal("0.00")
    last_active: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
