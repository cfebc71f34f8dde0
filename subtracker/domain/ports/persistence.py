from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from ..models import (
    DeletedSubscription,
    DeletedUser,
    EmailHistory,
    NotificationPreferences,
    Subscription,
    User,
    UserRegistry,
)


class UserRepository(Protocol):
    """Account store: the single source of truth for identity."""

    def create(self, name: str, email: str, password_hash: str) -> User:
        ...

    def get_by_id(self, user_id: int) -> Optional[User]:
        ...

    def get_by_email(self, email: str) -> Optional[User]:
        ...

    def email_in_use(self, email: str, exclude_user_id: Optional[int] = None) -> bool:
        ...

    def update_profile(self, user_id: int, *, name: Optional[str] = None, bio: Optional[str] = None) -> Optional[User]:
        ...

    def update_notification_preferences(
        self, user_id: int, preferences: NotificationPreferences
    ) -> Optional[User]:
        ...

    def update_email(self, user_id: int, new_email: str) -> bool:
        ...

    def update_password(self, user_id: int, password_hash: str) -> bool:
        ...

    def set_reset_token(self, user_id: int, token: str, expires_at: datetime) -> None:
        ...

    def consume_reset_token(self, user_id: int, token: str, password_hash: str, now: datetime) -> bool:
        ...

    def delete(self, user_id: int) -> Optional[User]:
        ...


class SubscriptionRepository(Protocol):
    """Subscription store: active subscriptions keyed by owner."""

    def list_by_owner(self, user_id: int) -> List[Subscription]:
        ...

    def get_for_owner(self, user_id: int, subscription_id: int) -> Optional[Subscription]:
        ...

    def create(
        self,
        user_id: int,
        name: str,
        price: str,
        category: str,
        billing_cycle: str,
        start_date: str,
        next_payment: str,
        description: str = "",
    ) -> Subscription:
        ...

    def update(self, user_id: int, subscription_id: int, changes: Dict[str, Any]) -> Optional[Subscription]:
        ...

    def delete_for_owner(self, user_id: int, subscription_id: int) -> bool:
        ...

    def delete_ids_for_owner(self, user_id: int, subscription_ids: Sequence[int]) -> int:
        ...

    def delete_all_by_owner(self, user_id: int) -> Tuple[List[Subscription], int]:
        ...


class ArchiveRepository(Protocol):
    """Append-only archive of deleted users and subscriptions."""

    def add_deleted_user(
        self,
        user: User,
        subscription_count: int,
        total_spent: Decimal,
        deleted_by: str,
        reason: Optional[str],
        deleted_at: datetime,
    ) -> DeletedUser:
        ...

    def add_deleted_subscription(
        self,
        subscription: Subscription,
        deleted_by: str,
        deletion_method: str,
        reason: Optional[str],
        deleted_at: datetime,
    ) -> DeletedSubscription:
        ...

    def list_deleted_users(
        self,
        *,
        email: Optional[str] = None,
        original_id: Optional[int] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[DeletedUser], int]:
        ...

    def list_deleted_subscriptions(
        self,
        *,
        user_id: Optional[int] = None,
        deletion_method: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[DeletedSubscription], int]:
        ...


class EmailHistoryRepository(Protocol):
    def append(
        self,
        user_id: int,
        previous_email: str,
        new_email: str,
        changed_at: datetime,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailHistory:
        ...

    def list_for_user(self, user_id: int) -> List[EmailHistory]:
        ...

    def page_for_user(self, user_id: int, offset: int, limit: int) -> Tuple[List[EmailHistory], int]:
        ...


class RegistryRepository(Protocol):
    """Storage for the denormalized per-user registry."""

    def get(self, user_id: int) -> Optional[UserRegistry]:
        ...

    def save(self, registry: UserRegistry) -> None:
        ...

    def delete(self, user_id: int) -> bool:
        ...

    def search(
        self,
        *,
        email: Optional[str] = None,
        name: Optional[str] = None,
        min_spend: Optional[Decimal] = None,
        max_spend: Optional[Decimal] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[UserRegistry], int]:
        ...
