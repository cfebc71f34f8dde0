"""Keeps the denormalized user registry in step with the primary stores."""

import logging
from typing import List, Optional

from subtracker.domain.billing import total_monthly_spend
from subtracker.domain.clock import Clock, utc_now
from subtracker.domain.exceptions import BestEffortFailure
from subtracker.domain.models.archive import EmailHistory
from subtracker.domain.models.registry import EmailEntry, SubscriptionSummary, UserRegistry
from subtracker.domain.models.subscription import Subscription
from subtracker.domain.models.user import User
from subtracker.domain.ports.persistence import (
    EmailHistoryRepository,
    RegistryRepository,
    SubscriptionRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


class RegistrySynchronizer:
    """Sole writer of the UserRegistry rows.

    Every sync is a full recompute from the account, subscription and
    email-history stores, so running it twice, or late, or concurrently
    with another sync for the same user converges on the same registry.
    Only ``metadata`` and ``last_active`` survive a rebuild.
    """

    def __init__(
        self,
        users: UserRepository,
        subscriptions: SubscriptionRepository,
        email_history: EmailHistoryRepository,
        registry: RegistryRepository,
        clock: Clock = utc_now,
    ):
        self.users = users
        self.subscriptions = subscriptions
        self.email_history = email_history
        self.registry = registry
        self._clock = clock

    def resync(self, owner_id: int) -> Optional[UserRegistry]:
        """
        Rebuild the registry for ``owner_id``.

        Returns:
            The saved registry, or None when the user no longer exists
        """
        user = self.users.get_by_id(owner_id)
        if user is None:
            logger.warning("User %s not found for registry update", owner_id)
            return None

        subscriptions = self.subscriptions.list_by_owner(owner_id)
        history = self.email_history.list_for_user(owner_id)
        existing = self.registry.get(owner_id)

        registry = UserRegistry(
            user_id=user.id,
            name=user.name,
            current_email=user.email,
            account_created_at=user.created_at,
            email_history=build_email_entries(user, history),
            subscriptions=[_summarize(subscription) for subscription in subscriptions],
            total_monthly_spend=total_monthly_spend(subscriptions),
            last_active=existing.last_active if existing else None,
            last_updated=self._clock(),
            metadata=dict(existing.metadata) if existing else {},
        )
        self.registry.save(registry)
        logger.debug("User registry updated for user %s", owner_id)
        return registry

    def record_activity(self, owner_id: int) -> Optional[UserRegistry]:
        """Stamp ``last_active``, building the registry first if there is none."""
        registry = self.registry.get(owner_id) or self.resync(owner_id)
        if registry is None:
            return None
        registry.last_active = self._clock()
        self.registry.save(registry)
        return registry

    def discard(self, owner_id: int) -> bool:
        removed = self.registry.delete(owner_id)
        if removed:
            logger.info("Discarded registry for deleted user %s", owner_id)
        return removed


def build_email_entries(user: User, history: List[EmailHistory]) -> List[EmailEntry]:
    """Reconstruct the address list from the chronological change history.

    The first change contributes the signup address, every change its new
    address. Only the most recent entry matching the current email is
    marked primary.
    """
    if not history:
        return [
            EmailEntry(
                email=user.email,
                is_primary=True,
                is_verified=True,
                added_at=user.created_at,
                source="signup",
            )
        ]

    entries = [
        EmailEntry(
            email=history[0].previous_email,
            is_primary=False,
            is_verified=True,
            added_at=user.created_at,
            source="signup",
        )
    ]
    for change in history:
        entries.append(
            EmailEntry(
                email=change.new_email,
                is_primary=False,
                is_verified=True,
                added_at=change.changed_at,
                source="change",
            )
        )

    for entry in reversed(entries):
        if entry.email == user.email:
            entry.is_primary = True
            entry.last_used_at = entry.added_at
            break
    return entries


def _summarize(subscription: Subscription) -> SubscriptionSummary:
    return SubscriptionSummary(
        subscription_id=subscription.id,
        name=subscription.name,
        provider=subscription.description,
        price=subscription.price,
        billing_cycle=subscription.billing_cycle,
        added_at=subscription.created_at,
        last_updated_at=subscription.updated_at,
        status="active",
    )


class RegistrySyncHook:
    """Post-commit hook that runs registry syncs and never lets them fail a request."""

    def __init__(self, synchronizer: RegistrySynchronizer):
        self.synchronizer = synchronizer

    def subscriptions_changed(self, user_id: int) -> None:
        self._run("subscriptions_changed", self.synchronizer.resync, user_id)

    def account_changed(self, user_id: int) -> None:
        self._run("account_changed", self.synchronizer.resync, user_id)

    def account_active(self, user_id: int) -> None:
        self._run("account_active", self.synchronizer.record_activity, user_id)

    def account_deleted(self, user_id: int) -> None:
        self._run("account_deleted", self.synchronizer.discard, user_id)

    def _run(self, event: str, action, user_id: int) -> None:
        try:
            action(user_id)
        except Exception as exc:
            failure = BestEffortFailure(
                f"Registry sync failed on {event} for user {user_id}",
                details={"event": event, "user_id": user_id},
            )
            logger.error("%s", failure, exc_info=exc, extra={"failure": failure})
