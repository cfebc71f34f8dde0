"""Domain models for the subscription tracker."""

from .archive import DeletedSubscription, DeletedUser, EmailHistory
from .registry import EmailEntry, SubscriptionSummary, UserRegistry
from .subscription import Subscription
from .user import NotificationPreferences, User

__all__ = [
    "DeletedSubscription",
    "DeletedUser",
    "EmailEntry",
    "EmailHistory",
    "NotificationPreferences",
    "Subscription",
    "SubscriptionSummary",
    "User",
    "UserRegistry",
]
