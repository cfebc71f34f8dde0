"""User domain model and notification preferences."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

REMINDER_FREQUENCIES = ("daily", "3days", "weekly")


@dataclass(slots=True)
class NotificationPreferences:
    payment_reminders: bool = True
    reminder_frequency: str = "3days"
    monthly_reports: bool = True


class User:
    """
    User entity, the source of truth for an account's identity.

    Attributes:
        id: Unique identifier
        name: Display name
        email: Email address (unique among active users, stored as given)
        password_hash: One-way password digest, never serialized to callers
        bio: Optional free-text bio
        reset_password_token: Pending one-time reset token, if any
        reset_password_expires: Expiry of the pending reset token
        notification_preferences: Reminder and report settings
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: int,
        name: str,
        email: str,
        password_hash: str,
        bio: Optional[str] = None,
        reset_password_token: Optional[str] = None,
        reset_password_expires: Optional[datetime] = None,
        notification_preferences: Optional[NotificationPreferences] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.name = name
        self.email = email
        self.password_hash = password_hash
        self.bio = bio
        self.reset_password_token = reset_password_token
        self.reset_password_expires = reset_password_expires
        self.notification_preferences = notification_preferences or NotificationPreferences()
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)

    def has_pending_reset(self, now: datetime) -> bool:
        """Check if a reset token is set and still inside its validity window."""
        return bool(
            self.reset_password_token
            and self.reset_password_expires
            and self.reset_password_expires > now
        )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"
