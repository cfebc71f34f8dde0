from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

NOTIFICATION_KINDS = (
    "welcome",
    "password-changed",
    "password-reset",
    "email-changed",
    "email-change-confirmation",
    "payment-reminder",
    "monthly-report",
)


@dataclass(frozen=True, slots=True)
class NotificationResult:
    success: bool
    error: Optional[str] = None


class PasswordHasher(Protocol):
    """Opaque one-way, salted password hashing."""

    def hash(self, plaintext: str) -> str:
        ...

    def verify(self, plaintext: str, digest: str) -> bool:
        ...


class NotificationSender(Protocol):
    """Outbound notifications. Must always resolve to a result, never raise."""

    def send(self, kind: str, recipient: str, data: Dict[str, Any]) -> NotificationResult:
        ...


class PostCommitHook(Protocol):
    """Side effects run after a primary store mutation has committed.

    Implementations must not raise: the primary operation has already
    succeeded by the time they run.
    """

    def subscriptions_changed(self, user_id: int) -> None:
        ...

    def account_changed(self, user_id: int) -> None:
        ...

    def account_active(self, user_id: int) -> None:
        ...

    def account_deleted(self, user_id: int) -> None:
        ...
