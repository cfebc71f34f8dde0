from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from ...domain.billing import BILLING_CYCLES, next_payment_date, parse_price
from ...domain.exceptions import (
    AuthError,
    ConflictError,
    ConsistencyFailure,
    NotFoundError,
    ValidationError,
)
from ...domain.models import DeletedSubscription, DeletedUser, EmailHistory, NotificationPreferences, Subscription, User
from ...domain.models.user import REMINDER_FREQUENCIES
from ...domain.ports.collaborators import PasswordHasher, PostCommitHook
from ...domain.ports.persistence import EmailHistoryRepository, SubscriptionRepository, UserRepository
from ...services.archive_writer import ArchiveWriter, BulkDeletionResult
from ...services.credential_ledger import CredentialLedger
from ...services.notification_dispatcher import NotificationDispatcher
from .pagination import Page, page_bounds

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = (
    "If an account exists for this email address, a password reset link has been sent to it."
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6
MAX_NAME_LENGTH = 50
MAX_BIO_LENGTH = 500
MAX_SUBSCRIPTION_NAME_LENGTH = 100

_CYCLES_BY_KEY = {cycle.lower(): cycle for cycle in BILLING_CYCLES}


@dataclass(frozen=True, slots=True)
class EmailChange:
    previous_email: str
    new_email: str
    changed: bool


class LifecycleOrchestrator:
    """Runs every account and subscription flow across the stores.

    The account and subscription stores are the source of truth and are
    written first. Destructive operations go through the archive writer.
    The registry and notifications are side effects fired afterwards and
    never change the outcome reported to the caller.
    """

    def __init__(
        self,
        users: UserRepository,
        subscriptions: SubscriptionRepository,
        email_history: EmailHistoryRepository,
        archive_writer: ArchiveWriter,
        ledger: CredentialLedger,
        hasher: PasswordHasher,
        notifications: NotificationDispatcher,
        hook: PostCommitHook,
    ) -> None:
        self._users = users
        self._subscriptions = subscriptions
        self._email_history = email_history
        self._archive = archive_writer
        self._ledger = ledger
        self._hasher = hasher
        self._notifications = notifications
        self._hook = hook
        self._dummy_hash: Optional[str] = None

    # ------------------------------------------------------------------
    # Sessions and credentials
    # ------------------------------------------------------------------
    def signup(self, name: str, email: str, password: str, confirm_password: str) -> Tuple[User, str]:
        name = (name or "").strip()
        email = (email or "").strip()
        if not name or not email or not password or not confirm_password:
            raise ValidationError("Please provide all required fields")
        _check_name(name)
        _check_email(email)
        if password != confirm_password:
            raise ValidationError("Passwords do not match")
        _check_password(password)
        if self._users.email_in_use(email):
            raise ConflictError("Email already in use")

        user = self._users.create(name=name, email=email, password_hash=self._hasher.hash(password))
        token = self._ledger.issue_session_token(user)
        logger.info("New user signed up: %s", user.id)

        self._notifications.submit("welcome", user.email, {"name": user.name})
        self._hook.account_changed(user.id)
        return user, token

    def login(self, email: str, password: str) -> Tuple[User, str]:
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("Please provide email and password")

        user = self._users.get_by_email(email)
        if user is None:
            # Burn the same hashing cost as a real check.
            self._hasher.verify(password, self._placeholder_hash())
            raise AuthError("Invalid credentials")
        if not self._hasher.verify(password, user.password_hash):
            raise AuthError("Invalid credentials")

        token = self._ledger.issue_session_token(user)
        self._hook.account_active(user.id)
        return user, token

    def authenticate(self, token: Optional[str]) -> User:
        """Resolve a session token to a live user, or raise AuthError."""
        identity = self._ledger.verify_session_token(token)
        if identity is None:
            raise AuthError()
        user = self._users.get_by_id(identity.id)
        if user is None:
            raise AuthError()
        return user

    def change_email(
        self,
        user_id: int,
        new_email: str,
        password: str,
        *,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChange:
        """
        Move an account to a new email address after re-checking the password.

        The EmailHistory row is appended before the user row takes the new
        address, so no reader ever sees a changed email without its history.
        If the history append fails nothing has changed. If the address update
        fails after the append, the orphaned history row is reported as a
        ConsistencyFailure for reconciliation.
        """
        new_email = (new_email or "").strip()
        if not new_email or not password:
            raise ValidationError("All fields are required")
        _check_email(new_email)

        user = self._require_user(user_id)
        if not self._hasher.verify(password, user.password_hash):
            raise AuthError("Password is incorrect")

        previous_email = user.email
        if previous_email == new_email:
            return EmailChange(previous_email=previous_email, new_email=new_email, changed=False)
        if self._users.email_in_use(new_email, exclude_user_id=user.id):
            raise ConflictError("Email is already in use")

        history = self._email_history.append(
            user.id,
            previous_email,
            new_email,
            self._ledger.now(),
            reason=reason or "User requested change",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info("Email history recorded for user %s", user.id)

        details = {
            "user_id": user.id,
            "previous_email": previous_email,
            "new_email": new_email,
            "email_history_id": history.id,
        }
        try:
            updated = self._users.update_email(user.id, new_email)
        except Exception as exc:
            logger.exception("Email update failed after its history row was written: %s", details)
            raise ConsistencyFailure(details=details) from exc
        if not updated:
            logger.error("Email update matched no user after its history row was written: %s", details)
            raise ConsistencyFailure(details=details)

        self._notifications.submit(
            "email-changed",
            previous_email,
            {"name": user.name, "previous_email": previous_email, "new_email": new_email, "ip_address": ip_address},
        )
        self._notifications.submit(
            "email-change-confirmation",
            new_email,
            {"name": user.name, "previous_email": previous_email, "new_email": new_email},
        )
        self._hook.account_changed(user.id)
        return EmailChange(previous_email=previous_email, new_email=new_email, changed=True)

    def change_password(self, user_id: int, current_password: str, new_password: str, confirm_password: str) -> None:
        if not current_password or not new_password or not confirm_password:
            raise ValidationError("All fields are required")
        if new_password != confirm_password:
            raise ValidationError("New passwords do not match")
        _check_password(new_password)

        user = self._require_user(user_id)
        if not self._hasher.verify(current_password, user.password_hash):
            raise AuthError("Current password is incorrect")

        self._users.update_password(user.id, self._hasher.hash(new_password))
        logger.info("Password changed for user %s", user.id)
        self._notifications.submit("password-changed", user.email, {"name": user.name})

    def forgot_password(self, email: str) -> str:
        """
        Start a password reset.

        Returns the same message whether or not an account exists, and the
        reset email is sent in the background either way.
        """
        email = (email or "").strip()
        if not email:
            raise ValidationError("Email is required")

        user = self._users.get_by_email(email)
        if user is None:
            logger.info("Password reset requested for an unknown address")
            return FORGOT_PASSWORD_MESSAGE

        reset = self._ledger.issue_reset_token()
        self._users.set_reset_token(user.id, reset.value, reset.expires_at)
        self._notifications.submit(
            "password-reset",
            user.email,
            {"name": user.name, "email": user.email, "token": reset.value},
        )
        return FORGOT_PASSWORD_MESSAGE

    def reset_password(self, email: str, token: str, password: str) -> None:
        email = (email or "").strip()
        if not email or not token or not password:
            raise ValidationError("All fields are required")
        _check_password(password)

        user = self._ledger.validate_reset_token(email, token)
        if user is None:
            raise AuthError("Invalid or expired reset token")
        consumed = self._users.consume_reset_token(
            user.id, token, self._hasher.hash(password), self._ledger.now()
        )
        if not consumed:
            raise AuthError("Invalid or expired reset token")

        logger.info("Password reset completed for user %s", user.id)
        self._notifications.submit("password-changed", user.email, {"name": user.name})

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------
    def get_profile(self, user_id: int) -> User:
        return self._require_user(user_id)

    def update_profile(self, user_id: int, *, name: Optional[str] = None, bio: Optional[str] = None) -> User:
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Name cannot be empty")
            _check_name(name)
        if bio is not None and len(bio) > MAX_BIO_LENGTH:
            raise ValidationError(f"Bio cannot be more than {MAX_BIO_LENGTH} characters")

        user = self._users.update_profile(user_id, name=name, bio=bio)
        if user is None:
            raise NotFoundError("User not found")
        self._hook.account_changed(user.id)
        return user

    def update_notification_preferences(
        self,
        user_id: int,
        *,
        payment_reminders: bool,
        reminder_frequency: str,
        monthly_reports: Optional[bool] = None,
    ) -> NotificationPreferences:
        if reminder_frequency not in REMINDER_FREQUENCIES:
            raise ValidationError(
                "Invalid reminder frequency. Must be one of: " + ", ".join(REMINDER_FREQUENCIES)
            )
        user = self._require_user(user_id)
        preferences = NotificationPreferences(
            payment_reminders=bool(payment_reminders),
            reminder_frequency=reminder_frequency,
            monthly_reports=user.notification_preferences.monthly_reports
            if monthly_reports is None
            else bool(monthly_reports),
        )
        updated = self._users.update_notification_preferences(user.id, preferences)
        if updated is None:
            raise NotFoundError("User not found")
        return updated.notification_preferences

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def list_subscriptions(self, user_id: int) -> List[Subscription]:
        return self._subscriptions.list_by_owner(user_id)

    def get_subscription(self, user_id: int, subscription_id: int) -> Subscription:
        subscription = self._subscriptions.get_for_owner(user_id, subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription not found")
        return subscription

    def create_subscription(
        self,
        user_id: int,
        *,
        name: str,
        price: Any,
        category: str,
        billing_cycle: str,
        start_date: str,
        next_payment: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Subscription:
        if not name or price in (None, "") or not category or not billing_cycle or not start_date:
            raise ValidationError("Please provide all required fields")
        fields = _clean_subscription_fields(
            {
                "name": name,
                "price": price,
                "category": category,
                "billing_cycle": billing_cycle,
                "start_date": start_date,
                "next_payment": next_payment,
                "description": description or "",
            }
        )
        if not fields.get("next_payment"):
            start = date.fromisoformat(fields["start_date"])
            fields["next_payment"] = next_payment_date(start, fields["billing_cycle"]).isoformat()

        subscription = self._subscriptions.create(user_id, **fields)
        logger.info("Created subscription %s for user %s", subscription.id, user_id)
        self._hook.subscriptions_changed(user_id)
        return subscription

    def update_subscription(self, user_id: int, subscription_id: int, changes: Dict[str, Any]) -> Subscription:
        fields = _clean_subscription_fields({key: value for key, value in changes.items() if value is not None})
        if not fields:
            raise ValidationError("No fields to update")
        subscription = self._subscriptions.update(user_id, subscription_id, fields)
        if subscription is None:
            raise NotFoundError("Subscription not found")
        self._hook.subscriptions_changed(user_id)
        return subscription

    def delete_subscription(self, user_id: int, subscription_id: int) -> DeletedSubscription:
        subscription = self.get_subscription(user_id, subscription_id)
        try:
            return self._archive.archive_subscription_deletion(subscription, deleted_by="user")
        finally:
            self._hook.subscriptions_changed(user_id)

    def delete_all_subscriptions(self, user_id: int) -> BulkDeletionResult:
        subscriptions = self._subscriptions.list_by_owner(user_id)
        if not subscriptions:
            return BulkDeletionResult(archived=0, removed=0)
        try:
            return self._archive.archive_bulk_deletion(user_id, subscriptions, deleted_by="user")
        finally:
            self._hook.subscriptions_changed(user_id)

    # ------------------------------------------------------------------
    # Account deletion and history
    # ------------------------------------------------------------------
    def delete_account(
        self,
        user_id: int,
        *,
        deleted_by: str = "user",
        reason: Optional[str] = "User-initiated account deletion",
    ) -> DeletedUser:
        """
        Snapshot the account, then remove its subscriptions and the user row.

        A failed snapshot aborts before any live data is touched. Once the
        snapshot exists, rows already deleted stay deleted even if a later
        step fails; the failure is logged and reported as ConsistencyFailure.
        """
        user = self._require_user(user_id)
        subscriptions = self._subscriptions.list_by_owner(user.id)
        record = self._archive.archive_account_deletion(
            user, subscriptions, deleted_by=deleted_by, reason=reason
        )

        details: Dict[str, Any] = {"user_id": user.id, "deleted_user_id": record.id}
        try:
            _, removed = self._subscriptions.delete_all_by_owner(user.id)
            details["subscriptions_removed"] = removed
            if self._users.delete(user.id) is None:
                logger.warning("User %s was already gone when its row was deleted", user.id)
        except Exception as exc:
            logger.exception("Account deletion stopped after the snapshot was written: %s", details)
            self._hook.subscriptions_changed(user.id)
            raise ConsistencyFailure(details=details) from exc

        self._hook.account_deleted(user.id)

        logger.info("User account deleted: %s (%s subscriptions)", user.id, details["subscriptions_removed"])
        return record

    def email_history(self, user_id: int, page: int = 1, limit: int = 10) -> Page[EmailHistory]:
        offset, limit = page_bounds(page, limit)
        items, total = self._email_history.page_for_user(user_id, offset, limit)
        return Page(items=items, total=total, page=page, limit=limit)

    # ------------------------------------------------------------------
    def _require_user(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _placeholder_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self._hasher.hash("placeholder-password")
        return self._dummy_hash


def _check_name(name: str) -> None:
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name cannot be more than {MAX_NAME_LENGTH} characters")


def _check_email(email: str) -> None:
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Please enter a valid email address")


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def _check_date(value: Any, field: str) -> str:
    try:
        return date.fromisoformat(str(value).strip()).isoformat()
    except ValueError as exc:
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format") from exc


def _clean_subscription_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and normalize whichever subscription fields are present."""
    cleaned: Dict[str, Any] = {}
    if "name" in fields:
        name = str(fields["name"]).strip()
        if not name:
            raise ValidationError("Name cannot be empty")
        if len(name) > MAX_SUBSCRIPTION_NAME_LENGTH:
            raise ValidationError(f"Name cannot be more than {MAX_SUBSCRIPTION_NAME_LENGTH} characters")
        cleaned["name"] = name
    if "price" in fields:
        amount = parse_price(fields["price"])
        if amount is None or amount < 0:
            raise ValidationError("Price must be a non-negative number")
        cleaned["price"] = str(fields["price"]).strip()
    if "category" in fields:
        category = str(fields["category"]).strip()
        if not category:
            raise ValidationError("Category cannot be empty")
        cleaned["category"] = category
    if "billing_cycle" in fields:
        cycle = _CYCLES_BY_KEY.get(str(fields["billing_cycle"]).strip().lower())
        if cycle is None:
            raise ValidationError("Invalid billing cycle. Must be one of: " + ", ".join(BILLING_CYCLES))
        cleaned["billing_cycle"] = cycle
    if "start_date" in fields:
        cleaned["start_date"] = _check_date(fields["start_date"], "start_date")
    if fields.get("next_payment"):
        cleaned["next_payment"] = _check_date(fields["next_payment"], "next_payment")
    if "description" in fields:
        cleaned["description"] = str(fields["description"] or "").strip()
    return cleaned
