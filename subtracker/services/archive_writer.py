"""Archive-then-delete sequencing for users and subscriptions."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from subtracker.domain.billing import total_monthly_spend
from subtracker.domain.clock import Clock, utc_now
from subtracker.domain.exceptions import ConsistencyFailure, ValidationError
from subtracker.domain.models.archive import ACTORS, DeletedSubscription, DeletedUser
from subtracker.domain.models.subscription import Subscription
from subtracker.domain.models.user import User
from subtracker.domain.ports.persistence import ArchiveRepository, SubscriptionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BulkDeletionResult:
    archived: int
    removed: int
    skipped: int = 0


class ArchiveWriter:
    """Writes the immutable snapshot before a live row is allowed to go.

    The archive and the live store are separate writes with no transaction
    spanning them. The guarantee is ordering plus loud failure: a deletion
    is never reported as done unless its archive row exists, and an archive
    row whose live delete failed is reported as a ConsistencyFailure for an
    operator to reconcile. Nothing here retries.
    """

    def __init__(
        self,
        archive: ArchiveRepository,
        subscriptions: SubscriptionRepository,
        clock: Clock = utc_now,
    ):
        self.archive = archive
        self.subscriptions = subscriptions
        self._clock = clock

    def archive_subscription_deletion(
        self,
        subscription: Subscription,
        *,
        deleted_by: str = "user",
        reason: Optional[str] = None,
    ) -> DeletedSubscription:
        """
        Archive one subscription, then delete it from the live store.

        Raises:
            ConsistencyFailure: the archive write failed (live row untouched),
                or the live delete failed after the archive row was written
        """
        _check_actor(deleted_by)
        try:
            record = self.archive.add_deleted_subscription(
                subscription, deleted_by, "individual", reason, self._clock()
            )
        except Exception as exc:
            logger.exception(
                "Archive write failed for subscription %s (user %s); live row left in place",
                subscription.id,
                subscription.user_id,
            )
            raise ConsistencyFailure(
                details={"user_id": subscription.user_id, "subscription_id": subscription.id, "stage": "archive"}
            ) from exc

        details = {
            "user_id": subscription.user_id,
            "subscription_id": subscription.id,
            "archive_id": record.id,
            "stage": "delete",
        }
        try:
            removed = self.subscriptions.delete_for_owner(subscription.user_id, subscription.id)
        except Exception as exc:
            logger.exception("Live delete failed after archiving: %s", details)
            raise ConsistencyFailure(details=details) from exc
        if not removed:
            logger.error("Archived subscription was no longer live: %s", details)
            raise ConsistencyFailure(details=details)

        logger.info("Archived and deleted subscription %s for user %s", subscription.id, subscription.user_id)
        return record

    def archive_bulk_deletion(
        self,
        user_id: int,
        subscriptions: Sequence[Subscription],
        *,
        deleted_by: str = "user",
        reason: Optional[str] = "User cleared all subscriptions",
    ) -> BulkDeletionResult:
        """
        Archive each subscription (method ``bulk``), then delete exactly those archived.

        Archiving stops at the first failure; rows not archived stay live and
        are reported as ``skipped``. The number removed always equals the
        number archived, or a ConsistencyFailure is raised.
        """
        _check_actor(deleted_by)
        archived_ids: List[int] = []
        deleted_at = self._clock()
        for subscription in subscriptions:
            try:
                self.archive.add_deleted_subscription(subscription, deleted_by, "bulk", reason, deleted_at)
            except Exception:
                logger.exception(
                    "Bulk archive stopped at subscription %s for user %s after %s rows",
                    subscription.id,
                    user_id,
                    len(archived_ids),
                )
                break
            archived_ids.append(subscription.id)

        skipped = len(subscriptions) - len(archived_ids)
        if not archived_ids:
            if skipped:
                raise ConsistencyFailure(details={"user_id": user_id, "stage": "archive", "archived": 0})
            return BulkDeletionResult(archived=0, removed=0)

        details = {"user_id": user_id, "archived_ids": archived_ids, "stage": "delete"}
        try:
            removed = self.subscriptions.delete_ids_for_owner(user_id, archived_ids)
        except Exception as exc:
            logger.exception("Bulk live delete failed after archiving: %s", details)
            raise ConsistencyFailure(details=details) from exc
        if removed != len(archived_ids):
            details["removed"] = removed
            logger.error("Bulk delete removed a different number of rows than were archived: %s", details)
            raise ConsistencyFailure(details=details)

        logger.info("Bulk archived and deleted %s subscriptions for user %s", removed, user_id)
        return BulkDeletionResult(archived=len(archived_ids), removed=removed, skipped=skipped)

    def archive_account_deletion(
        self,
        user: User,
        subscriptions: Sequence[Subscription],
        *,
        deleted_by: str = "user",
        reason: Optional[str] = None,
    ) -> DeletedUser:
        """Snapshot a user with its subscription count and normalized monthly spend."""
        _check_actor(deleted_by)
        try:
            record = self.archive.add_deleted_user(
                user,
                len(subscriptions),
                total_monthly_spend(subscriptions),
                deleted_by,
                reason,
                self._clock(),
            )
        except Exception as exc:
            logger.exception("DeletedUser snapshot failed for user %s; nothing deleted", user.id)
            raise ConsistencyFailure(details={"user_id": user.id, "stage": "archive"}) from exc

        logger.info("Created deleted user record %s for user %s", record.id, user.id)
        return record


def _check_actor(actor: str) -> None:
    if actor not in ACTORS:
        raise ValidationError(f"Unknown deletion actor: {actor}")
