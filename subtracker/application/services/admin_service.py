from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ...domain.exceptions import PermissionDeniedError, ValidationError
from ...domain.models import DeletedSubscription, DeletedUser, User, UserRegistry
from ...domain.models.archive import DELETION_METHODS
from ...domain.ports.persistence import ArchiveRepository, RegistryRepository
from .lifecycle_service import LifecycleOrchestrator
from .pagination import Page, page_bounds

logger = logging.getLogger(__name__)


class AdminService:
    """Read-only reports over the archive and registry, plus admin account removal.

    There is no role model: exactly one configured user id is privileged.
    With no id configured, nobody is.
    """

    def __init__(
        self,
        archive: ArchiveRepository,
        registry: RegistryRepository,
        lifecycle: LifecycleOrchestrator,
        admin_user_id: Optional[int] = None,
    ) -> None:
        self._archive = archive
        self._registry = registry
        self._lifecycle = lifecycle
        self._admin_user_id = admin_user_id

    def is_privileged(self, user: Optional[User]) -> bool:
        return bool(user and self._admin_user_id is not None and user.id == self._admin_user_id)

    def require_privileged(self, user: Optional[User]) -> User:
        if not self.is_privileged(user):
            if user is not None:
                logger.warning("User %s attempted an admin operation", user.id)
            raise PermissionDeniedError()
        return user

    def deleted_users(
        self,
        *,
        email: Optional[str] = None,
        original_id: Optional[int] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[DeletedUser]:
        if from_date and to_date and from_date > to_date:
            raise ValidationError("from_date must not be after to_date")
        offset, limit = page_bounds(page, limit)
        items, total = self._archive.list_deleted_users(
            email=email,
            original_id=original_id,
            from_date=from_date,
            to_date=to_date,
            offset=offset,
            limit=limit,
        )
        return Page(items=items, total=total, page=page, limit=limit)

    def deleted_subscriptions(
        self,
        *,
        user_id: Optional[int] = None,
        deletion_method: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[DeletedSubscription]:
        if deletion_method and deletion_method not in DELETION_METHODS:
            raise ValidationError("deletion_method must be one of: " + ", ".join(DELETION_METHODS))
        offset, limit = page_bounds(page, limit)
        items, total = self._archive.list_deleted_subscriptions(
            user_id=user_id,
            deletion_method=deletion_method,
            offset=offset,
            limit=limit,
        )
        return Page(items=items, total=total, page=page, limit=limit)

    def user_registry(
        self,
        *,
        email: Optional[str] = None,
        name: Optional[str] = None,
        min_spend: Optional[Decimal] = None,
        max_spend: Optional[Decimal] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[UserRegistry]:
        offset, limit = page_bounds(page, limit)
        items, total = self._registry.search(
            email=email,
            name=name,
            min_spend=min_spend,
            max_spend=max_spend,
            offset=offset,
            limit=limit,
        )
        return Page(items=items, total=total, page=page, limit=limit)

    def delete_user(self, admin: User, user_id: int, reason: Optional[str] = None) -> DeletedUser:
        logger.info("Admin %s is deleting user %s", admin.id, user_id)
        return self._lifecycle.delete_account(
            user_id,
            deleted_by="admin",
            reason=reason or "Removed by administrator",
        )
