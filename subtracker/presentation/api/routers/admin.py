from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ....application.services.admin_service import AdminService
from ....application.services.pagination import Page
from ....core.dependencies import get_admin_service
from ....domain.models import User
from ...api.dependencies import require_admin_user
from ...api.schemas.admin import (
    AdminDeleteUserResponse,
    DeletedSubscriptionOut,
    DeletedSubscriptionsResponse,
    DeletedUserOut,
    DeletedUsersResponse,
    UserRegistryOut,
    UserRegistryResponse,
)
from ...api.schemas.common import PaginationOut

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def _pagination(page: Page) -> PaginationOut:
    return PaginationOut(total=page.total, page=page.page, limit=page.limit, pages=page.pages)


@router.get("/deleted-users", response_model=DeletedUsersResponse)
def deleted_users(
    email: Optional[str] = None,
    original_id: Optional[int] = Query(default=None, alias="originalId"),
    from_date: Optional[datetime] = Query(default=None, alias="fromDate"),
    to_date: Optional[datetime] = Query(default=None, alias="toDate"),
    page: int = 1,
    limit: int = 10,
    _: User = Depends(require_admin_user),
    admin_service: AdminService = Depends(get_admin_service),
) -> DeletedUsersResponse:
    result = admin_service.deleted_users(
        email=email,
        original_id=original_id,
        from_date=from_date,
        to_date=to_date,
        page=page,
        limit=limit,
    )
    return DeletedUsersResponse(
        data=[DeletedUserOut.model_validate(item) for item in result.items],
        pagination=_pagination(result),
    )


@router.get("/deleted-subscriptions", response_model=DeletedSubscriptionsResponse)
def deleted_subscriptions(
    user_id: Optional[int] = Query(default=None, alias="userId"),
    deletion_method: Optional[str] = Query(default=None, alias="deletionMethod"),
    page: int = 1,
    limit: int = 10,
    _: User = Depends(require_admin_user),
    admin_service: AdminService = Depends(get_admin_service),
) -> DeletedSubscriptionsResponse:
    result = admin_service.deleted_subscriptions(
        user_id=user_id,
        deletion_method=deletion_method,
        page=page,
        limit=limit,
    )
    return DeletedSubscriptionsResponse(
        data=[DeletedSubscriptionOut.model_validate(item) for item in result.items],
        pagination=_pagination(result),
    )


@router.get("/user-registry", response_model=UserRegistryResponse)
def user_registry(
    email: Optional[str] = None,
    name: Optional[str] = None,
    min_spend: Optional[Decimal] = Query(default=None, alias="minSpend"),
    max_spend: Optional[Decimal] = Query(default=None, alias="maxSpend"),
    page: int = 1,
    limit: int = 10,
    _: User = Depends(require_admin_user),
    admin_service: AdminService = Depends(get_admin_service),
) -> UserRegistryResponse:
    result = admin_service.user_registry(
        email=email,
        name=name,
        min_spend=min_spend,
        max_spend=max_spend,
        page=page,
        limit=limit,
    )
    return UserRegistryResponse(
        data=[UserRegistryOut.model_validate(item) for item in result.items],
        pagination=_pagination(result),
    )


@router.delete("/users/{user_id}", response_model=AdminDeleteUserResponse)
def delete_user(
    user_id: int,
    reason: Optional[str] = None,
    admin: User = Depends(require_admin_user),
    admin_service: AdminService = Depends(get_admin_service),
) -> AdminDeleteUserResponse:
    record = admin_service.delete_user(admin, user_id, reason=reason)
    return AdminDeleteUserResponse(
        message="User account deleted",
        deleted_user=DeletedUserOut.model_validate(record),
    )
