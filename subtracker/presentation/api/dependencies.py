from typing import Optional

from fastapi import Cookie, Depends

from ...application.services.admin_service import AdminService
from ...application.services.lifecycle_service import LifecycleOrchestrator
from ...core.dependencies import get_admin_service, get_lifecycle
from ...domain.models import User
from .cookies import SESSION_COOKIE


def get_current_user(
    token: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE),
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> User:
    return lifecycle.authenticate(token)


def require_admin_user(
    user: User = Depends(get_current_user),
    admin_service: AdminService = Depends(get_admin_service),
) -> User:
    return admin_service.require_privileged(user)
