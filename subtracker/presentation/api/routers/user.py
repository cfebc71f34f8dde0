from fastapi import APIRouter, Depends, Query

from ....application.services.lifecycle_service import LifecycleOrchestrator
from ....core.dependencies import get_lifecycle
from ....domain.models import User
from ...api.dependencies import get_current_user
from ...api.schemas.common import PaginationOut
from ...api.schemas.user import EmailHistoryOut, EmailHistoryPage, EmailHistoryResponse

router = APIRouter(prefix="/api/user", tags=["User"])


@router.get("/email-history", response_model=EmailHistoryResponse)
def email_history(
    page: int = Query(default=1),
    limit: int = Query(default=10),
    user: User = Depends(get_current_user),
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> EmailHistoryResponse:
    result = lifecycle.email_history(user.id, page=page, limit=limit)
    return EmailHistoryResponse(
        data=EmailHistoryPage(
            email_history=[EmailHistoryOut.model_validate(item) for item in result.items],
            pagination=PaginationOut(total=result.total, page=result.page, limit=result.limit, pages=result.pages),
        )
    )
