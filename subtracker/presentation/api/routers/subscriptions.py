from fastapi import APIRouter, Depends, status

from ....application.services.lifecycle_service import LifecycleOrchestrator
from ....core.dependencies import get_lifecycle
from ....domain.models import User
from ...api.dependencies import get_current_user
from ...api.schemas.common import MessageResponse
from ...api.schemas.subscriptions import (
    DeleteAllResponse,
    SubscriptionCreateRequest,
    SubscriptionEnvelope,
    SubscriptionListResponse,
    SubscriptionOut,
    SubscriptionUpdateRequest,
)

router = APIRouter(prefix="/api/subscriptions", tags=["Subscriptions"])


@router.get("", response_model=SubscriptionListResponse)
def list_subscriptions(
    user: User = Depends(get_current_user),
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> SubscriptionListResponse:
    subscriptions = lifecycle.list_subscriptions(user.id)
    return SubscriptionListResponse(subscriptions=[SubscriptionOut.model_validate(item) for item in subscriptions])


@router.post("", response_model=SubscriptionEnvelope, status_code=status.HTTP_201_CREATED)
def create_subscription(
    payload: SubscriptionCreateRequest,
    user: User = Depends(get_current_user),
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> SubscriptionEnvelope:
    subscription = lifecycle.create_subscription(user.id, **payload.model_dump())
    return SubscriptionEnvelope(subscription=SubscriptionOut.model_validate(subscription))


@router.post("/delete-all", response_model=DeleteAllResponse)
def delete_all_subscriptions(
    user: User = Depends(get_current_user),
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> DeleteAllResponse:
    result = lifecycle.delete_all_subscriptions(user.id)
    if not result.archived:
        return DeleteAllResponse(message="No subscriptions found to delete", count=0, archived=0)
    message = "All subscriptions have been deleted"
    if result.skipped:
        message = f"Deleted {result.removed} subscriptions; {result.skipped} could not be archived and were kept"
    return DeleteAllResponse(
        message=message,
        count=result.removed,
        archived=result.archived,
        skipped=result.skipped,
    )


@router.get("/{subscription_id}", response_model=SubscriptionEnvelope)
def get_subscription(
    subscription_id: int,
    user: User = Depends(get_current_user),
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> SubscriptionEnvelope:
    subscription = lifecycle.get_subscription(user.id, subscription_id)
    return SubscriptionEnvelope(subscription=SubscriptionOut.model_validate(subscription))


@router.put("/{subscription_id}", response_model=SubscriptionEnvelope)
def update_subscription(
    subscription_id: int,
    payload: SubscriptionUpdateRequest,
    user: User = Depends(get_current_user),
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> SubscriptionEnvelope:
    subscription = lifecycle.update_subscription(user.id, subscription_id, payload.model_dump(exclude_unset=True))
    return SubscriptionEnvelope(subscription=SubscriptionOut.model_validate(subscription))


@router.delete("/{subscription_id}", response_model=MessageResponse)
def delete_subscription(
    subscription_id: int,
    user: User = Depends(get_current_user),
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> MessageResponse:
    lifecycle.delete_subscription(user.id, subscription_id)
    return MessageResponse(message="Subscription deleted successfully")
