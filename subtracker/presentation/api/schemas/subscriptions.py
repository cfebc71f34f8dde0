"""Pydantic schemas for subscription endpoints."""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import Field

from .common import ApiModel


class SubscriptionCreateRequest(ApiModel):
    name: str
    price: Union[str, float, int]
    category: str
    billing_cycle: str
    start_date: str
    next_payment: Optional[str] = None
    description: Optional[str] = ""


class SubscriptionUpdateRequest(ApiModel):
    name: Optional[str] = None
    price: Optional[Union[str, float, int]] = None
    category: Optional[str] = None
    billing_cycle: Optional[str] = None
    start_date: Optional[str] = None
    next_payment: Optional[str] = None
    description: Optional[str] = None


class SubscriptionOut(ApiModel):
    id: int
    user_id: int
    name: str
    price: str
    category: str
    billing_cycle: str
    start_date: str
    next_payment: str
    description: str
    created_at: datetime
    updated_at: datetime


class SubscriptionEnvelope(ApiModel):
    success: bool = True
    subscription: SubscriptionOut


class SubscriptionListResponse(ApiModel):
    success: bool = True
    subscriptions: List[SubscriptionOut] = Field(default_factory=list)


class DeleteAllResponse(ApiModel):
    success: bool = True
    message: str
    count: int
    archived: int
    skipped: int = 0
