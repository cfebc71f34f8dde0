"""Pydantic schemas for the admin reports."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field

from .common import ApiModel, PaginationOut


class DeletedUserOut(ApiModel):
    id: int
    original_id: int
    name: str
    email: str
    bio: Optional[str] = None
    created_at: datetime
    deleted_at: datetime
    subscription_count: int
    total_spent: Decimal
    reason: Optional[str] = None
    deleted_by: str


class DeletedSubscriptionOut(ApiModel):
    id: int
    user_id: int
    original_id: int
    name: str
    price: str
    category: str
    billing_cycle: str
    start_date: str
    description: str
    next_payment: Optional[str] = None
    deleted_at: datetime
    deleted_by: str
    deletion_method: str
    deletion_reason: Optional[str] = None


class EmailEntryOut(ApiModel):
    email: str
    is_primary: bool
    is_verified: bool
    added_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    source: str


class SubscriptionSummaryOut(ApiModel):
    subscription_id: int
    name: str
    provider: str
    price: str
    billing_cycle: str
    added_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None
    status: str


class UserRegistryOut(ApiModel):
    user_id: int
    name: str
    current_email: str
    email_history: List[EmailEntryOut] = Field(default_factory=list)
    subscriptions: List[SubscriptionSummaryOut] = Field(default_factory=list)
    total_monthly_spend: Decimal
    account_created_at: datetime
    last_active: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class DeletedUsersResponse(ApiModel):
    success: bool = True
    data: List[DeletedUserOut]
    pagination: PaginationOut


class DeletedSubscriptionsResponse(ApiModel):
    success: bool = True
    data: List[DeletedSubscriptionOut]
    pagination: PaginationOut


class UserRegistryResponse(ApiModel):
    success: bool = True
    data: List[UserRegistryOut]
    pagination: PaginationOut


class AdminDeleteUserResponse(ApiModel):
    success: bool = True
    message: str
    deleted_user: DeletedUserOut
