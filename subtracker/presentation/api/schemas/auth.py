"""Pydantic schemas for account and session endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr

from .common import ApiModel


class SignupRequest(ApiModel):
    name: str
    email: EmailStr
    password: str
    confirm_password: str


class LoginRequest(ApiModel):
    email: EmailStr
    password: str


class NotificationPreferencesOut(ApiModel):
    payment_reminders: bool
    reminder_frequency: str
    monthly_reports: bool


class NotificationPreferencesRequest(ApiModel):
    payment_reminders: bool
    reminder_frequency: str
    monthly_reports: Optional[bool] = None


class UserOut(ApiModel):
    """Public view of a user. The password hash and reset token never appear."""

    id: int
    name: str
    email: str


class ProfileOut(UserOut):
    bio: Optional[str] = None
    notification_preferences: NotificationPreferencesOut
    created_at: datetime
    updated_at: datetime


class UserEnvelope(ApiModel):
    success: bool = True
    message: Optional[str] = None
    user: UserOut


class ProfileEnvelope(ApiModel):
    success: bool = True
    message: Optional[str] = None
    user: ProfileOut


class PreferencesEnvelope(ApiModel):
    success: bool = True
    message: Optional[str] = None
    notification_preferences: NotificationPreferencesOut


class ProfileUpdateRequest(ApiModel):
    name: Optional[str] = None
    bio: Optional[str] = None


class ChangeEmailRequest(ApiModel):
    new_email: EmailStr
    password: str
    reason: Optional[str] = None


class EmailChangeOut(ApiModel):
    previous_email: str
    new_email: str


class ChangeEmailResponse(ApiModel):
    success: bool = True
    message: str
    data: EmailChangeOut


class ChangePasswordRequest(ApiModel):
    current_password: str
    new_password: str
    confirm_password: str


class ForgotPasswordRequest(ApiModel):
    email: EmailStr


class ResetPasswordRequest(ApiModel):
    email: EmailStr
    token: str
    password: str
