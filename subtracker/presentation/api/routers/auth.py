from datetime import timedelta

from fastapi import APIRouter, Depends, Request, Response, status

from ....application.services.lifecycle_service import LifecycleOrchestrator
from ....core.config import Settings
from ....core.dependencies import get_lifecycle, get_settings
from ....domain.models import User
from ...api.cookies import clear_session_cookie, set_session_cookie
from ...api.dependencies import get_current_user
from ...api.schemas.auth import (
    ChangeEmailRequest,
    ChangeEmailResponse,
    ChangePasswordRequest,
    EmailChangeOut,
    ForgotPasswordRequest,
    LoginRequest,
    NotificationPreferencesOut,
    NotificationPreferencesRequest,
    PreferencesEnvelope,
    ProfileEnvelope,
    ProfileOut,
    ProfileUpdateRequest,
    ResetPasswordRequest,
    SignupRequest,
    UserEnvelope,
    UserOut,
)
from ...api.schemas.common import MessageResponse

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else "unknown")


@router.post("/signup", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    response: Response,
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
    settings: Settings = Depends(get_settings),
) -> UserEnvelope:
    user, token = lifecycle.signup(payload.name, payload.email, payload.password, payload.confirm_password)
    set_session_cookie(response, token, max_age=_session_ttl(settings), secure=settings.cookie_secure)
    return UserEnvelope(message="User created successfully", user=UserOut.model_validate(user))


@router.post("/login", response_model=UserEnvelope)
def login(
    payload: LoginRequest,
    response: Response,
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
    settings: Settings = Depends(get_settings),
) -> UserEnvelope:
    user, token = lifecycle.login(payload.email, payload.password)
    set_session_cookie(response, token, max_age=_session_ttl(settings), secure=settings.cookie_secure)
    return UserEnvelope(message="Login successful", user=UserOut.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response, settings: Settings = Depends(get_settings)) -> MessageResponse:
    clear_session_cookie(response, secure=settings.cookie_secure)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserEnvelope)
def me(user: User = Depends(get_current_user)) -> UserEnvelope:
    return UserEnvelope(user=UserOut.model_validate(user))


@router.get("/profile", response_model=ProfileEnvelope)
def get_profile(user: User = Depends(get_current_user)) -> ProfileEnvelope:
    return ProfileEnvelope(user=ProfileOut.model_validate(user))


@router.put("/profile", response_model=ProfileEnvelope)
def update_profile(
    payload: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> ProfileEnvelope:
    updated = lifecycle.update_profile(user.id, name=payload.name, bio=payload.bio)
    return ProfileEnvelope(message="Profile updated successfully", user=ProfileOut.model_validate(updated))


@router.get("/notification-preferences", response_model=PreferencesEnvelope)
def get_notification_preferences(user: User = Depends(get_current_user)) -> PreferencesEnvelope:
    return PreferencesEnvelope(
        notification_preferences=NotificationPreferencesOut.model_validate(user.notification_preferences)
    )


@router.put("/notification-preferences", response_model=PreferencesEnvelope)
def update_notification_preferences(
    payload: NotificationPreferencesRequest,
    user: User = Depends(get_current_user),
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> PreferencesEnvelope:
    preferences = lifecycle.update_notification_preferences(
        user.id,
        payment_reminders=payload.payment_reminders,
        reminder_frequency=payload.reminder_frequency,
        monthly_reports=payload.monthly_reports,
    )
    return PreferencesEnvelope(
        message="Notification preferences updated successfully",
        notification_preferences=NotificationPreferencesOut.model_validate(preferences),
    )


@router.post("/change-email", response_model=ChangeEmailResponse)
def change_email(
    payload: ChangeEmailRequest,
    request: Request,
    user: User = Depends(get_current_user),
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> ChangeEmailResponse:
    change = lifecycle.change_email(
        user.id,
        payload.new_email,
        payload.password,
        reason=payload.reason,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent", "unknown"),
    )
    return ChangeEmailResponse(
        message="Email updated successfully" if change.changed else "Email remains unchanged",
        data=EmailChangeOut(previous_email=change.previous_email, new_email=change.new_email),
    )


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> MessageResponse:
    lifecycle.change_password(user.id, payload.current_password, payload.new_password, payload.confirm_password)
    return MessageResponse(message="Password updated successfully")


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    payload: ForgotPasswordRequest,
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> MessageResponse:
    return MessageResponse(message=lifecycle.forgot_password(payload.email))


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    payload: ResetPasswordRequest,
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
) -> MessageResponse:
    lifecycle.reset_password(payload.email, payload.token, payload.password)
    return MessageResponse(
        message="Your password has been reset successfully. You can now login with your new password."
    )


@router.delete("/delete-account", response_model=MessageResponse)
def delete_account(
    response: Response,
    user: User = Depends(get_current_user),
    lifecycle: LifecycleOrchestrator = Depends(get_lifecycle),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    lifecycle.delete_account(user.id, deleted_by="user", reason="User-initiated account deletion")
    clear_session_cookie(response, secure=settings.cookie_secure)
    return MessageResponse(message="Account successfully deleted")


def _session_ttl(settings: Settings) -> timedelta:
    return timedelta(days=settings.session_ttl_days)
