"""Session cookie transport."""

from datetime import timedelta

from fastapi import Response

SESSION_COOKIE = "token"


def set_session_cookie(response: Response, token: str, *, max_age: timedelta, secure: bool) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        max_age=int(max_age.total_seconds()),
        path="/",
        httponly=True,
        secure=secure,
        samesite="strict",
    )


def clear_session_cookie(response: Response, *, secure: bool) -> None:
    """Expire the session cookie immediately on the client."""
    response.delete_cookie(
        key=SESSION_COOKIE,
        path="/",
        httponly=True,
        secure=secure,
        samesite="strict",
    )
