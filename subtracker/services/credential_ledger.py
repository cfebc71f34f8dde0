"""Session tokens and one-time password reset tokens."""

import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import jwt

from subtracker.domain.clock import Clock, utc_now
from subtracker.domain.models.user import User
from subtracker.domain.ports.persistence import UserRepository

logger = logging.getLogger(__name__)

# Compared against when no user matches, so a miss costs the same as a hit.
_DUMMY_TOKEN = "0" * 64


@dataclass(frozen=True, slots=True)
class SessionIdentity:
    id: int
    email: str
    name: str


@dataclass(frozen=True, slots=True)
class ResetToken:
    value: str
    expires_at: datetime


class CredentialLedger:
    """Issues and checks credentials; a pure function of the secret and the clock.

    Reset tokens live on the user row, so validation needs read access to
    the account store. Nothing else is stored here.
    """

    def __init__(
        self,
        users: UserRepository,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        session_ttl: timedelta = timedelta(days=7),
        reset_ttl: timedelta = timedelta(hours=1),
        clock: Clock = utc_now,
    ) -> None:
        if not secret_key:
            raise RuntimeError("JWT_SECRET is not configured.")
        self._users = users
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.session_ttl = session_ttl
        self.reset_ttl = reset_ttl
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def issue_session_token(self, user: User) -> str:
        """
        Create a signed session token for a user.

        Args:
            user: User entity

        Returns:
            JWT string carrying id, email and name, valid for ``session_ttl``
        """
        now = self._clock()
        payload = {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "iat": now,
            "exp": now + self.session_ttl,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify_session_token(self, token: Optional[str]) -> Optional[SessionIdentity]:
        """
        Verify a session token.

        Returns:
            The identity it carries, or None for any signature, expiry or
            shape problem. There is no partial result.
        """
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require": ["exp", "id"], "verify_iat": False},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Rejected expired session token")
            return None
        except jwt.InvalidTokenError:
            logger.debug("Rejected invalid session token")
            return None

        # PyJWT checks exp against the wall clock; an injected clock still has the last word.
        if payload["exp"] <= self._clock().timestamp():
            return None
        user_id = payload.get("id")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            return None
        return SessionIdentity(
            id=user_id,
            email=str(payload.get("email", "")),
            name=str(payload.get("name", "")),
        )

    def issue_reset_token(self) -> ResetToken:
        """256 bits of randomness, hex-encoded, expiring after ``reset_ttl``."""
        return ResetToken(value=secrets.token_hex(32), expires_at=self._clock() + self.reset_ttl)

    def validate_reset_token(self, email: str, token: str) -> Optional[User]:
        """
        Check a reset token for an email address.

        An unknown email, a wrong token and an expired token all return None,
        and all go through the same constant-time comparison.
        """
        user = self._users.get_by_email(email) if email else None
        stored = user.reset_password_token if user and user.reset_password_token else _DUMMY_TOKEN
        matches = hmac.compare_digest(stored.encode("utf-8"), (token or "").encode("utf-8"))
        if not user or not matches or not user.has_pending_reset(self._clock()):
            return None
        return user
