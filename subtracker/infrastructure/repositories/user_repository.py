"""Repository for User persistence."""

import sqlite3
from datetime import datetime, timezone
from typing import Optional

from subtracker.domain.exceptions import ConflictError
from subtracker.domain.models.user import NotificationPreferences, User
from subtracker.infrastructure.persistence.sqlite import SQLiteStore


class UserRepository:
    """Repository for managing User entities in SQLite."""

    def __init__(self, store: SQLiteStore):
        self.store = store

    def create(self, name: str, email: str, password_hash: str) -> User:
        """Create a new user. Raises ConflictError if the email is taken."""
        now = datetime.now(timezone.utc).isoformat()

        try:
            with self.store.connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO users (name, email, password_hash, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (name, email, password_hash, now, now),
                )
                user_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            raise ConflictError() from exc

        return User(
            id=user_id,
            name=name,
            email=email,
            password_hash=password_hash,
            created_at=datetime.fromisoformat(now),
            updated_at=datetime.fromisoformat(now),
        )

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        with self.store.connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()

        return self._row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email (exact, case-sensitive match)."""
        with self.store.connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()

        return self._row_to_user(row) if row else None

    def email_in_use(self, email: str, exclude_user_id: Optional[int] = None) -> bool:
        """Check whether another active user already holds ``email``."""
        query = "SELECT 1 FROM users WHERE email = ?"
        params: list = [email]
        if exclude_user_id is not None:
            query += " AND id != ?"
            params.append(exclude_user_id)
        with self.store.connection() as conn:
            row = conn.execute(query, params).fetchone()
        return row is not None

    def update_profile(
        self,
        user_id: int,
        *,
        name: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> Optional[User]:
        """Update name and/or bio. Returns the updated user, or None if absent."""
        assignments = []
        params: list = []
        if name is not None:
            assignments.append("name = ?")
            params.append(name)
        if bio is not None:
            assignments.append("bio = ?")
            params.append(bio)
        if assignments:
            assignments.append("updated_at = ?")
            params.extend([datetime.now(timezone.utc).isoformat(), user_id])
            with self.store.connection() as conn:
                conn.execute(f"UPDATE users SET {', '.join(assignments)} WHERE id = ?", params)
        return self.get_by_id(user_id)

    def update_notification_preferences(
        self, user_id: int, preferences: NotificationPreferences
    ) -> Optional[User]:
        """Replace the user's notification preferences."""
        now = datetime.now(timezone.utc).isoformat()
        with self.store.connection() as conn:
            conn.execute(
                """
                UPDATE users
                SET payment_reminders = ?, reminder_frequency = ?,
                    monthly_reports = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    int(preferences.payment_reminders),
                    preferences.reminder_frequency,
                    int(preferences.monthly_reports),
                    now,
                    user_id,
                ),
            )
        return self.get_by_id(user_id)

    def update_email(self, user_id: int, new_email: str) -> bool:
        """Set a new email. Raises ConflictError if another user holds it."""
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self.store.connection() as conn:
                cursor = conn.execute(
                    "UPDATE users SET email = ?, updated_at = ? WHERE id = ?",
                    (new_email, now, user_id),
                )
        except sqlite3.IntegrityError as exc:
            raise ConflictError() from exc
        return cursor.rowcount == 1

    def update_password(self, user_id: int, password_hash: str) -> bool:
        """Store a new password hash."""
        now = datetime.now(timezone.utc).isoformat()
        with self.store.connection() as conn:
            cursor = conn.execute(
                "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
                (password_hash, now, user_id),
            )
        return cursor.rowcount == 1

    def set_reset_token(self, user_id: int, token: str, expires_at: datetime) -> None:
        """Store a one-time reset token, replacing any pending one."""
        now = datetime.now(timezone.utc).isoformat()
        with self.store.connection() as conn:
            conn.execute(
                """
                UPDATE users
                SET reset_password_token = ?, reset_password_expires = ?, updated_at = ?
                WHERE id = ?
                """,
                (token, expires_at.isoformat(), now, user_id),
            )

    def consume_reset_token(self, user_id: int, token: str, password_hash: str, now: datetime) -> bool:
        """
        Set a new password and clear the reset token in one statement.

        The update only matches while the token is still the stored one and
        unexpired, so a replayed or concurrently consumed token changes
        nothing and returns False.
        """
        with self.store.connection() as conn:
            row = conn.execute(
                "SELECT reset_password_token, reset_password_expires FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
            if (
                not row
                or row["reset_password_token"] != token
                or not row["reset_password_expires"]
                or datetime.fromisoformat(row["reset_password_expires"]) <= now
            ):
                return False
            cursor = conn.execute(
                """
                UPDATE users
                SET password_hash = ?, reset_password_token = NULL,
                    reset_password_expires = NULL, updated_at = ?
                WHERE id = ? AND reset_password_token = ? AND reset_password_expires = ?
                """,
                (password_hash, now.isoformat(), user_id, token, row["reset_password_expires"]),
            )
        return cursor.rowcount == 1

    def delete(self, user_id: int) -> Optional[User]:
        """Hard-delete a user, returning the row as it was before deletion."""
        try:
            with self.store.connection() as conn:
                row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
                if not row:
                    return None
                conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
        except sqlite3.IntegrityError as exc:
            raise ConflictError("User still owns subscriptions") from exc

        return self._row_to_user(row)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        """Convert database row to User entity."""
        reset_expires = None
        if row["reset_password_expires"]:
            reset_expires = datetime.fromisoformat(row["reset_password_expires"])

        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            bio=row["bio"],
            reset_password_token=row["reset_password_token"],
            reset_password_expires=reset_expires,
            notification_preferences=NotificationPreferences(
                payment_reminders=bool(row["payment_reminders"]),
                reminder_frequency=row["reminder_frequency"],
                monthly_reports=bool(row["monthly_reports"]),
            ),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
