"""Repository for the append-only email change history."""

import sqlite3
from datetime import datetime
from typing import List, Optional, Tuple

from subtracker.domain.models.archive import EmailHistory
from subtracker.infrastructure.persistence.sqlite import SQLiteStore


class EmailHistoryRepository:
    def __init__(self, store: SQLiteStore):
        self.store = store

    def append(
        self,
        user_id: int,
        previous_email: str,
        new_email: str,
        changed_at: datetime,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailHistory:
        with self.store.connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO email_history (
                    user_id, previous_email, new_email, changed_at,
                    reason, ip_address, user_agent
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, previous_email, new_email, changed_at.isoformat(), reason, ip_address, user_agent),
            )
            row_id = cursor.lastrowid

        return EmailHistory(
            id=row_id,
            user_id=user_id,
            previous_email=previous_email,
            new_email=new_email,
            changed_at=changed_at,
            reason=reason,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    def list_for_user(self, user_id: int) -> List[EmailHistory]:
        """All changes for a user in chronological order."""
        with self.store.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM email_history WHERE user_id = ? ORDER BY changed_at ASC, id ASC",
                (user_id,),
            ).fetchall()
        return [self._row_to_history(row) for row in rows]

    def page_for_user(self, user_id: int, offset: int, limit: int) -> Tuple[List[EmailHistory], int]:
        """Newest first, with the total count for pagination."""
        with self.store.connection() as conn:
            total = conn.execute(
                "SELECT COUNT(*) FROM email_history WHERE user_id = ?", (user_id,)
            ).fetchone()[0]
            rows = conn.execute(
                """
                SELECT * FROM email_history WHERE user_id = ?
                ORDER BY changed_at DESC, id DESC LIMIT ? OFFSET ?
                """,
                (user_id, limit, offset),
            ).fetchall()
        return [self._row_to_history(row) for row in rows], total

    def _row_to_history(self, row: sqlite3.Row) -> EmailHistory:
        return EmailHistory(
            id=row["id"],
            user_id=row["user_id"],
            previous_email=row["previous_email"],
            new_email=row["new_email"],
            changed_at=datetime.fromisoformat(row["changed_at"]),
            reason=row["reason"],
            ip_address=row["ip_address"],
            user_agent=row["user_agent"],
        )
