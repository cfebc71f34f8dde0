"""Repository for the denormalized user registry."""

import json
import sqlite3
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from subtracker.domain.models.registry import EmailEntry, SubscriptionSummary, UserRegistry
from subtracker.infrastructure.persistence.sqlite import SQLiteStore


class RegistryRepository:
    """Stores one UserRegistry row per user, nested lists kept as JSON."""

    def __init__(self, store: SQLiteStore):
        self.store = store

    def get(self, user_id: int) -> Optional[UserRegistry]:
        with self.store.connection() as conn:
            row = conn.execute("SELECT * FROM user_registry WHERE user_id = ?", (user_id,)).fetchone()
        return self._row_to_registry(row) if row else None

    def save(self, registry: UserRegistry) -> None:
        """Insert or fully replace the registry row for ``registry.user_id``."""
        with self.store.connection() as conn:
            conn.execute(
                """
                INSERT INTO user_registry (
                    user_id, name, current_email, email_history, subscriptions,
                    total_monthly_spend, account_created_at, last_active,
                    last_updated, metadata
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    name = excluded.name,
                    current_email = excluded.current_email,
                    email_history = excluded.email_history,
                    subscriptions = excluded.subscriptions,
                    total_monthly_spend = excluded.total_monthly_spend,
                    account_created_at = excluded.account_created_at,
                    last_active = excluded.last_active,
                    last_updated = excluded.last_updated,
                    metadata = excluded.metadata
                """,
                (
                    registry.user_id,
                    registry.name,
                    registry.current_email,
                    json.dumps([entry.to_dict() for entry in registry.email_history]),
                    json.dumps([summary.to_dict() for summary in registry.subscriptions]),
                    str(registry.total_monthly_spend),
                    registry.account_created_at.isoformat(),
                    registry.last_active.isoformat() if registry.last_active else None,
                    registry.last_updated.isoformat() if registry.last_updated else None,
                    json.dumps(registry.metadata, default=str, ensure_ascii=False),
                ),
            )

    def delete(self, user_id: int) -> bool:
        with self.store.connection() as conn:
            cursor = conn.execute("DELETE FROM user_registry WHERE user_id = ?", (user_id,))
        return cursor.rowcount == 1

    def search(
        self,
        *,
        email: Optional[str] = None,
        name: Optional[str] = None,
        min_spend: Optional[Decimal] = None,
        max_spend: Optional[Decimal] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[UserRegistry], int]:
        """Filter registries; ``email`` matches current and historical addresses."""
        clauses = []
        params: list = []
        if email:
            clauses.append("(LOWER(current_email) LIKE ? OR LOWER(email_history) LIKE ?)")
            params.extend([f"%{email.lower()}%"] * 2)
        if name:
            clauses.append("LOWER(name) LIKE ?")
            params.append(f"%{name.lower()}%")
        if min_spend is not None:
            clauses.append("CAST(total_monthly_spend AS REAL) >= ?")
            params.append(float(min_spend))
        if max_spend is not None:
            clauses.append("CAST(total_monthly_spend AS REAL) <= ?")
            params.append(float(max_spend))
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        with self.store.connection() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM user_registry{where}", params).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM user_registry{where} ORDER BY last_updated DESC, user_id ASC LIMIT ? OFFSET ?",
                [*params, limit, offset],
            ).fetchall()

        return [self._row_to_registry(row) for row in rows], total

    def _row_to_registry(self, row: sqlite3.Row) -> UserRegistry:
        return UserRegistry(
            user_id=row["user_id"],
            name=row["name"],
            current_email=row["current_email"],
            account_created_at=datetime.fromisoformat(row["account_created_at"]),
            email_history=[EmailEntry.from_dict(item) for item in json.loads(row["email_history"])],
            subscriptions=[SubscriptionSummary.from_dict(item) for item in json.loads(row["subscriptions"])],
            total_monthly_spend=Decimal(row["total_monthly_spend"]),
            last_active=datetime.fromisoformat(row["last_active"]) if row["last_active"] else None,
            last_updated=datetime.fromisoformat(row["last_updated"]) if row["last_updated"] else None,
            metadata=json.loads(row["metadata"]),
        )
