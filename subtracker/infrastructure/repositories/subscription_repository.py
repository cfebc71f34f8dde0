"""Repository for Subscription persistence."""

import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from subtracker.domain.exceptions import NotFoundError
from subtracker.domain.models.subscription import Subscription
from subtracker.infrastructure.persistence.sqlite import SQLiteStore

UPDATABLE_FIELDS = (
    "name",
    "price",
    "category",
    "billing_cycle",
    "start_date",
    "next_payment",
    "description",
)


class SubscriptionRepository:
    """Repository for managing Subscription entities in SQLite."""

    def __init__(self, store: SQLiteStore):
        self.store = store

    def create(
        self,
        user_id: int,
        name: str,
        price: str,
        category: str,
        billing_cycle: str,
        start_date: str,
        next_payment: str,
        description: str = "",
    ) -> Subscription:
        """Create a new subscription. Raises NotFoundError if the owner is gone."""
        now = datetime.now(timezone.utc).isoformat()

        try:
            with self.store.connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO subscriptions (
                        user_id, name, price, category, billing_cycle,
                        start_date, next_payment, description, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        name,
                        price,
                        category,
                        billing_cycle,
                        start_date,
                        next_payment,
                        description,
                        now,
                        now,
                    ),
                )
                subscription_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            raise NotFoundError("User not found") from exc

        return Subscription(
            id=subscription_id,
            user_id=user_id,
            name=name,
            price=price,
            category=category,
            billing_cycle=billing_cycle,
            start_date=start_date,
            next_payment=next_payment,
            description=description,
            created_at=datetime.fromisoformat(now),
            updated_at=datetime.fromisoformat(now),
        )

    def get_for_owner(self, user_id: int, subscription_id: int) -> Optional[Subscription]:
        """Get a subscription only if it belongs to ``user_id``."""
        with self.store.connection() as conn:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE id = ? AND user_id = ?",
                (subscription_id, user_id),
            ).fetchone()

        return self._row_to_subscription(row) if row else None

    def list_by_owner(self, user_id: int) -> List[Subscription]:
        """List all subscriptions for a user, oldest first."""
        with self.store.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM subscriptions WHERE user_id = ? ORDER BY id ASC",
                (user_id,),
            ).fetchall()

        return [self._row_to_subscription(row) for row in rows]

    def update(self, user_id: int, subscription_id: int, changes: Dict[str, Any]) -> Optional[Subscription]:
        """Apply a partial update; unknown fields are ignored."""
        fields = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
        if fields:
            assignments = ", ".join(f"{key} = ?" for key in fields)
            params = list(fields.values())
            params.extend([datetime.now(timezone.utc).isoformat(), subscription_id, user_id])
            with self.store.connection() as conn:
                cursor = conn.execute(
                    f"UPDATE subscriptions SET {assignments}, updated_at = ? WHERE id = ? AND user_id = ?",
                    params,
                )
            if cursor.rowcount == 0:
                return None
        return self.get_for_owner(user_id, subscription_id)

    def delete_for_owner(self, user_id: int, subscription_id: int) -> bool:
        """Delete one subscription. False when nothing matched."""
        with self.store.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM subscriptions WHERE id = ? AND user_id = ?",
                (subscription_id, user_id),
            )
        return cursor.rowcount == 1

    def delete_ids_for_owner(self, user_id: int, subscription_ids: Sequence[int]) -> int:
        """Delete exactly the given ids owned by ``user_id``; returns rows removed."""
        if not subscription_ids:
            return 0
        placeholders = ", ".join("?" for _ in subscription_ids)
        with self.store.connection() as conn:
            cursor = conn.execute(
                f"DELETE FROM subscriptions WHERE user_id = ? AND id IN ({placeholders})",
                [user_id, *subscription_ids],
            )
        return cursor.rowcount

    def delete_all_by_owner(self, user_id: int) -> Tuple[List[Subscription], int]:
        """Delete every subscription of a user; returns the deleted rows and count."""
        with self.store.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            rows = conn.execute(
                "SELECT * FROM subscriptions WHERE user_id = ? ORDER BY id ASC", (user_id,)
            ).fetchall()
            cursor = conn.execute("DELETE FROM subscriptions WHERE user_id = ?", (user_id,))
            count = cursor.rowcount

        return [self._row_to_subscription(row) for row in rows], count

    def _row_to_subscription(self, row: sqlite3.Row) -> Subscription:
        """Convert database row to Subscription entity."""
        return Subscription(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            price=row["price"],
            category=row["category"],
            billing_cycle=row["billing_cycle"],
            start_date=row["start_date"],
            next_payment=row["next_payment"],
            description=row["description"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
