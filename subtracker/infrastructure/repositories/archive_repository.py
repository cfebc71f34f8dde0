"""Repository for the append-only deletion archive."""

import sqlite3
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from subtracker.domain.models.archive import DeletedSubscription, DeletedUser
from subtracker.domain.models.subscription import Subscription
from subtracker.domain.models.user import User
from subtracker.infrastructure.persistence.sqlite import SQLiteStore


class ArchiveRepository:
    """Insert-only storage for DeletedUser and DeletedSubscription snapshots.

    There is intentionally no update or delete method.
    """

    def __init__(self, store: SQLiteStore):
        self.store = store

    def add_deleted_user(
        self,
        user: User,
        subscription_count: int,
        total_spent: Decimal,
        deleted_by: str,
        reason: Optional[str],
        deleted_at: datetime,
    ) -> DeletedUser:
        with self.store.connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO deleted_users (
                    original_id, name, email, bio, created_at, deleted_at,
                    subscription_count, total_spent, reason, deleted_by
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user.id,
                    user.name,
                    user.email,
                    user.bio,
                    user.created_at.isoformat(),
                    deleted_at.isoformat(),
                    subscription_count,
                    str(total_spent),
                    reason,
                    deleted_by,
                ),
            )
            row_id = cursor.lastrowid

        return DeletedUser(
            id=row_id,
            original_id=user.id,
            name=user.name,
            email=user.email,
            bio=user.bio,
            created_at=user.created_at,
            deleted_at=deleted_at,
            subscription_count=subscription_count,
            total_spent=total_spent,
            reason=reason,
            deleted_by=deleted_by,
        )

    def add_deleted_subscription(
        self,
        subscription: Subscription,
        deleted_by: str,
        deletion_method: str,
        reason: Optional[str],
        deleted_at: datetime,
    ) -> DeletedSubscription:
        with self.store.connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO deleted_subscriptions (
                    user_id, original_id, name, price, category, billing_cycle,
                    start_date, description, next_payment, deleted_at,
                    deleted_by, deletion_method, deletion_reason
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    subscription.user_id,
                    subscription.id,
                    subscription.name,
                    subscription.price,
                    subscription.category,
                    subscription.billing_cycle,
                    subscription.start_date,
                    subscription.description,
                    subscription.next_payment,
                    deleted_at.isoformat(),
                    deleted_by,
                    deletion_method,
                    reason,
                ),
            )
            row_id = cursor.lastrowid

        return DeletedSubscription(
            id=row_id,
            user_id=subscription.user_id,
            original_id=subscription.id,
            name=subscription.name,
            price=subscription.price,
            category=subscription.category,
            billing_cycle=subscription.billing_cycle,
            start_date=subscription.start_date,
            description=subscription.description,
            next_payment=subscription.next_payment,
            deleted_at=deleted_at,
            deleted_by=deleted_by,
            deletion_method=deletion_method,
            deletion_reason=reason,
        )

    def list_deleted_users(
        self,
        *,
        email: Optional[str] = None,
        original_id: Optional[int] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[DeletedUser], int]:
        """Most recent deletions first, with the total matching count."""
        clauses = []
        params: list = []
        if email:
            clauses.append("LOWER(email) LIKE ?")
            params.append(f"%{email.lower()}%")
        if original_id is not None:
            clauses.append("original_id = ?")
            params.append(original_id)
        if from_date:
            clauses.append("deleted_at >= ?")
            params.append(from_date.isoformat())
        if to_date:
            clauses.append("deleted_at <= ?")
            params.append(to_date.isoformat())
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        with self.store.connection() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM deleted_users{where}", params).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM deleted_users{where} ORDER BY deleted_at DESC, id DESC LIMIT ? OFFSET ?",
                [*params, limit, offset],
            ).fetchall()

        return [self._row_to_deleted_user(row) for row in rows], total

    def list_deleted_subscriptions(
        self,
        *,
        user_id: Optional[int] = None,
        deletion_method: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[DeletedSubscription], int]:
        clauses = []
        params: list = []
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        if deletion_method:
            clauses.append("deletion_method = ?")
            params.append(deletion_method)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        with self.store.connection() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM deleted_subscriptions{where}", params).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM deleted_subscriptions{where} ORDER BY deleted_at DESC, id DESC LIMIT ? OFFSET ?",
                [*params, limit, offset],
            ).fetchall()

        return [self._row_to_deleted_subscription(row) for row in rows], total

    def _row_to_deleted_user(self, row: sqlite3.Row) -> DeletedUser:
        return DeletedUser(
            id=row["id"],
            original_id=row["original_id"],
            name=row["name"],
            email=row["email"],
            bio=row["bio"],
            created_at=datetime.fromisoformat(row["created_at"]),
            deleted_at=datetime.fromisoformat(row["deleted_at"]),
            subscription_count=row["subscription_count"],
            total_spent=Decimal(row["total_spent"]),
            reason=row["reason"],
            deleted_by=row["deleted_by"],
        )

    def _row_to_deleted_subscription(self, row: sqlite3.Row) -> DeletedSubscription:
        return DeletedSubscription(
            id=row["id"],
            user_id=row["user_id"],
            original_id=row["original_id"],
            name=row["name"],
            price=row["price"],
            category=row["category"],
            billing_cycle=row["billing_cycle"],
            start_date=row["start_date"],
            description=row["description"],
            next_payment=row["next_payment"],
            deleted_at=datetime.fromisoformat(row["deleted_at"]),
            deleted_by=row["deleted_by"],
            deletion_method=row["deletion_method"],
            deletion_reason=row["deletion_reason"],
        )
