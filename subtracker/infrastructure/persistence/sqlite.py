import logging
import queue
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

from ...domain.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    bio TEXT,
    reset_password_token TEXT,
    reset_password_expires TEXT,
    payment_reminders INTEGER NOT NULL DEFAULT 1,
    reminder_frequency TEXT NOT NULL DEFAULT '3days',
    monthly_reports INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS subscriptions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id),
    name TEXT NOT NULL,
    price TEXT NOT NULL,
    category TEXT NOT NULL,
    billing_cycle TEXT NOT NULL,
    start_date TEXT NOT NULL,
    next_payment TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_subscriptions_user_id ON subscriptions(user_id);
CREATE INDEX IF NOT EXISTS idx_subscriptions_next_payment ON subscriptions(next_payment);

CREATE TABLE IF NOT EXISTS deleted_users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    original_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    bio TEXT,
    created_at TEXT NOT NULL,
    deleted_at TEXT NOT NULL,
    subscription_count INTEGER NOT NULL DEFAULT 0,
    total_spent TEXT NOT NULL DEFAULT '0.00',
    reason TEXT,
    deleted_by TEXT NOT NULL DEFAULT 'user'
);

CREATE INDEX IF NOT EXISTS idx_deleted_users_original_id ON deleted_users(original_id);
CREATE INDEX IF NOT EXISTS idx_deleted_users_email_deleted_at ON deleted_users(email, deleted_at DESC);

CREATE TABLE IF NOT EXISTS deleted_subscriptions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    original_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    price TEXT NOT NULL,
    category TEXT NOT NULL,
    billing_cycle TEXT NOT NULL,
    start_date TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    next_payment TEXT,
    deleted_at TEXT NOT NULL,
    deleted_by TEXT NOT NULL DEFAULT 'user',
    deletion_method TEXT NOT NULL,
    deletion_reason TEXT
);

CREATE INDEX IF NOT EXISTS idx_deleted_subscriptions_user_deleted_at
    ON deleted_subscriptions(user_id, deleted_at DESC);

CREATE TABLE IF NOT EXISTS email_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    previous_email TEXT NOT NULL,
    new_email TEXT NOT NULL,
    changed_at TEXT NOT NULL,
    reason TEXT,
    ip_address TEXT,
    user_agent TEXT
);

CREATE INDEX IF NOT EXISTS idx_email_history_user_changed_at ON email_history(user_id, changed_at);

CREATE TABLE IF NOT EXISTS user_registry (
    user_id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    current_email TEXT NOT NULL,
    email_history TEXT NOT NULL DEFAULT '[]',
    subscriptions TEXT NOT NULL DEFAULT '[]',
    total_monthly_spend TEXT NOT NULL DEFAULT '0.00',
    account_created_at TEXT NOT NULL,
    last_active TEXT,
    last_updated TEXT,
    metadata TEXT NOT NULL DEFAULT '{}'
);

CREATE INDEX IF NOT EXISTS idx_user_registry_current_email ON user_registry(current_email);
"""


class SQLiteStore:
    """Store client holding a bounded pool of SQLite connections.

    Built once at process start and handed to every repository. Callers
    borrow a connection with :meth:`connection`; when the pool is exhausted
    they wait up to ``timeout`` seconds and then get
    :class:`StoreUnavailableError`.
    """

    def __init__(self, path: Path, pool_size: int = 10, timeout: float = 10.0) -> None:
        if pool_size < 1:
            raise ValueError("pool_size must be at least 1")
        path.parent.mkdir(parents=True, exist_ok=True)
        self._path = path
        self._timeout = timeout
        self._pool: "queue.Queue[sqlite3.Connection]" = queue.Queue(maxsize=pool_size)
        self._all: List[sqlite3.Connection] = []
        self._lock = threading.Lock()
        self._closed = False
        for _ in range(pool_size):
            conn = self._open()
            self._all.append(conn)
            self._pool.put(conn)
        self._initialize()

    @property
    def path(self) -> Path:
        return self._path

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA busy_timeout = %d" % int(self._timeout * 1000))
        return conn

    def _initialize(self) -> None:
        with self.connection() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Borrow a connection; commits on success, rolls back on error."""
        if self._closed:
            raise StoreUnavailableError("Store is closed")
        try:
            conn = self._pool.get(timeout=self._timeout)
        except queue.Empty as exc:
            logger.error("No store connection available after %.1fs", self._timeout)
            raise StoreUnavailableError() from exc
        try:
            with conn:
                yield conn
        finally:
            self._pool.put(conn)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for conn in self._all:
                conn.close()
            self._all.clear()
        logger.info("Closed store connection pool for %s", self._path)
