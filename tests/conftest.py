"""Shared fixtures: a throwaway SQLite store per test, cheap bcrypt, recorded notifications."""

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient

from subtracker.application.services.admin_service import AdminService
from subtracker.application.services.lifecycle_service import LifecycleOrchestrator
from subtracker.core.app_factory import create_application
from subtracker.core.config import Settings
from subtracker.domain.ports.collaborators import NotificationResult
from subtracker.infrastructure.persistence.sqlite import SQLiteStore
from subtracker.infrastructure.repositories.archive_repository import ArchiveRepository
from subtracker.infrastructure.repositories.email_history_repository import EmailHistoryRepository
from subtracker.infrastructure.repositories.registry_repository import RegistryRepository
from subtracker.infrastructure.repositories.subscription_repository import SubscriptionRepository
from subtracker.infrastructure.repositories.user_repository import UserRepository
from subtracker.infrastructure.security.passwords import BcryptPasswordHasher
from subtracker.services.archive_writer import ArchiveWriter
from subtracker.services.credential_ledger import CredentialLedger
from subtracker.services.notification_dispatcher import NotificationDispatcher
from subtracker.services.registry_sync import RegistrySynchronizer, RegistrySyncHook

SECRET = "test-secret-key"


class RecordingSender:
    """NotificationSender that keeps every message instead of delivering it."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, Dict[str, Any]]] = []
        self._lock = threading.Lock()

    def send(self, kind: str, recipient: str, data: Dict[str, Any]) -> NotificationResult:
        with self._lock:
            self.sent.append((kind, recipient, dict(data)))
        return NotificationResult(success=True)

    def of_kind(self, kind: str) -> List[Tuple[str, str, Dict[str, Any]]]:
        with self._lock:
            return [item for item in self.sent if item[0] == kind]


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    # Anchored to the wall clock so PyJWT's own exp check agrees with ours.
    return FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def store(tmp_path):
    store = SQLiteStore(tmp_path / "subtracker.db", pool_size=4, timeout=1.0)
    yield store
    store.close()


@pytest.fixture
def users(store):
    return UserRepository(store)


@pytest.fixture
def subscriptions(store):
    return SubscriptionRepository(store)


@pytest.fixture
def archive(store):
    return ArchiveRepository(store)


@pytest.fixture
def email_history(store):
    return EmailHistoryRepository(store)


@pytest.fixture
def registry(store):
    return RegistryRepository(store)


@pytest.fixture
def hasher():
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def ledger(users, clock):
    return CredentialLedger(users, SECRET, clock=clock)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def dispatcher(sender):
    dispatcher = NotificationDispatcher(sender, max_workers=1)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def synchronizer(users, subscriptions, email_history, registry, clock):
    return RegistrySynchronizer(users, subscriptions, email_history, registry, clock=clock)


@pytest.fixture
def archive_writer(archive, subscriptions, clock):
    return ArchiveWriter(archive, subscriptions, clock=clock)


@pytest.fixture
def lifecycle(users, subscriptions, email_history, archive_writer, ledger, hasher, dispatcher, synchronizer):
    return LifecycleOrchestrator(
        users=users,
        subscriptions=subscriptions,
        email_history=email_history,
        archive_writer=archive_writer,
        ledger=ledger,
        hasher=hasher,
        notifications=dispatcher,
        hook=RegistrySyncHook(synchronizer),
    )


@pytest.fixture
def admin_service(archive, registry, lifecycle):
    return AdminService(archive, registry, lifecycle, admin_user_id=1)


@pytest.fixture
def settings(tmp_path, monkeypatch):
    monkeypatch.setenv("JWT_SECRET", SECRET)
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "api.db"))
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("ADMIN_USER_ID", "1")
    monkeypatch.setenv("APP_ENV", "development")
    monkeypatch.setenv("NOTIFICATION_WORKERS", "1")
    monkeypatch.delenv("COOKIE_SECURE", raising=False)
    monkeypatch.delenv("SMTP_HOST", raising=False)
    return Settings()


@pytest.fixture
def client(settings, sender):
    app = create_application(settings, notification_sender=sender)
    with TestClient(app) as client:
        yield client
