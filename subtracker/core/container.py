from dataclasses import dataclass

from ..application.services.admin_service import AdminService
from ..application.services.lifecycle_service import LifecycleOrchestrator
from ..infrastructure.persistence.sqlite import SQLiteStore
from ..services.credential_ledger import CredentialLedger
from ..services.notification_dispatcher import NotificationDispatcher
from ..services.registry_sync import RegistrySynchronizer
from .config import Settings


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    store: SQLiteStore
    ledger: CredentialLedger
    notifications: NotificationDispatcher
    registry_sync: RegistrySynchronizer
    lifecycle: LifecycleOrchestrator
    admin_service: AdminService
