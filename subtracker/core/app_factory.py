from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.admin_service import AdminService
from ..application.services.lifecycle_service import LifecycleOrchestrator
from ..domain.exceptions import ConsistencyFailure, SubscriptionTrackerError
from ..domain.ports.collaborators import NotificationSender
from ..infrastructure.persistence.sqlite import SQLiteStore
from ..infrastructure.repositories.archive_repository import ArchiveRepository
from ..infrastructure.repositories.email_history_repository import EmailHistoryRepository
from ..infrastructure.repositories.registry_repository import RegistryRepository
from ..infrastructure.repositories.subscription_repository import SubscriptionRepository
from ..infrastructure.repositories.user_repository import UserRepository
from ..infrastructure.security.passwords import BcryptPasswordHasher
from ..presentation.api.routers import admin as admin_router
from ..presentation.api.routers import auth as auth_router
from ..presentation.api.routers import subscriptions as subscriptions_router
from ..presentation.api.routers import user as user_router
from ..services.archive_writer import ArchiveWriter
from ..services.credential_ledger import CredentialLedger
from ..services.email_service import EmailService
from ..services.notification_dispatcher import NotificationDispatcher
from ..services.registry_sync import RegistrySynchronizer, RegistrySyncHook

logger = logging.getLogger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    notification_sender: Optional[NotificationSender] = None,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="Subscription Tracker", lifespan=_create_lifespan(settings, notification_sender))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    app.include_router(auth_router.router)
    app.include_router(subscriptions_router.router)
    app.include_router(user_router.router)
    app.include_router(admin_router.router)

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"ok": True}

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SubscriptionTrackerError)
    async def handle_application_error(request: Request, exc: SubscriptionTrackerError) -> JSONResponse:
        if isinstance(exc, ConsistencyFailure):
            logger.error("%s %s failed for reconciliation: %s", request.method, request.url.path, exc.details)
        elif exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
        return JSONResponse(status_code=400, content={"success": False, "message": message})


def _create_lifespan(settings: Settings, notification_sender: Optional[NotificationSender]):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        store = SQLiteStore(
            settings.database_path,
            pool_size=settings.db_pool_size,
            timeout=float(settings.db_pool_timeout),
        )
        users = UserRepository(store)
        subscriptions = SubscriptionRepository(store)
        archive = ArchiveRepository(store)
        email_history = EmailHistoryRepository(store)
        registry = RegistryRepository(store)

        ledger = CredentialLedger(
            users,
            settings.jwt_secret,
            session_ttl=timedelta(days=settings.session_ttl_days),
            reset_ttl=timedelta(minutes=settings.reset_token_ttl_minutes),
        )
        sender = notification_sender or EmailService(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_username=settings.smtp_username,
            smtp_password=settings.smtp_password,
            from_email=settings.smtp_from_email,
            base_url=settings.frontend_base_url,
        )
        notifications = NotificationDispatcher(sender, max_workers=settings.notification_workers)
        registry_sync = RegistrySynchronizer(users, subscriptions, email_history, registry)
        lifecycle = LifecycleOrchestrator(
            users=users,
            subscriptions=subscriptions,
            email_history=email_history,
            archive_writer=ArchiveWriter(archive, subscriptions),
            ledger=ledger,
            hasher=BcryptPasswordHasher(rounds=settings.bcrypt_rounds),
            notifications=notifications,
            hook=RegistrySyncHook(registry_sync),
        )
        admin_service = AdminService(archive, registry, lifecycle, admin_user_id=settings.admin_user_id)
        if settings.admin_user_id is None:
            logger.info("ADMIN_USER_ID not set; admin reports are disabled.")

        container = ApplicationContainer(
            settings=settings,
            store=store,
            ledger=ledger,
            notifications=notifications,
            registry_sync=registry_sync,
            lifecycle=lifecycle,
            admin_service=admin_service,
        )

        app.state.container = container  # type: ignore[attr-defined]
        logger.info("Subscription tracker started with store at %s", settings.database_path)

        try:
            yield
        finally:
            notifications.shutdown()
            store.close()

    return lifespan
