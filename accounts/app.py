"""FastAPI application factory for the account lifecycle backend."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from accounts.core.config import Settings, load_settings
from accounts.core.errors import StorageError
from accounts.core.identity import IdentityResolver, header_identity_resolver
from accounts.core.mailer import NotificationDispatcher, SMTPMailer
from accounts.core.utils import Clock, utc_now
from accounts.db.session import Database
from accounts.routers import account as account_router
from accounts.routers import verification as verification_router
from accounts.services.account_service import AccountService
from accounts.services.deletion_service import DeletionService
from accounts.services.verification_service import VerificationService

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    dispatcher: NotificationDispatcher | None = None,
    identity_resolver: IdentityResolver | None = None,
    clock: Clock = utc_now,
) -> FastAPI:
    """
    Build the app. Collaborators are created here once and shared by reference;
    tests pass their own database, dispatcher, resolver and clock.
    """
    settings = settings or load_settings()
    configure_logging(settings)
    database = database or Database(settings)
    database.create_all()
    dispatcher = dispatcher or SMTPMailer(settings)

    verification_service = VerificationService(settings, database, dispatcher, clock)
    app = FastAPI(title="Account Lifecycle API")
    app.state.settings = settings
    app.state.database = database
    app.state.verification_service = verification_service
    app.state.deletion_service = DeletionService(settings, database, clock)
    app.state.account_service = AccountService(verification_service)
    app.state.identity_resolver = identity_resolver or header_identity_resolver(settings.identity_header)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("Storage failure on %s %s", request.method, request.url.path)
        return JSONResponse(
            {"success": False, "error": "Service temporarily unavailable", "code": "storage_error"},
            status_code=503,
        )

    app.include_router(verification_router.router)
    app.include_router(account_router.router)
    return app


def start(host: str | None = None, port: int | None = None, reload: bool = False) -> None:
    """Serve the app with uvicorn; same as ``uvicorn --factory accounts.app:create_app``."""
    settings = load_settings()
    bind_host = host or settings.server_host
    bind_port = port or settings.server_port

    import uvicorn

    uvicorn.run(
        "accounts.app:create_app",
        host=bind_host,
        port=bind_port,
        reload=reload,
        factory=True,
    )
