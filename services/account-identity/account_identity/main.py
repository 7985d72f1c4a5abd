"""FastAPI application wiring for the account identity service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.errors import register_exception_handlers
from .api.routes import router as v1_router
from .config import Settings, get_settings
from .domain.service import AccountService
from .domain.validation import RegistrationValidator
from .mail import build_mailer
from .repository import AccountRepository
from .security.passwords import PasswordHasher
from .security.sessions import SessionCodec

settings = get_settings()

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    """Install a stream handler on the root logger and apply ``level``."""
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(level.upper())


def build_account_service(repository: AccountRepository, settings: Settings) -> AccountService:
    """Compose the account service from runtime settings."""
    return AccountService(
        repository,
        build_mailer(settings),
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        validator=RegistrationValidator(
            strength_pattern=settings.password_strength_pattern or None,
            allowed_tlds=settings.allowed_email_tlds,
        ),
        sessions=SessionCodec(
            repository,
            secret=settings.session_secret,
            issuer=settings.session_issuer,
            ttl_seconds=settings.session_ttl_seconds,
        ),
        unify_login_errors=settings.unify_login_errors,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, services) for the app lifecycle."""
    configure_logging(settings.log_level)
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    app.state.pool = pool
    repository = AccountRepository(pool)
    repository.ensure_schema()
    app.state.account_service = build_account_service(repository, settings)
    try:
        yield
    finally:
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
register_exception_handlers(app)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics", tags=["health"])
def metrics() -> Response:
    """Expose Prometheus counters."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(v1_router)


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.http_host, port=settings.http_port)


if __name__ == "__main__":
    run()
