"""Translation of domain errors into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..domain.errors import (
    CredentialError,
    DuplicateError,
    HashingError,
    IdentityError,
    SessionError,
    TokenError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[IdentityError], int]] = [
    (ValidationError, 422),
    (DuplicateError, status.HTTP_409_CONFLICT),
    (CredentialError, status.HTTP_401_UNAUTHORIZED),
    (SessionError, status.HTTP_401_UNAUTHORIZED),
    (TokenError, status.HTTP_404_NOT_FOUND),
    (TransportError, status.HTTP_502_BAD_GATEWAY),
    (HashingError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def _status_for(exc: IdentityError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


async def identity_error_handler(request: Request, exc: IdentityError) -> JSONResponse:
    """Render an :class:`IdentityError` as ``{"detail": ..., "field": ...}``."""
    status_code = _status_for(exc)
    body: dict[str, str] = {"detail": exc.message}
    if isinstance(exc, (ValidationError, DuplicateError)):
        body["field"] = exc.field
    if isinstance(exc, TransportError):
        body["detail"] = "account created but the verification email could not be sent"
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, type(exc).__name__)
    return JSONResponse(status_code=status_code, content=body)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report the first malformed request field in the same shape as domain validation."""
    first = exc.errors()[0]
    names = [part for part in first.get("loc", ()) if isinstance(part, str)]
    body = {"detail": first.get("msg", "Invalid request."), "field": names[-1] if names else "body"}
    return JSONResponse(status_code=422, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the identity and request validation handlers to ``app``."""
    app.add_exception_handler(IdentityError, identity_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
