# studybridge/api/v1/error_handlers.py
"""
FastAPI exception handlers that map service exceptions to HTTP responses.

The status code and payload are decided by the exception classes themselves
(`http_status()` / `to_payload()`); the handlers only log and wrap. Register them in the
app factory:

    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)

An account conflict then reaches the client as 409 with:

    {"detail": "Email address has already been used by another account.",
     "code": "entity_already_exists", "fields": ["email"],
     "entity_type": "Account", "entity_keys": {"userId": "..."}}
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from studybridge.exceptions.base import (
    BridgeError,
    ConcurrentModificationError,
    ConstraintViolationError,
    EntityAlreadyExistsError,
    InvalidEntityError,
    ParseError,
    RepositoryError,
)

logger = logging.getLogger(__name__)


async def conflict_handler(request: Request, exc: BridgeError) -> JSONResponse:
    """409 for EntityAlreadyExistsError, ConcurrentModificationError and ConstraintViolationError."""
    logger.info(
        "api.conflict",
        extra={"method": request.method, "path": request.url.path, "code": exc.error_code, "fields": exc.fields},
    )
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


async def bad_request_handler(request: Request, exc: BridgeError) -> JSONResponse:
    """400 for ParseError and InvalidEntityError."""
    logger.info(
        "api.bad_request",
        extra={"method": request.method, "path": request.url.path, "code": exc.error_code},
    )
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


async def repository_error_handler(request: Request, exc: RepositoryError) -> JSONResponse:
    # Message is already generic; the cause chain is in the repository's own log line.
    logger.warning(
        "api.repository_error",
        extra={"method": request.method, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
    """Fallback for BridgeError subclasses without a dedicated handler."""
    logger.warning(
        "api.unhandled_bridge_error",
        extra={"method": request.method, "path": request.url.path, "error_type": type(exc).__name__},
    )
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EntityAlreadyExistsError, conflict_handler)
    app.add_exception_handler(ConcurrentModificationError, conflict_handler)
    app.add_exception_handler(ConstraintViolationError, conflict_handler)
    app.add_exception_handler(ParseError, bad_request_handler)
    app.add_exception_handler(InvalidEntityError, bad_request_handler)
    app.add_exception_handler(RepositoryError, repository_error_handler)
    app.add_exception_handler(BridgeError, bridge_error_handler)
