# src/studybridge/core/logging/filters.py
"""
Logging filters.

RequestIdFilter stamps every LogRecord with the id of the HTTP request it was produced
under. The id lives in a `contextvars.ContextVar`, so it follows a request across awaits
and concurrent requests never see each other's id. Records produced outside a request get
the sentinel "-", which keeps `%(request_id)s` format strings safe.

RedactFilter masks secrets and account identifiers passed through `extra={...}`. The
persistence layer logs which unique field collided, never the colliding value, but callers
elsewhere may not be as careful.

Typical wiring (see builder.py):

    "filters": {"request_id": {"()": RequestIdFilter}, "redact": {"()": RedactFilter}},
    "handlers": {"console": {..., "filters": ["request_id", "redact"]}}

and in the HTTP layer, RequestIDMiddleware calls set_request_id() per request.
"""

import contextvars
import logging
from logging import LogRecord

REDACTED = "***REDACTED***"

_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def set_request_id(request_id: str | None):
    """Set the request id for the current context and return the token for reset_request_id()."""
    return _request_id_ctx.set(request_id)


def reset_request_id(token):
    _request_id_ctx.reset(token)


def get_request_id() -> str | None:
    return _request_id_ctx.get()


class RequestIdFilter(logging.Filter):
    """
    Guarantee every LogRecord has a `request_id` attribute.

    An id passed explicitly with `extra={"request_id": ...}` wins, then the contextvar,
    then "-". Always returns True; this filter only annotates.
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = (
            getattr(record, "request_id", None) or get_request_id() or "-"
        )
        return True


class RedactFilter(logging.Filter):
    """Mask record attributes whose name is a known secret or personal identifier."""

    SENSITIVE = {
        "password",
        "secret",
        "token",
        "access_token",
        "refresh_token",
        "authorization",
        "email",
        "phone",
        "phone_number",
        "synapse_user_id",
        "external_id",
    }

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE and record.__dict__[key] is not None:
                record.__dict__[key] = REDACTED
        return True
