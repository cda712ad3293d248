# src/studybridge/core/logging/middleware.py
"""
Request ID middleware for FastAPI / Starlette.

Uses the incoming `X-Request-ID` header when it is a well-formed id, otherwise generates
a UUID4. The id is stored in the request-id contextvar for the duration of the request
(so RequestIdFilter can stamp log records) and echoed back in the response header.

    app.add_middleware(RequestIDMiddleware)
"""

import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .filters import reset_request_id, set_request_id

REQUEST_ID_HEADER = "X-Request-ID"

# Opaque ids from upstream proxies are accepted, but nothing that could inject log lines.
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


def _request_id_from(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER)
    if incoming and _VALID_REQUEST_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        rid = _request_id_from(request)
        token = set_request_id(rid)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            reset_request_id(token)
