"""Per-request access logging and request ids.

Each request gets an id, either a well-formed inbound ``X-Request-ID`` or a
fresh one. It is stored on ``request.state`` for the error handlers, echoed in
the response header and written into a single JSON access line.
"""

import json
import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("courier.access")

REQUEST_ID_HEADER = "X-Request-ID"
_INBOUND_REQUEST_ID = re.compile(r"^[A-Za-z0-9_-]{8,64}$")


def request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _resolve_request_id(request: Request) -> str:
    inbound = request.headers.get(REQUEST_ID_HEADER, "")
    if _INBOUND_REQUEST_ID.match(inbound):
        return inbound
    return uuid.uuid4().hex[:12]


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, logger: logging.Logger = logger):
        super().__init__(app)
        self._logger = logger

    async def dispatch(self, request: Request, call_next) -> Response:
        rid = _resolve_request_id(request)
        request.state.request_id = rid
        started = time.perf_counter()

        response = await call_next(request)

        self._logger.log(_level_for(response.status_code), json.dumps({
            "request_id": rid,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            "client": request.client.host if request.client else None,
        }))

        response.headers[REQUEST_ID_HEADER] = rid
        return response
