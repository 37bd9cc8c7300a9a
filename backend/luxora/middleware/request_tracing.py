"""
Per-request tracing for the news API.

Each request gets an ``X-Request-ID`` (the caller's, if supplied) and an
``X-Response-Time`` header; one log line is written per request so upstream
fallbacks logged by the services can be correlated with the call that
triggered them.
"""

from __future__ import annotations

import time
import uuid
from typing import Callable, Iterable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from luxora.core.logging import get_logger

logger = get_logger("request_tracing")

REQUEST_ID_HEADER = "X-Request-ID"
UNTRACED_PREFIXES = ("/health", "/favicon.ico")
SLOW_REQUEST_MS = 5000.0


def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestTracingMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        slow_request_ms: float = SLOW_REQUEST_MS,
        untraced_prefixes: Iterable[str] = UNTRACED_PREFIXES,
    ) -> None:
        super().__init__(app)
        self.slow_request_ms = slow_request_ms
        self.untraced_prefixes = tuple(untraced_prefixes)

    def _log(self, request: Request, status_code: int, elapsed_ms: float) -> None:
        if request.url.path.startswith(self.untraced_prefixes):
            return
        args = (request.method, request.url.path, status_code, elapsed_ms, request.state.request_id)
        if elapsed_ms > self.slow_request_ms:
            logger.warning("Slow request %s %s -> %s took %.1fms [%s]", *args)
        else:
            logger.info("%s %s -> %s (%.1fms) [%s]", *args)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or _new_request_id()
        started = time.perf_counter()
        response: Optional[Response] = None

        try:
            response = await call_next(request)
            return response
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self._log(request, response.status_code if response is not None else 500, elapsed_ms)
            if response is not None:
                response.headers[REQUEST_ID_HEADER] = request.state.request_id
                response.headers["X-Response-Time"] = f"{elapsed_ms:.1f}ms"


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")
