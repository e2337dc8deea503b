from __future__ import annotations

import logging
from time import perf_counter

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from classgrid.core.config import Settings

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str, **details) -> JSONResponse:
    # Mirrors the app_error_handler envelope.
    return JSONResponse(status_code=status_code, content={"message": message, "details": details})


def security_headers(settings: Settings) -> dict[str, str]:
    headers = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Cache-Control": "no-store",
    }
    if settings.security_enable_hsts:
        max_age = max(1, settings.security_hsts_max_age_seconds)
        headers["Strict-Transport-Security"] = f"max-age={max_age}; includeSubDomains"
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds fixed security headers; handlers may override any of them."""

    def __init__(self, app, *, settings: Settings) -> None:
        super().__init__(app)
        self._headers = security_headers(settings)

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        for name, value in self._headers.items():
            response.headers.setdefault(name, value)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects bodies whose declared Content-Length exceeds ``max_bytes``.

    A malformed Content-Length is a client error, not an unlimited body.
    """

    def __init__(self, app, *, max_bytes: int) -> None:
        super().__init__(app)
        self.max_bytes = max(1, max_bytes)

    async def dispatch(self, request: Request, call_next) -> Response:
        raw_length = request.headers.get("content-length")
        if raw_length is None:
            return await call_next(request)

        try:
            content_length = int(raw_length)
        except ValueError:
            content_length = -1
        if content_length < 0:
            logger.warning("REQUEST REJECTED | path=%s | content_length=%r", request.url.path, raw_length)
            return _error_response(400, "Invalid Content-Length header", content_length=raw_length)

        if content_length > self.max_bytes:
            logger.warning(
                "REQUEST REJECTED | path=%s | content_length=%s | max_bytes=%s",
                request.url.path,
                content_length,
                self.max_bytes,
            )
            return _error_response(
                413,
                f"Request body too large ({content_length} bytes). Maximum allowed is {self.max_bytes} bytes.",
                content_length=content_length,
                max_bytes=self.max_bytes,
            )
        return await call_next(request)


class RequestTimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        started = perf_counter()
        response = await call_next(request)
        elapsed_ms = int((perf_counter() - started) * 1000)
        response.headers["X-Process-Time-Ms"] = str(elapsed_ms)
        logger.debug(
            "REQUEST | method=%s | path=%s | status=%s | wall_ms=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response
