"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from streakup.config import Settings
from streakup.middleware.error_handler import setup_error_handlers
from streakup.middleware.logging import setup_logging
from streakup.middleware.rate_limit import RateLimitMiddleware
from streakup.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware

# Response headers the web client reads.
_EXPOSED_HEADERS = [REQUEST_ID_HEADER, "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging and error handlers, then stack the middleware.

    Starlette wraps in reverse-add order: CORS (outermost), request id, rate limit.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=_EXPOSED_HEADERS,
    )
