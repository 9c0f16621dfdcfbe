"""Middleware registration."""

from fastapi import FastAPI

from goal_assistant.config import Settings
from goal_assistant.middleware.cors import setup_cors
from goal_assistant.middleware.error_handler import setup_error_handlers
from goal_assistant.middleware.logging import setup_logging
from goal_assistant.middleware.rate_limit import RateLimitMiddleware
from goal_assistant.middleware.request_id import RequestIdMiddleware
from goal_assistant.middleware.security_headers import SecurityHeadersMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in order.

    Starlette runs middleware in reverse-add order (last added = outermost).
    CORS stays outermost so 429 responses from the rate limiter carry CORS headers.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
