"""Middleware registration."""

from fastapi import FastAPI

from oceo.config import Settings
from oceo.middleware.cors import setup_cors
from oceo.middleware.error_handler import setup_error_handlers
from oceo.middleware.logging import setup_logging
from oceo.middleware.rate_limit import RateLimitMiddleware
from oceo.middleware.request_id import RequestIdMiddleware
from oceo.middleware.session_refresh import SessionRefreshMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register middleware. Starlette runs them last-added outermost.

    Order from the outside in: CORS, request ID, rate limit, session refresh.
    CORS stays outermost so 429 responses still carry CORS headers.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(SessionRefreshMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
