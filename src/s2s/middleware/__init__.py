"""Middleware and handler registration."""

from fastapi import FastAPI

from s2s.config import Settings
from s2s.middleware.cors import setup_cors
from s2s.middleware.error_handler import setup_error_handlers
from s2s.middleware.logging import setup_logging
from s2s.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register middleware; the last one added is outermost.

    CORS is added last so its headers also land on error responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
