"""CORS for the browser timer client."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from focusstreak.config import Settings


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the configured client origins to call the API and read retry hints."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-User-Id", "X-Request-Id"],
        expose_headers=["X-Request-Id", "Retry-After", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
    )
