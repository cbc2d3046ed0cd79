"""CORS for the marketing site and dashboard front ends."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from oceo.config import Settings


def setup_cors(app: FastAPI, settings: Settings) -> None:
    # Credentials are required for the session cookie, so origins must be explicit
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id", "Stripe-Signature"],
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
    )
