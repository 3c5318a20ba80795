"""FastAPI application factory."""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from savingsvault.client.session import VaultSession
from savingsvault.config import get_settings
from savingsvault.wallet.base import ProviderUnavailableError
from savingsvault.wallet.factory import get_provider

logger = logging.getLogger(__name__)


def build_session() -> VaultSession:
    """Session over the configured provider, or over none if it is unavailable."""
    settings = get_settings()
    try:
        provider = get_provider(settings)
    except ProviderUnavailableError as e:
        logger.warning(f"{e.message} - wallet actions disabled")
        provider = None
    return VaultSession(provider, settings)


def create_app(session: Optional[VaultSession] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="SavingsVault API",
        description="Custodial savings vault client API",
        version="0.1.0",
        debug=settings.debug,
    )
    app.state.session = session or build_session()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from savingsvault.api.routes import health, vault

    app.include_router(health.router, tags=["Health"])
    app.include_router(vault.router)

    return app
