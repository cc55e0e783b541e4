# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
FastAPI application factory.

This module provides the create_app() function for creating and configuring
the FastAPI application instance.
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gateway_app.dependencies import APIKeyError
from gateway_app.settings import GatewaySettings
from gateway_app.startup import lifespan


def create_app(
    settings: Optional[GatewaySettings] = None, data_dir: Optional[Path] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Gateway settings; read from the environment when omitted
        data_dir: Optional data directory path (token cache location)

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or GatewaySettings.from_env(data_dir=data_dir)

    app = FastAPI(
        title="Gemini Gateway",
        description="OpenAI-compatible gateway for the Gemini Code Assist API",
        version="1.0.0",
        lifespan=lambda app: lifespan(app, settings),
    )
    app.state.settings = settings
    app.state.session = None

    _configure_cors(app, settings)
    _register_error_handlers(app)
    _register_routes(app)

    return app


def _register_error_handlers(app: FastAPI) -> None:
    """Render API key failures in the OpenAI error shape."""

    @app.exception_handler(APIKeyError)
    async def api_key_error_handler(request: Request, exc: APIKeyError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _configure_cors(app: FastAPI, settings: GatewaySettings) -> None:
    """Configure CORS middleware from settings."""
    if settings.cors_origins == ["*"]:
        logging.warning(
            "CORS is configured to allow all origins (*). "
            "Set PROXY_CORS_ORIGINS to a specific domain list for production."
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )


def _register_routes(app: FastAPI) -> None:
    """Register all API routes."""
    from gateway_app.routes import openai, debug

    # OpenAI-compatible routes
    app.include_router(openai.router)

    # Token and project diagnostics
    app.include_router(debug.router)
