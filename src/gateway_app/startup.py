# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Application startup and shutdown logic.

This module contains the lifespan context manager and the wiring that turns
GatewaySettings into a ready GeminiSession.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from gemini_bridge import (
    FileCredentialStore,
    GeminiSession,
    ProjectResolver,
    TokenLifecycleManager,
    UpstreamRequestDriver,
    mask_credential,
)
from gateway_app.settings import GatewaySettings

logger = logging.getLogger(__name__)


def build_session(
    settings: GatewaySettings, http_client: httpx.AsyncClient
) -> GeminiSession:
    """Assemble the process-wide pipeline from settings and a shared HTTP client."""
    store = FileCredentialStore(settings.token_cache_file)
    token_manager = TokenLifecycleManager(
        store,
        credential_source=settings.oauth_creds,
        credential_file=settings.oauth_creds_file,
        http_client=http_client,
    )
    driver = UpstreamRequestDriver(
        token_manager,
        http_client,
        endpoint=settings.code_assist_endpoint,
        stream_timeout=httpx.Timeout(
            connect=30.0, read=settings.global_timeout, write=30.0, pool=30.0
        ),
    )
    resolver = ProjectResolver(driver, override=settings.project_id)
    return GeminiSession(
        token_manager,
        driver,
        resolver,
        enable_fake_thinking=settings.enable_fake_thinking,
        enable_real_thinking=settings.enable_real_thinking,
        stream_thinking_as_content=settings.stream_thinking_as_content,
    )


def _log_configuration(settings: GatewaySettings) -> None:
    if settings.oauth_creds:
        logger.info("OAuth credentials: GEMINI_OAUTH_CREDS")
    elif settings.oauth_creds_file:
        logger.info(f"OAuth credentials: file {settings.oauth_creds_file}")

    if not settings.has_credentials:
        logger.warning("=" * 70)
        logger.warning("⚠️  NO OAUTH CREDENTIALS CONFIGURED")
        logger.warning("The gateway is running but cannot serve chat requests")
        logger.warning("unless a cached token exists in the token cache file.")
        logger.warning("  • Set GEMINI_OAUTH_CREDS to the contents of oauth_creds.json")
        logger.warning("  • Or set GEMINI_OAUTH_CREDS_FILE to its path")
        logger.warning("=" * 70)

    if settings.project_id:
        logger.info(f"Project: {settings.project_id} (from GEMINI_PROJECT_ID)")
    else:
        logger.info("Project: auto-discovery via loadCodeAssist")

    if settings.proxy_api_key:
        logger.info(f"API key gate enabled: {mask_credential(settings.proxy_api_key)}")
    else:
        logger.warning("PROXY_API_KEY not set, /v1 endpoints are open")

    logger.info(
        f"Thinking: fake={settings.enable_fake_thinking}, "
        f"real={settings.enable_real_thinking}, "
        f"inline={settings.stream_thinking_as_content}"
    )


@asynccontextmanager
async def lifespan(app: FastAPI, settings: Optional[GatewaySettings] = None):
    """
    Own the shared HTTP client and GeminiSession for the app's lifetime.

    A session already placed on app.state is left untouched.
    """
    settings = settings or getattr(app.state, "settings", None) or GatewaySettings.from_env()
    app.state.settings = settings

    http_client: Optional[httpx.AsyncClient] = None
    if getattr(app.state, "session", None) is None:
        http_client = httpx.AsyncClient(timeout=httpx.Timeout(30.0))
        app.state.session = build_session(settings, http_client)
        _log_configuration(settings)
        logger.info("GeminiSession initialized.")

    yield

    if http_client is not None:
        await http_client.aclose()
        logger.info("HTTP client closed.")
