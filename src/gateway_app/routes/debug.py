# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Debug and diagnostics API routes.

This module contains troubleshooting endpoints for the OAuth and project
setup:
- Token cache status (/v1/debug/cache)
- Authentication check (/v1/token-test)
- Authentication plus project discovery check (/v1/test)
"""

import logging

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from gemini_bridge import GatewayError, GeminiSession
from gateway_app.dependencies import get_session, verify_api_key

logger = logging.getLogger(__name__)
router = APIRouter()


def _error_response(e: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"status": "error", "message": str(e)})


@router.get("/v1/debug/cache")
async def debug_cache(
    _=Depends(verify_api_key),
    session: GeminiSession = Depends(get_session),
):
    """Reports the cached OAuth token state without exposing the token."""
    cache_info = await session.token_manager.get_cached_token_info()
    return {"status": "ok", **cache_info}


@router.post("/v1/token-test")
async def token_test(
    _=Depends(verify_api_key),
    session: GeminiSession = Depends(get_session),
):
    """Checks that a valid access token can be obtained."""
    try:
        await session.token_manager.ensure_valid()
    except (GatewayError, httpx.HTTPError) as e:
        logger.error(f"Token test failed: {e}")
        return _error_response(e)

    logger.info("Token test passed")
    return {"status": "ok", "message": "Token authentication successful"}


@router.post("/v1/test")
async def full_test(
    _=Depends(verify_api_key),
    session: GeminiSession = Depends(get_session),
):
    """Checks authentication and project discovery end to end."""
    try:
        project_id = await session.prepare()
    except (GatewayError, httpx.HTTPError) as e:
        logger.error(f"Full test failed: {e}")
        return _error_response(e)

    logger.info(f"Project discovery test passed: {project_id}")
    return {
        "status": "ok",
        "message": "Authentication and project discovery successful",
        "projectId": project_id,
    }
