# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
FastAPI dependencies for the gateway application.

This module centralizes all FastAPI dependency functions including:
- Session and settings retrieval from app state
- API key verification for the /v1 endpoints
"""

import re

from fastapi import Depends, HTTPException, Request
from fastapi.security import APIKeyHeader

from gemini_bridge import GeminiSession
from gateway_app.settings import GatewaySettings

# Security scheme
api_key_header = APIKeyHeader(name="Authorization", auto_error=False)

_BEARER_PATTERN = re.compile(r"^Bearer\s+(.+)$")


class APIKeyError(Exception):
    """Rejected API key; rendered as an OpenAI-style error body."""

    def __init__(self, message: str, code: str, status_code: int = 401):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": {
                "message": self.message,
                "type": "authentication_error",
                "code": self.code,
            }
        }


def get_settings(request: Request) -> GatewaySettings:
    """Dependency to get the gateway settings from the app state."""
    return request.app.state.settings


def get_session(request: Request) -> GeminiSession:
    """Dependency to get the GeminiSession instance from the app state."""
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Gateway is not initialized")
    return session


async def verify_api_key(
    auth: str = Depends(api_key_header),
    settings: GatewaySettings = Depends(get_settings),
):
    """
    Dependency to verify the gateway API key.

    If no key is configured, skips verification (open access mode).
    Accepts Bearer token in Authorization header.
    """
    if not settings.proxy_api_key:
        return auth

    if not auth:
        raise APIKeyError("Missing Authorization header", "missing_authorization")

    match = _BEARER_PATTERN.match(auth)
    if not match:
        raise APIKeyError(
            "Invalid Authorization header format. Expected: Bearer <token>",
            "invalid_authorization_format",
        )

    if match.group(1) != settings.proxy_api_key:
        raise APIKeyError("Invalid API key", "invalid_api_key")

    return auth
