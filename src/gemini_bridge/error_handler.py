# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/error_handler.py
"""
Error taxonomy for the Gemini translation pipeline.

Errors raised before the first byte of a response is committed are mapped to
HTTP status codes by the app layer. Errors raised mid-stream are turned into a
text delta by the pipeline because headers have already been flushed.
"""

from dataclasses import dataclass
from typing import Optional


def mask_credential(value: Optional[str]) -> str:
    """Mask a secret for log output. Shows first 4 and last 4 chars."""
    if not value or len(value) <= 8:
        return "****"
    return f"{value[:4]}****{value[-4:]}"


class GatewayError(Exception):
    """Base class for all pipeline failures."""


class AuthConfigError(GatewayError):
    """No credential source is configured, or the configured one is malformed."""


class AuthRefreshError(GatewayError):
    """The refresh call failed and no usable access token remains."""


class ProjectDiscoveryError(GatewayError):
    """Project discovery failed; carries a remediation hint."""

    def __init__(
        self,
        message: str,
        hint: str = "Set the GEMINI_PROJECT_ID environment variable to skip discovery.",
    ):
        self.hint = hint
        super().__init__(f"{message} {hint}")


class UpstreamRequestError(GatewayError):
    """Non-2xx response from the backend after the retry policy is exhausted."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        preview = body[:500] if body else ""
        super().__init__(f"Stream request failed: {status_code} {preview}".rstrip())


class UpstreamProtocolError(GatewayError):
    """The backend answered without a usable body."""


class InvalidRequestError(GatewayError):
    """The caller's request cannot be mapped to the backend format."""


@dataclass
class DecodeWarning:
    """A malformed SSE payload that was logged and discarded."""

    fragment: str
    error: str

    def __str__(self) -> str:
        return f"Discarded malformed SSE payload ({self.error}): {self.fragment[:200]}"
