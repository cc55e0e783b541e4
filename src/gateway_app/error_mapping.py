# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Centralized error mapping from pipeline exceptions to FastAPI HTTPExceptions.

Only failures raised before the first response byte go through here. Once a
stream has started, errors are delivered in-band by the pipeline.
"""

import logging
from typing import Optional

import httpx
from fastapi import HTTPException

from gemini_bridge import (
    AuthConfigError,
    AuthRefreshError,
    InvalidRequestError,
    ProjectDiscoveryError,
    UpstreamProtocolError,
    UpstreamRequestError,
)

logger = logging.getLogger(__name__)


def map_gateway_error(e: Exception, context: Optional[str] = None) -> HTTPException:
    """
    Map a pipeline exception to an appropriate HTTPException.

    Args:
        e: The exception from the gemini_bridge pipeline or httpx
        context: Optional context string for logging (e.g., endpoint name)

    Returns:
        HTTPException with appropriate status code and detail
    """
    ctx = f" ({context})" if context else ""

    if isinstance(e, AuthConfigError):
        logger.error(f"Authentication is not configured{ctx}: {e}")
        return HTTPException(status_code=500, detail=f"Authentication not configured: {e}")

    if isinstance(e, AuthRefreshError):
        logger.error(f"Authentication failed{ctx}: {e}")
        return HTTPException(status_code=401, detail=f"Authentication failed: {e}")

    if isinstance(e, ProjectDiscoveryError):
        logger.error(f"Project discovery failed{ctx}: {e}")
        return HTTPException(status_code=500, detail=str(e))

    if isinstance(e, UpstreamRequestError):
        status_code = e.status_code if 400 <= e.status_code < 500 else 502
        return HTTPException(status_code=status_code, detail=f"Upstream Error: {e}")

    if isinstance(e, UpstreamProtocolError):
        return HTTPException(status_code=502, detail=f"Bad Gateway: {e}")

    if isinstance(e, (InvalidRequestError, ValueError)):
        return HTTPException(status_code=400, detail=f"Invalid Request: {e}")

    if isinstance(e, httpx.TimeoutException):
        return HTTPException(status_code=504, detail=f"Gateway Timeout: {e}")

    if isinstance(e, httpx.HTTPError):
        return HTTPException(status_code=503, detail=f"Service Unavailable: {e}")

    # Log unexpected errors
    logger.error(f"Unhandled exception{ctx}: {e}")
    return HTTPException(status_code=500, detail=str(e))
