# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Streaming response handling for the gateway application.

This module provides the streaming_response_wrapper function that relays the
pipeline's SSE lines to the client and stops when the client goes away.
"""

import json
import logging
from typing import AsyncGenerator

from fastapi import Request

from gemini_bridge.constants import SSE_DONE_SENTINEL

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def streaming_response_wrapper(
    request: Request,
    response_stream: AsyncGenerator[str, None],
) -> AsyncGenerator[str, None]:
    """
    Relay SSE lines and stop early on client disconnect.

    Pipeline failures arrive in-band already. Anything else escaping the
    pipeline is reported as a final error payload so the client still sees
    a terminated stream.
    """
    try:
        async for chunk_str in response_stream:
            if await request.is_disconnected():
                logger.warning("Client disconnected, stopping stream.")
                break
            yield chunk_str
    except Exception as e:
        logger.error(f"An error occurred during the response stream: {e}")
        error_payload = {
            "error": {
                "message": f"An unexpected error occurred during the stream: {str(e)}",
                "type": "proxy_internal_error",
                "code": 500,
            }
        }
        yield f"data: {json.dumps(error_payload)}\n\n"
        yield SSE_DONE_SENTINEL
    finally:
        # Closes the upstream response when we stop early
        await response_stream.aclose()
