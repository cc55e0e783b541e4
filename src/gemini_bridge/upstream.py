# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/upstream.py

import json
import logging
from typing import Any, AsyncGenerator, AsyncIterator, Dict, Optional

import httpx

from .constants import CODE_ASSIST_API_VERSION, CODE_ASSIST_ENDPOINT, STREAM_METHOD
from .error_handler import UpstreamProtocolError, UpstreamRequestError
from .sse_decoder import decode_sse_stream
from .token_manager import TokenLifecycleManager

lib_logger = logging.getLogger("gemini_bridge")

# One initial attempt plus one retry after a 401
MAX_AUTH_ATTEMPTS = 2


class UpstreamRequestDriver:
    """
    Issues authenticated calls against the Code Assist API.

    On a 401 from the first attempt the token is invalidated, re-acquired and
    the call is retried exactly once. Any other non-2xx status, or a second
    401, raises UpstreamRequestError. Streamed objects are passed through
    untouched.
    """

    def __init__(
        self,
        token_manager: TokenLifecycleManager,
        http_client: httpx.AsyncClient,
        endpoint: str = CODE_ASSIST_ENDPOINT,
        api_version: str = CODE_ASSIST_API_VERSION,
        stream_timeout: Optional[httpx.Timeout] = None,
    ):
        self.token_manager = token_manager
        self._client = http_client
        self._endpoint = endpoint.rstrip("/")
        self._api_version = api_version
        self._stream_timeout = stream_timeout or httpx.Timeout(
            connect=30.0, read=300.0, write=30.0, pool=30.0
        )

    def method_url(self, method: str) -> str:
        return f"{self._endpoint}/{self._api_version}:{method}"

    async def _build_headers(self, stream: bool) -> Dict[str, str]:
        headers = await self.token_manager.get_auth_header()
        headers["Content-Type"] = "application/json"
        headers["Accept"] = "text/event-stream" if stream else "application/json"
        return headers

    async def stream(self, payload: Dict[str, Any]) -> AsyncGenerator[Dict[str, Any], None]:
        """Stream backend response objects for one generate-content request."""
        url = f"{self.method_url(STREAM_METHOD)}?alt=sse"

        for attempt in range(1, MAX_AUTH_ATTEMPTS + 1):
            headers = await self._build_headers(stream=True)

            async with self._client.stream(
                "POST",
                url,
                headers=headers,
                json=payload,
                timeout=self._stream_timeout,
            ) as response:
                if response.status_code == 401 and attempt < MAX_AUTH_ATTEMPTS:
                    await response.aread()
                    lib_logger.warning(
                        "Got 401 from stream request, clearing token cache and retrying once"
                    )
                    await self.token_manager.invalidate()
                    continue

                if response.status_code >= 400:
                    body = await self._read_error_body(response)
                    lib_logger.error(
                        f"Stream request failed: {response.status_code} {body[:500]}"
                    )
                    raise UpstreamRequestError(response.status_code, body)

                received = False

                async def body_chunks() -> AsyncIterator[bytes]:
                    nonlocal received
                    async for chunk in response.aiter_bytes():
                        if chunk:
                            received = True
                            yield chunk

                async for obj in decode_sse_stream(body_chunks()):
                    yield obj

                if not received:
                    raise UpstreamProtocolError("Response has no body")
                return

    async def call_endpoint(self, method: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Non-streaming JSON call (e.g. loadCodeAssist) with the same 401 policy."""
        url = self.method_url(method)

        for attempt in range(1, MAX_AUTH_ATTEMPTS + 1):
            headers = await self._build_headers(stream=False)
            response = await self._client.post(url, headers=headers, json=body, timeout=30.0)

            if response.status_code == 401 and attempt < MAX_AUTH_ATTEMPTS:
                lib_logger.warning(f"Got 401 from {method}, clearing token cache and retrying once")
                await self.token_manager.invalidate()
                continue

            if response.status_code >= 400:
                raise UpstreamRequestError(response.status_code, response.text)

            if not response.content:
                raise UpstreamProtocolError(f"{method} returned an empty body")

            try:
                data = response.json()
            except json.JSONDecodeError as e:
                raise UpstreamProtocolError(f"{method} returned invalid JSON: {e}") from e

            if not isinstance(data, dict):
                raise UpstreamProtocolError(f"{method} returned a non-object JSON body")
            return data

        # Unreachable: the last attempt either returns or raises
        raise UpstreamRequestError(401, "")

    @staticmethod
    async def _read_error_body(response: httpx.Response) -> str:
        raw = await response.aread()
        if isinstance(raw, bytes):
            return raw.decode("utf-8", "replace")
        return str(raw)
