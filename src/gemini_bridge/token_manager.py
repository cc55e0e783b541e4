# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/token_manager.py

import asyncio
import json
import logging
import time
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import httpx

from .constants import (
    OAUTH_CLIENT_ID,
    OAUTH_CLIENT_SECRET,
    OAUTH_REFRESH_URL,
    TOKEN_BUFFER_SECONDS,
)
from .credential_store import CredentialStore
from .error_handler import AuthConfigError, AuthRefreshError, mask_credential

lib_logger = logging.getLogger("gemini_bridge")


@dataclass
class Credential:
    """OAuth credential record. `expiry_date` is epoch milliseconds."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    scope: str = ""
    expiry_date: int = 0
    id_token: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Credential":
        if not isinstance(data, dict):
            raise AuthConfigError("OAuth credentials must be a JSON object")

        access_token = data.get("access_token")
        refresh_token = data.get("refresh_token")
        if not isinstance(refresh_token, str) or not refresh_token:
            raise AuthConfigError("OAuth credentials are missing refresh_token")

        expiry_raw = data.get("expiry_date", 0)
        try:
            expiry_date = int(float(expiry_raw or 0))
        except (TypeError, ValueError):
            lib_logger.warning(f"Invalid expiry_date in OAuth credentials: {expiry_raw}")
            expiry_date = 0

        return cls(
            access_token=access_token if isinstance(access_token, str) else "",
            refresh_token=refresh_token,
            token_type=data.get("token_type") or "Bearer",
            scope=data.get("scope") or "",
            expiry_date=expiry_date,
            id_token=data.get("id_token"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def seconds_remaining(self, now: float) -> float:
        return self.expiry_date / 1000 - now


class TokenLifecycleManager:
    """
    Owns the OAuth credential used for every backend call.

    Load order on first use: the CredentialStore (tokens refreshed by an
    earlier run), then the configured source (inline JSON or a credentials
    file such as the one `gemini auth` writes to ~/.gemini/oauth_creds.json).

    A token is served unchanged while more than `buffer_seconds` of life
    remain. Inside the buffer window it is refreshed with
    `grant_type=refresh_token`; if that refresh fails while the old token has
    not actually expired yet, the old token is still served. Once the token
    is past its expiry, or after `invalidate()`, a refresh failure is fatal.
    """

    def __init__(
        self,
        store: CredentialStore,
        credential_source: Optional[Union[str, Dict[str, Any]]] = None,
        credential_file: Optional[Union[str, Path]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        buffer_seconds: float = TOKEN_BUFFER_SECONDS,
        refresh_url: str = OAUTH_REFRESH_URL,
        client_id: str = OAUTH_CLIENT_ID,
        client_secret: str = OAUTH_CLIENT_SECRET,
        max_refresh_retries: int = 3,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._credential_source = credential_source
        self._credential_file = Path(credential_file).expanduser() if credential_file else None
        self._http_client = http_client
        self.buffer_seconds = buffer_seconds
        self._refresh_url = refresh_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._max_refresh_retries = max(1, max_refresh_retries)
        self._clock = clock

        self._credential: Optional[Credential] = None
        self._force_refresh = False
        self._lock = asyncio.Lock()

    @property
    def has_credential_source(self) -> bool:
        return bool(self._credential_source) or self._credential_file is not None

    # =========================================================================
    # Public API
    # =========================================================================

    async def ensure_valid(self) -> str:
        """Return a usable access token, refreshing it when inside the buffer window."""
        async with self._lock:
            if self._credential is None:
                self._credential = await self._load_credential()

            credential = self._credential
            remaining = credential.seconds_remaining(self._clock())
            if not self._force_refresh and credential.access_token and remaining > self.buffer_seconds:
                return credential.access_token

            lib_logger.info(
                f"Refreshing OAuth token ({'forced' if self._force_refresh else f'{int(remaining)}s remaining'})"
            )
            try:
                refreshed = await self._refresh(credential)
            except AuthRefreshError as e:
                if not self._force_refresh and credential.access_token and remaining > 0:
                    lib_logger.warning(
                        f"Token refresh failed, continuing with current token for {int(remaining)}s: {e}"
                    )
                    return credential.access_token
                raise

            self._credential = refreshed
            self._force_refresh = False
            await self._persist(refreshed)
            lib_logger.info(
                f"OAuth token refreshed; valid for {int(refreshed.seconds_remaining(self._clock()))}s"
            )
            return refreshed.access_token

    async def invalidate(self) -> None:
        """
        Drop the access token and the cached record; the next ensure_valid refreshes.

        The refresh token is kept in memory so a deployment that only has the
        cache file can still recover.
        """
        async with self._lock:
            if self._credential is not None:
                self._credential = replace(self._credential, access_token="", expiry_date=0)
            self._force_refresh = True
            await self._store.delete()
        lib_logger.info("OAuth token cache cleared")

    async def get_auth_header(self) -> Dict[str, str]:
        token = await self.ensure_valid()
        return {"Authorization": f"Bearer {token}"}

    async def get_cached_token_info(self) -> Dict[str, Any]:
        """Describe the cached record for the debug endpoint. Never returns the token itself."""
        record = await self._store.get()
        if not record:
            return {"cached": False, "message": "No token found in cache"}

        try:
            credential = Credential.from_dict(record)
        except AuthConfigError as e:
            return {"cached": False, "message": f"Cached token is invalid: {e}"}

        remaining = credential.seconds_remaining(self._clock())
        return {
            "cached": True,
            "expires_at": datetime.fromtimestamp(
                credential.expiry_date / 1000, tz=timezone.utc
            ).isoformat(),
            "time_until_expiry_seconds": int(remaining),
            "is_expired": remaining <= self.buffer_seconds,
            "token_preview": mask_credential(credential.access_token),
        }

    # =========================================================================
    # Loading / persistence
    # =========================================================================

    async def _load_credential(self) -> Credential:
        cached = await self._store.get()
        if cached and not self._force_refresh:
            try:
                credential = Credential.from_dict(cached)
                lib_logger.debug("Using OAuth credential from token cache")
                return credential
            except AuthConfigError as e:
                lib_logger.warning(f"Ignoring malformed token cache entry: {e}")

        if self._credential_source:
            source = self._credential_source
            if isinstance(source, str):
                try:
                    source = json.loads(source)
                except json.JSONDecodeError as e:
                    raise AuthConfigError(f"OAuth credentials are not valid JSON: {e}") from e
            lib_logger.debug("Using OAuth credential from inline configuration")
            return Credential.from_dict(source)

        if self._credential_file is not None:
            data = await asyncio.to_thread(self._read_credential_file, self._credential_file)
            lib_logger.debug(f"Using OAuth credential file '{self._credential_file.name}'")
            return Credential.from_dict(data)

        raise AuthConfigError(
            "No OAuth credentials configured. Set GEMINI_OAUTH_CREDS to the contents "
            "of oauth_creds.json or GEMINI_OAUTH_CREDS_FILE to its path."
        )

    @staticmethod
    def _read_credential_file(path: Path) -> Any:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise AuthConfigError(f"OAuth credential file not found at '{path}'")
        except (OSError, json.JSONDecodeError) as e:
            raise AuthConfigError(f"Failed to load OAuth credentials from '{path}': {e}") from e

    async def _persist(self, credential: Credential) -> None:
        # Google refresh tokens do not rotate, so the in-memory copy stays
        # authoritative even when the cache write fails.
        try:
            await self._store.put(credential.to_dict())
        except IOError as e:
            lib_logger.error(f"Failed to persist refreshed OAuth token: {e}")

    # =========================================================================
    # Refresh
    # =========================================================================

    async def _refresh(self, credential: Credential) -> Credential:
        if not credential.refresh_token:
            raise AuthRefreshError("No refresh_token available")

        form = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "refresh_token": credential.refresh_token,
            "grant_type": "refresh_token",
        }
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        if self._http_client is not None:
            token_data = await self._post_refresh(self._http_client, form, headers)
        else:
            async with httpx.AsyncClient(timeout=30.0) as client:
                token_data = await self._post_refresh(client, form, headers)

        access_token = token_data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise AuthRefreshError("Refresh response missing access_token")

        expires_in = token_data.get("expires_in", 3600)
        if not isinstance(expires_in, (int, float)):
            raise AuthRefreshError("Refresh response has invalid expires_in")

        return replace(
            credential,
            access_token=access_token,
            refresh_token=token_data.get("refresh_token") or credential.refresh_token,
            token_type=token_data.get("token_type") or credential.token_type,
            scope=token_data.get("scope") or credential.scope,
            id_token=token_data.get("id_token") or credential.id_token,
            expiry_date=int((self._clock() + float(expires_in)) * 1000),
        )

    async def _post_refresh(
        self,
        client: httpx.AsyncClient,
        form: Dict[str, str],
        headers: Dict[str, str],
    ) -> Dict[str, Any]:
        last_error: Optional[Exception] = None

        for attempt in range(self._max_refresh_retries):
            try:
                response = await client.post(self._refresh_url, data=form, headers=headers)
                response.raise_for_status()
                payload = response.json()
                if not isinstance(payload, dict):
                    raise AuthRefreshError("Refresh response is not a JSON object")
                return payload

            except httpx.HTTPStatusError as e:
                last_error = e
                status_code = e.response.status_code
                if 500 <= status_code < 600 and attempt < self._max_refresh_retries - 1:
                    await asyncio.sleep(2**attempt)
                    continue

                error_desc = e.response.text[:200]
                lib_logger.error(f"OAuth token refresh rejected (HTTP {status_code}): {error_desc}")
                raise AuthRefreshError(
                    f"Token refresh failed with status {status_code}: {error_desc}"
                ) from e

            except (httpx.RequestError, httpx.TimeoutException) as e:
                last_error = e
                if attempt < self._max_refresh_retries - 1:
                    await asyncio.sleep(2**attempt)
                    continue
                raise AuthRefreshError(f"Token refresh request failed: {e}") from e

            except ValueError as e:
                raise AuthRefreshError(f"Refresh response is not valid JSON: {e}") from e

        raise AuthRefreshError(f"Token refresh failed: {last_error}")
