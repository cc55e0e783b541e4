# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/credential_store.py
"""
Opaque key-value storage for the refreshed OAuth credential record.

The token manager only ever calls get/put/delete; these stores hold no
business logic of their own.
"""

import asyncio
import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .constants import TOKEN_CACHE_KEY
from .utils.resilient_io import safe_read_json, safe_remove, safe_write_json

lib_logger = logging.getLogger("gemini_bridge")


class CredentialStore:
    """Interface for credential record storage."""

    async def get(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def put(self, record: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def delete(self) -> None:
        raise NotImplementedError


class MemoryCredentialStore(CredentialStore):
    """Process-local store. Used in tests and when no cache file is configured."""

    def __init__(self, record: Optional[Dict[str, Any]] = None):
        self._record = copy.deepcopy(record) if record else None

    async def get(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._record) if self._record else None

    async def put(self, record: Dict[str, Any]) -> None:
        self._record = copy.deepcopy(record)

    async def delete(self) -> None:
        self._record = None


class FileCredentialStore(CredentialStore):
    """
    JSON file store keyed by TOKEN_CACHE_KEY.

    The file holds `{"oauth_token_cache": {...record...}}` so the same file can
    be shared with other cached values later without a format change.
    """

    def __init__(self, path: Union[str, Path], key: str = TOKEN_CACHE_KEY):
        self.path = Path(path)
        self.key = key

    async def get(self) -> Optional[Dict[str, Any]]:
        data = await asyncio.to_thread(safe_read_json, self.path, lib_logger, None)
        if not isinstance(data, dict):
            return None
        record = data.get(self.key)
        return record if isinstance(record, dict) else None

    async def put(self, record: Dict[str, Any]) -> None:
        written = await asyncio.to_thread(
            safe_write_json,
            self.path,
            {self.key: record},
            lib_logger,
            True,
        )
        if not written:
            raise IOError(f"Failed to persist credential cache '{self.path.name}'")

    async def delete(self) -> None:
        await asyncio.to_thread(safe_remove, self.path, lib_logger)
