# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/project_resolver.py

import asyncio
import logging
from typing import Optional

import httpx

from .constants import DISCOVERY_PROJECT_HINT, LOAD_CODE_ASSIST_METHOD
from .error_handler import GatewayError, ProjectDiscoveryError
from .upstream import UpstreamRequestDriver

lib_logger = logging.getLogger("gemini_bridge")


class ProjectResolver:
    """
    Resolves the Code Assist project id sent with every generate call.

    An explicit override is returned verbatim. Otherwise loadCodeAssist is
    called once with a placeholder hint and the assigned project is kept in
    memory for the lifetime of this resolver.
    """

    def __init__(self, driver: UpstreamRequestDriver, override: Optional[str] = None):
        self._driver = driver
        self._override = override.strip() if override and override.strip() else None
        self._project_id: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def cached_project_id(self) -> Optional[str]:
        return self._override or self._project_id

    async def resolve(self) -> str:
        if self._override:
            return self._override
        if self._project_id:
            return self._project_id

        async with self._lock:
            if self._project_id:
                return self._project_id
            self._project_id = await self._discover()
            return self._project_id

    async def _discover(self) -> str:
        body = {
            "cloudaicompanionProject": DISCOVERY_PROJECT_HINT,
            "metadata": {"duetProject": DISCOVERY_PROJECT_HINT},
        }

        try:
            data = await self._driver.call_endpoint(LOAD_CODE_ASSIST_METHOD, body)
        except (GatewayError, httpx.HTTPError) as e:
            lib_logger.error(f"Failed to discover project ID: {e}")
            raise ProjectDiscoveryError(
                "Could not discover project ID. Make sure you're authenticated."
            ) from e

        project = data.get("cloudaicompanionProject")
        # Newer responses nest the id inside an object
        if isinstance(project, dict):
            project = project.get("id")

        if not isinstance(project, str) or not project:
            lib_logger.error(f"loadCodeAssist response has no project: {str(data)[:200]}")
            raise ProjectDiscoveryError("Project ID discovery failed.")

        lib_logger.info(f"Discovered Code Assist project '{project}'")
        return project
