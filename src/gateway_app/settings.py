# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Gateway configuration.

All values are read once from the environment at startup (after .env files
have been loaded by the entry point).
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from gemini_bridge.constants import CODE_ASSIST_ENDPOINT
from gemini_bridge.utils.paths import get_cache_dir, get_default_root

logger = logging.getLogger(__name__)

TOKEN_CACHE_FILENAME = "oauth_token_cache.json"


def _env_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = env.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def _env_first(env: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        value = env.get(name)
        if value and value.strip():
            return value.strip()
    return None


@dataclass
class GatewaySettings:
    oauth_creds: Optional[str] = None
    oauth_creds_file: Optional[Path] = None
    token_cache_file: Optional[Path] = None
    project_id: Optional[str] = None
    proxy_api_key: Optional[str] = None
    enable_fake_thinking: bool = False
    enable_real_thinking: bool = False
    stream_thinking_as_content: bool = False
    code_assist_endpoint: str = CODE_ASSIST_ENDPOINT
    global_timeout: float = 300.0
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        data_dir: Optional[Path] = None,
    ) -> "GatewaySettings":
        env = os.environ if env is None else env
        root = data_dir or get_default_root()

        creds_file = _env_first(env, "GEMINI_OAUTH_CREDS_FILE")
        cache_file = _env_first(env, "GEMINI_TOKEN_CACHE_FILE")

        timeout_raw = _env_first(env, "GLOBAL_TIMEOUT")
        global_timeout = 300.0
        if timeout_raw:
            try:
                global_timeout = float(timeout_raw)
            except ValueError:
                logger.warning(f"Invalid GLOBAL_TIMEOUT '{timeout_raw}', using {global_timeout}")

        origins_raw = env.get("PROXY_CORS_ORIGINS", "*")
        cors_origins = [origin.strip() for origin in origins_raw.split(",") if origin.strip()]

        return cls(
            oauth_creds=_env_first(env, "GEMINI_OAUTH_CREDS", "GCP_SERVICE_ACCOUNT"),
            oauth_creds_file=Path(creds_file).expanduser() if creds_file else None,
            token_cache_file=(
                Path(cache_file).expanduser()
                if cache_file
                else get_cache_dir(root) / TOKEN_CACHE_FILENAME
            ),
            project_id=_env_first(env, "GEMINI_PROJECT_ID"),
            proxy_api_key=_env_first(env, "PROXY_API_KEY", "OPENAI_API_KEY"),
            enable_fake_thinking=_env_bool(env, "ENABLE_FAKE_THINKING"),
            enable_real_thinking=_env_bool(env, "ENABLE_REAL_THINKING"),
            stream_thinking_as_content=_env_bool(env, "STREAM_THINKING_AS_CONTENT"),
            code_assist_endpoint=_env_first(env, "CODE_ASSIST_ENDPOINT") or CODE_ASSIST_ENDPOINT,
            global_timeout=global_timeout,
            cors_origins=cors_origins or ["*"],
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.oauth_creds) or self.oauth_creds_file is not None
