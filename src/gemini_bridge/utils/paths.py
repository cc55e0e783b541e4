# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/utils/paths.py

import sys
from pathlib import Path
from typing import Optional, Union


def get_default_root() -> Path:
    """Directory holding .env, logs and caches (exe dir when frozen, else cwd)."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent
    return Path.cwd()


def get_logs_dir(root: Optional[Union[str, Path]] = None) -> Path:
    logs_dir = Path(root or get_default_root()) / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def get_cache_dir(root: Optional[Union[str, Path]] = None) -> Path:
    return Path(root or get_default_root()) / "cache"
