# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/utils/__init__.py

from .paths import (
    get_default_root,
    get_logs_dir,
    get_cache_dir,
)
from .resilient_io import (
    safe_mkdir,
    safe_read_json,
    safe_remove,
    safe_write_json,
)

__all__ = [
    "get_default_root",
    "get_logs_dir",
    "get_cache_dir",
    "safe_mkdir",
    "safe_read_json",
    "safe_remove",
    "safe_write_json",
]
