# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/utils/resilient_io.py

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union


def safe_mkdir(path: Union[str, Path], logger: logging.Logger) -> bool:
    """Create a directory tree, logging instead of raising on failure."""
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
        return True
    except OSError as e:
        logger.error(f"Failed to create directory '{path}': {e}")
        return False


def safe_read_json(
    path: Union[str, Path],
    logger: logging.Logger,
    default: Optional[Any] = None,
) -> Optional[Any]:
    """Read a JSON file, returning `default` when it is missing or corrupt."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to read JSON from '{Path(path).name}': {e}")
        return default


def safe_write_json(
    path: Union[str, Path],
    data: Any,
    logger: logging.Logger,
    secure_permissions: bool = False,
) -> bool:
    """
    Atomically write JSON to disk (temp file in the same dir, then rename).

    Returns False instead of raising so callers can decide whether a failed
    write is fatal.
    """
    target = Path(path)
    if not safe_mkdir(target.parent, logger):
        return False

    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp"
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        if secure_permissions:
            try:
                os.chmod(tmp_path, 0o600)
            except OSError:
                # Not supported on every platform
                pass
        os.replace(tmp_path, target)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to write JSON to '{target.name}': {e}")
        if tmp_path and os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass
        return False


def safe_remove(path: Union[str, Path], logger: logging.Logger) -> bool:
    """Delete a file if present. Missing files count as success."""
    try:
        Path(path).unlink()
        return True
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.error(f"Failed to delete '{Path(path).name}': {e}")
        return False
