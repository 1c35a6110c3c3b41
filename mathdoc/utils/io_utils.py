"""
Basic file-system utilities for the local cache.

Provides helpers for creating parent directories and reading/writing
JSON payloads in UTF-8. Writes go through a temporary file and an atomic
rename so readers never see a half-written value.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def ensure_parent(path: str | Path) -> None:
    """
    Ensure that the parent directory for the given path exists.

    Args:
      path: Target file path whose parent should be created.
    """
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def write_json_atomic(path: str | Path, obj: Any) -> None:
    """
    Write a JSON value to disk and atomically replace ``path`` with it.

    Args:
      path: Destination file path.
      obj: JSON-serializable value to persist.
    """
    path = Path(path)
    ensure_parent(path)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(obj, f, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.remove(tmp_name)
        except OSError:
            pass
        raise


def read_json(path: str | Path) -> Any:
    """
    Read and parse a JSON file using UTF-8 encoding.

    Args:
      path: Source file path.

    Returns:
      The decoded JSON value.
    """
    with open(path, encoding="utf-8") as f:
        return json.load(f)
