"""File system helpers shared across the pipeline."""

from __future__ import annotations

import json
import os
import shutil
from pathlib import Path
from typing import Any


def ensure_dir(path: str | Path) -> Path:
    """Create the directory if it does not exist."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def write_text(path: str | Path, content: str) -> Path:
    """Write UTF-8 text to disk."""
    target = Path(path)
    ensure_dir(target.parent)
    target.write_text(content, encoding="utf-8")
    return target


def write_json(path: str | Path, data: Any) -> Path:
    """Serialize a Python object as JSON to disk."""
    payload = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    return write_text(path, payload)


def guess_extension(path: str | Path) -> str | None:
    """Extract the file extension (without leading dot)."""
    suffix = Path(path).suffix
    return suffix[1:].lower() if suffix else None


def atomic_write(path: str | Path, content: bytes) -> Path:
    """Write binary content to disk atomically."""
    target = Path(path)
    ensure_dir(target.parent)
    temp_path = target.with_suffix(target.suffix + ".tmp")
    with open(temp_path, "wb") as handle:
        handle.write(content)
    os.replace(temp_path, target)
    return target


def free_megabytes(path: str | Path) -> int:
    """Free space on the filesystem holding ``path``."""
    return shutil.disk_usage(path).free // (1024 * 1024)


def remove_tree(path: str | Path) -> None:
    """Remove a directory tree if present."""
    shutil.rmtree(path, ignore_errors=True)
