"""Post-encode checks on the produced artifact."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Callable, Optional

from .errors import OutputMissing
from .types import CanvasDimensions, OutputReport

DimensionProbe = Callable[[Path], Optional[CanvasDimensions]]


def ffprobe_dimensions(path: Path, binary: str = "ffprobe") -> Optional[CanvasDimensions]:
    """Read the first video stream's size from the container header.

    Returns None when ffprobe is missing or cannot read the file.
    """
    cmd = [
        binary,
        "-v",
        "error",
        "-select_streams",
        "v:0",
        "-show_entries",
        "stream=width,height",
        "-of",
        "json",
        str(path),
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError:
        return None
    if result.returncode != 0:
        return None
    try:
        streams = json.loads(result.stdout or "{}").get("streams") or []
        stream = streams[0]
        return CanvasDimensions(width=int(stream["width"]), height=int(stream["height"]))
    except (ValueError, KeyError, IndexError, TypeError):
        return None


def verify(output_target: str | Path, probe: DimensionProbe = ffprobe_dimensions) -> OutputReport:
    """Confirm the artifact exists and is non-empty; no stream decoding."""
    path = Path(output_target)
    if not path.is_file():
        raise OutputMissing(str(path), "does not exist")
    size = path.stat().st_size
    if size == 0:
        raise OutputMissing(str(path), "is empty")
    return OutputReport(path=str(path), size_bytes=size, dimensions=probe(path))
