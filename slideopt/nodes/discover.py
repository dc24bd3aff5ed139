"""Node for discovering source images and staging them in the work area."""

from __future__ import annotations

import json
import re
import shutil
from dataclasses import asdict
from pathlib import Path
from typing import List

from PIL import Image, UnidentifiedImageError

from ..errors import DimensionProbeFailure, InsufficientStorage, NoInputImages
from ..types import ImageAsset, RunState
from ..utils.files import ensure_dir, free_megabytes, guess_extension, remove_tree
from .base import BaseNode

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg"})
WORK_AREA_NAME = ".slideopt"
FRAMES_DIR_NAME = "frames"

_DIGITS = re.compile(r"(\d+)")


def natural_key(name: str) -> list:
    """Sort key that orders ``img2`` before ``img10``."""
    return [int(part) if part.isdigit() else part.lower() for part in _DIGITS.split(name)]


def list_source_images(work_dir: Path) -> List[Path]:
    """Visible JPEG files directly inside ``work_dir`` in natural name order."""
    candidates = [
        path
        for path in work_dir.iterdir()
        if path.is_file() and not path.name.startswith(".") and guess_extension(path) in IMAGE_EXTENSIONS
    ]
    return sorted(candidates, key=lambda path: natural_key(path.name))


def probe_dimensions(path: Path) -> tuple[int, int]:
    """Return the native pixel size stored in the image header."""
    try:
        with Image.open(path) as image:
            width, height = image.size
    except (UnidentifiedImageError, OSError) as exc:
        raise DimensionProbeFailure(f"cannot read image ({exc})", asset=path.name) from exc
    if width <= 0 or height <= 0:
        raise DimensionProbeFailure(f"invalid native size {width}x{height}", asset=path.name)
    return width, height


class DiscoverImages(BaseNode):
    """Copies the working directory's images into ``.slideopt/frames`` as image001.jpg, ..."""

    def __init__(self, run_id: str, logger, min_free_mb: int = 0) -> None:
        super().__init__(name="DiscoverImages", run_id=run_id, logger=logger)
        self._min_free_mb = min_free_mb

    def run(self, state: RunState) -> RunState:
        """Produce ordered ImageAsset records for the staged copies."""
        work_dir = Path(state.work_dir or ".")
        sources = list_source_images(work_dir)
        self.log_request(
            json.dumps({"work_dir": str(work_dir), "sources": [str(path) for path in sources]}, indent=2)
        )
        if not sources:
            raise NoInputImages(f"No .jpg/.jpeg images found in {work_dir}")

        needed_mb = sum(path.stat().st_size for path in sources) // (1024 * 1024) + self._min_free_mb
        free_mb = free_megabytes(work_dir)
        if free_mb < needed_mb:
            raise InsufficientStorage(f"Staging images needs {needed_mb} MB but only {free_mb} MB are free.")

        frames_dir = work_dir / WORK_AREA_NAME / FRAMES_DIR_NAME
        remove_tree(frames_dir)
        ensure_dir(frames_dir)

        width = max(3, len(str(len(sources))))
        assets: List[ImageAsset] = []
        for index, source in enumerate(sources):
            native_width, native_height = probe_dimensions(source)
            staged = frames_dir / f"image{index + 1:0{width}d}.jpg"
            shutil.copy2(source, staged)
            assets.append(
                ImageAsset(
                    sequence_index=index,
                    source_path=str(staged),
                    native_width=native_width,
                    native_height=native_height,
                )
            )

        state.assets = assets
        self.log_response(
            {
                "frames_dir": str(frames_dir),
                "assets": [asdict(asset) | {"original": str(src)} for asset, src in zip(assets, sources)],
            }
        )
        return state
