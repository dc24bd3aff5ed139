"""Checks performed before any file is touched."""

from __future__ import annotations

import json
import os
from dataclasses import asdict
from pathlib import Path

from .. import presets
from ..config import PipelineConfig
from ..encoder import Encoder
from ..errors import (
    EncoderUnavailable,
    InsufficientStorage,
    PermissionFailure,
    WorkingDirectoryMissing,
)
from ..types import RunState
from ..utils.files import free_megabytes
from .base import BaseNode


class Preflight(BaseNode):
    """Validates the working directory, encoder, free space and preset name."""

    def __init__(self, run_id: str, logger, config: PipelineConfig, work_dir: str | Path, encoder: Encoder) -> None:
        super().__init__(name="Preflight", run_id=run_id, logger=logger)
        self._config = config
        self._work_dir = Path(work_dir).expanduser()
        self._encoder = encoder

    def run(self, state: RunState) -> RunState:
        """Resolve the preset and fail fast on an unusable environment."""
        self.log_request(
            json.dumps(
                {
                    "work_dir": str(self._work_dir),
                    "preset": self._config.preset_name,
                    "min_free_mb": self._config.min_free_mb,
                    "overrides": {
                        "resolution_percent": self._config.resolution_percent,
                        "crf": self._config.crf,
                        "speed_tier": self._config.speed_tier,
                    },
                },
                indent=2,
            )
        )

        preset = presets.with_overrides(
            presets.resolve(self._config.preset_name),
            resolution_percent=self._config.resolution_percent,
            crf=self._config.crf,
            speed_tier=self._config.speed_tier,
        )
        if not self._work_dir.is_dir():
            raise WorkingDirectoryMissing(f"Working directory not found: {self._work_dir}")
        if not os.access(self._work_dir, os.R_OK | os.W_OK | os.X_OK):
            raise PermissionFailure(f"Working directory is not readable and writable: {self._work_dir}")
        if not self._encoder.available():
            raise EncoderUnavailable("ffmpeg is required to render the slideshow. Please install ffmpeg and retry.")

        free_mb = free_megabytes(self._work_dir)
        if free_mb < self._config.min_free_mb:
            raise InsufficientStorage(
                f"Only {free_mb} MB free in {self._work_dir}; at least {self._config.min_free_mb} MB required."
            )

        state.preset = preset
        state.work_dir = str(self._work_dir.resolve())

        self.log_response({"free_mb": free_mb, "preset": asdict(state.preset)})
        return state
