"""Configuration containers for the slideshow pipeline."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import ClassVar, Optional

from .types import SpeedTier


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Static configuration applied to every pipeline run."""

    env_prefix: ClassVar[str] = "SLIDEOPT_"

    runs_dir: str = "runs"
    default_duration: float = 3.0
    output_name: str = "slideshow.mp4"
    framerate: int = 25
    preset_name: str = "balanced-web"
    fade_seconds: float = 0.5
    two_pass: bool = False
    assume_yes: bool = False
    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"
    min_free_mb: int = 200
    keep_work_area: bool = False
    resolution_percent: Optional[int] = None
    crf: Optional[int] = None
    speed_tier: Optional[str] = None

    def __post_init__(self) -> None:
        if not math.isfinite(self.default_duration) or self.default_duration <= 0:
            raise ValueError("default_duration must be a positive number of seconds")
        if self.framerate <= 0:
            raise ValueError("framerate must be a positive integer")
        if not math.isfinite(self.fade_seconds) or self.fade_seconds < 0:
            raise ValueError("fade_seconds must be zero or positive")
        if self.min_free_mb < 0:
            raise ValueError("min_free_mb must not be negative")
        if not self.output_name:
            raise ValueError("output_name must not be empty")
        if self.resolution_percent is not None and not 0 < self.resolution_percent <= 100:
            raise ValueError("resolution_percent must be within 1..100")
        if self.crf is not None and not 0 <= self.crf <= 51:
            raise ValueError("crf must be within 0..51")
        if self.speed_tier is not None and self.speed_tier not in {tier.value for tier in SpeedTier}:
            raise ValueError(f"speed_tier must be one of: {', '.join(tier.value for tier in SpeedTier)}")

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Create a config object populated from environment variables."""
        prefix = cls.env_prefix
        return cls(
            runs_dir=os.getenv(f"{prefix}RUNS_DIR", "runs"),
            default_duration=float(os.getenv(f"{prefix}DEFAULT_DURATION", "3")),
            output_name=os.getenv(f"{prefix}OUTPUT_NAME", "slideshow.mp4"),
            framerate=int(os.getenv(f"{prefix}FRAMERATE", "25")),
            preset_name=os.getenv(f"{prefix}PRESET", "balanced-web"),
            fade_seconds=float(os.getenv(f"{prefix}FADE_SECONDS", "0.5")),
            two_pass=_env_flag(f"{prefix}TWO_PASS"),
            assume_yes=_env_flag(f"{prefix}ASSUME_YES"),
            ffmpeg_bin=os.getenv(f"{prefix}FFMPEG", "ffmpeg"),
            ffprobe_bin=os.getenv(f"{prefix}FFPROBE", "ffprobe"),
            min_free_mb=int(os.getenv(f"{prefix}MIN_FREE_MB", "200")),
            keep_work_area=_env_flag(f"{prefix}KEEP_WORK_AREA"),
            resolution_percent=_env_int(f"{prefix}RESOLUTION"),
            crf=_env_int(f"{prefix}CRF"),
            speed_tier=os.getenv(f"{prefix}SPEED") or None,
        )
