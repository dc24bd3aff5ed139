"""Core data models used across the slideshow pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

DurationOverrideMap = Dict[str, str]


class SpeedTier(str, Enum):
    """x264 speed presets, fastest first."""

    ULTRAFAST = "ultrafast"
    SUPERFAST = "superfast"
    VERYFAST = "veryfast"
    FASTER = "faster"
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"
    SLOWER = "slower"
    VERYSLOW = "veryslow"


class EncodeMode(str, Enum):
    SINGLE_PASS = "single-pass"
    TWO_PASS = "two-pass"


class EncodePass(str, Enum):
    """Identifies which encoder invocation a failure belongs to."""

    SINGLE = "single"
    PASS1 = "pass1"
    PASS2 = "pass2"


@dataclass(frozen=True, slots=True)
class ImageAsset:
    """A discovered still image with its probed native resolution."""

    sequence_index: int
    source_path: str
    native_width: int
    native_height: int

    @property
    def identifier(self) -> str:
        """Key used in the duration override store (file name without suffix)."""
        return Path(self.source_path).stem


@dataclass(frozen=True, slots=True)
class Preset:
    """Named bundle of encoding parameters."""

    name: str
    resolution_percent: int
    crf: int
    speed_tier: SpeedTier
    max_bitrate_kbps: int
    buffer_size_kbps: int

    def __post_init__(self) -> None:
        if not 0 < self.resolution_percent <= 100:
            raise ValueError(f"{self.name}: resolution_percent must be in (0, 100]")
        if not 0 <= self.crf <= 51:
            raise ValueError(f"{self.name}: crf must be in [0, 51]")
        if self.max_bitrate_kbps <= 0 or self.buffer_size_kbps <= 0:
            raise ValueError(f"{self.name}: bitrate and buffer size must be positive")


@dataclass(frozen=True, slots=True)
class CanvasDimensions:
    """Output frame size; both sides are even as yuv420p requires."""

    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Canvas must be positive, got {self.width}x{self.height}")
        if self.width % 2 or self.height % 2:
            raise ValueError(f"Canvas must be even, got {self.width}x{self.height}")

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True, slots=True)
class FadeIn:
    duration_seconds: float
    start_offset: float = 0.0


@dataclass(frozen=True, slots=True)
class ClipSource:
    """Input binding for one graph node: the still image and how long it is shown."""

    path: str
    display_seconds: float


@dataclass(frozen=True, slots=True)
class FilterNode:
    """Per-image scale, pad and optional fade chain."""

    input_index: int
    scale_target: Tuple[int, int]
    pad_target: CanvasDimensions
    pad_offset: Tuple[int, int]
    fill_color: str
    label: str
    fade: Optional[FadeIn] = None


@dataclass(frozen=True, slots=True)
class CompositionGraph:
    """Ordered per-image nodes followed by a single concatenation."""

    nodes: Tuple[FilterNode, ...]
    clips: Tuple[ClipSource, ...]
    canvas: CanvasDimensions
    output_label: str = "outv"

    @property
    def concat_inputs(self) -> Tuple[str, ...]:
        """Labels the concatenation consumes, in sequence order."""
        return tuple(node.label for node in self.nodes)

    @property
    def total_duration(self) -> float:
        return sum(clip.display_seconds for clip in self.clips)


@dataclass(frozen=True, slots=True)
class EncodeJob:
    """Everything the orchestrator needs besides the graph."""

    mode: EncodeMode
    preset: Preset
    framerate: int
    output_target: Path
    pass_stats_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.framerate <= 0:
            raise ValueError("framerate must be positive")
        if self.mode is EncodeMode.TWO_PASS and self.pass_stats_path is None:
            raise ValueError("two-pass jobs require pass_stats_path")


@dataclass(frozen=True, slots=True)
class OutputReport:
    """Summary of the produced artifact surfaced to the operator."""

    path: str
    size_bytes: int
    dimensions: Optional[CanvasDimensions] = None


@dataclass(slots=True)
class RunState:
    """Mutable state passed between nodes."""

    work_dir: Optional[str] = None
    preset: Optional[Preset] = None
    assets: List[ImageAsset] = field(default_factory=list)
    durations_path: Optional[str] = None
    durations_seeded: bool = False
    durations: List[float] = field(default_factory=list)
    confirmed: bool = False
    canvas: Optional[CanvasDimensions] = None
    graph: Optional[CompositionGraph] = None
    job: Optional[EncodeJob] = None
    output_path: Optional[str] = None
    report: Optional[OutputReport] = None
