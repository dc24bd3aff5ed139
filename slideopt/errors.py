"""Error taxonomy raised by the slideshow pipeline."""

from __future__ import annotations

from typing import ClassVar, Optional


class SlideshowError(Exception):
    """Base class for every failure that aborts a run."""

    exit_code: ClassVar[int] = 1


class UnknownPreset(SlideshowError):
    """Raised when a preset name has no exact match in the catalog."""

    exit_code = 7

    def __init__(self, name: str, known: tuple[str, ...] = ()) -> None:
        hint = f" (available: {', '.join(known)})" if known else ""
        super().__init__(f"Unknown preset '{name}'{hint}")
        self.name = name


class EmptySequence(SlideshowError):
    """Raised when a composition is requested for zero assets."""

    def __init__(self) -> None:
        super().__init__("Cannot compose a slideshow from an empty image sequence.")


class DimensionProbeFailure(SlideshowError):
    """Raised when native image dimensions are missing or unusable."""

    def __init__(self, message: str, asset: Optional[str] = None) -> None:
        context = f"{asset}: " if asset else ""
        super().__init__(f"{context}{message}")
        self.asset = asset


class EncodeFailure(SlideshowError):
    """Raised when an encoder invocation exits unsuccessfully."""

    def __init__(self, pass_: str, preset: str, detail: str = "") -> None:
        message = f"Encode failed during {pass_} (preset '{preset}')"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.pass_ = pass_
        self.preset = preset
        self.detail = detail


class OutputMissing(SlideshowError):
    """Raised when the encoder reported success but produced nothing usable."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Output {path} {reason}")
        self.path = path


class InvalidDurationOverride(ValueError):
    """A stored per-image duration that does not parse as a positive real.

    Never aborts a run: the resolver catches it and uses the default duration.
    """


class EncoderUnavailable(SlideshowError):
    exit_code = 3


class InsufficientStorage(SlideshowError):
    exit_code = 4


class NoInputImages(SlideshowError):
    exit_code = 5


class PermissionFailure(SlideshowError):
    exit_code = 6


class WorkingDirectoryMissing(SlideshowError):
    pass
