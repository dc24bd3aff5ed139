"""Fixed catalog of named encoding presets."""

from __future__ import annotations

import dataclasses
from typing import Dict, Optional, Tuple

from .errors import UnknownPreset
from .types import Preset, SpeedTier

_CATALOG: Tuple[Preset, ...] = (
    Preset("smallest-file", 50, 30, SpeedTier.VERYSLOW, 800, 1600),
    Preset("balanced-web", 75, 24, SpeedTier.MEDIUM, 2000, 4000),
    Preset("high-quality-web", 100, 20, SpeedTier.SLOW, 5000, 10000),
    Preset("mobile", 60, 26, SpeedTier.FAST, 1200, 2400),
    Preset("social", 80, 23, SpeedTier.MEDIUM, 3500, 7000),
    Preset("archival", 100, 16, SpeedTier.VERYSLOW, 12000, 24000),
    # Quality levels kept from the original shell tool.
    Preset("low", 100, 28, SpeedTier.FASTER, 1000, 2000),
    Preset("medium", 100, 23, SpeedTier.MEDIUM, 2000, 4000),
    Preset("high", 100, 18, SpeedTier.SLOWER, 4000, 8000),
)

PRESETS: Dict[str, Preset] = {preset.name: preset for preset in _CATALOG}


def names() -> Tuple[str, ...]:
    """Preset names in catalog order."""
    return tuple(preset.name for preset in _CATALOG)


def resolve(name: str) -> Preset:
    """Return the preset registered under exactly ``name``."""
    try:
        return PRESETS[name]
    except KeyError:
        raise UnknownPreset(name, names()) from None


def with_overrides(
    preset: Preset,
    *,
    resolution_percent: Optional[int] = None,
    crf: Optional[int] = None,
    speed_tier: Optional[str] = None,
) -> Preset:
    """Return ``preset`` with any explicitly given parameter replaced.

    The result is validated like every catalog entry.
    """
    changes: Dict[str, object] = {}
    if resolution_percent is not None:
        changes["resolution_percent"] = resolution_percent
    if crf is not None:
        changes["crf"] = crf
    if speed_tier is not None:
        changes["speed_tier"] = SpeedTier(speed_tier)
    return dataclasses.replace(preset, **changes) if changes else preset


__all__ = ["PRESETS", "names", "resolve", "with_overrides"]
