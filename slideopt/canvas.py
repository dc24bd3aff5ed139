"""Output canvas negotiation."""

from __future__ import annotations

from .errors import DimensionProbeFailure
from .types import CanvasDimensions, ImageAsset, Preset


def _scaled_even(native: int, percent: int) -> int:
    scaled = native * percent // 100
    return scaled - scaled % 2


def negotiate(first_asset: ImageAsset, preset: Preset) -> CanvasDimensions:
    """Derive the canvas from the first image only.

    Later images are fitted and padded into this canvas; they never change it.
    """
    if first_asset.native_width <= 0 or first_asset.native_height <= 0:
        raise DimensionProbeFailure(
            f"invalid native size {first_asset.native_width}x{first_asset.native_height}",
            asset=first_asset.identifier,
        )
    width = _scaled_even(first_asset.native_width, preset.resolution_percent)
    height = _scaled_even(first_asset.native_height, preset.resolution_percent)
    if width < 2 or height < 2:
        raise DimensionProbeFailure(
            f"{preset.resolution_percent}% of {first_asset.native_width}x{first_asset.native_height} "
            "leaves no usable canvas",
            asset=first_asset.identifier,
        )
    return CanvasDimensions(width=width, height=height)
