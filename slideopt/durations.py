"""Per-image display durations and the editable override store."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Iterable, List, Mapping, Sequence, Tuple

from .errors import InvalidDurationOverride
from .types import DurationOverrideMap, ImageAsset
from .utils.files import atomic_write


def parse_seconds(raw: str) -> float:
    """Parse a stored override into seconds, rejecting non-positive values."""
    try:
        value = float(raw.strip())
    except (AttributeError, ValueError) as exc:
        raise InvalidDurationOverride(f"not a number: {raw!r}") from exc
    if not math.isfinite(value) or value <= 0:
        raise InvalidDurationOverride(f"not a positive duration: {raw!r}")
    return value


def duration_for(asset: ImageAsset, overrides: Mapping[str, str], default_seconds: float) -> float:
    """Return the display duration for ``asset``; never fails."""
    raw = overrides.get(asset.identifier)
    if raw is None:
        return default_seconds
    try:
        return parse_seconds(raw)
    except InvalidDurationOverride:
        return default_seconds


def resolve_all(
    assets: Sequence[ImageAsset],
    overrides: Mapping[str, str],
    default_seconds: float,
) -> Tuple[List[float], List[str]]:
    """Resolve every asset in order.

    Returns the durations together with the identifiers whose stored value was
    present but unusable, so callers can report the fallback.
    """
    durations: List[float] = []
    invalid: List[str] = []
    for asset in assets:
        raw = overrides.get(asset.identifier)
        if raw is not None:
            try:
                parse_seconds(raw)
            except InvalidDurationOverride:
                invalid.append(asset.identifier)
        durations.append(duration_for(asset, overrides, default_seconds))
    return durations, invalid


class DurationOverrideStore:
    """Text file of ``identifier=seconds`` lines the operator may hand-edit."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> DurationOverrideMap:
        """Read raw entries; a missing file is an empty map.

        Bytes that are not UTF-8 are replaced, so a hand-edited file in a legacy
        encoding still yields its valid lines.
        """
        if not self.exists():
            return {}
        entries: DurationOverrideMap = {}
        text = self.path.read_bytes().decode("utf-8", errors="replace")
        for line in text.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or "=" not in stripped:
                continue
            key, _, value = stripped.partition("=")
            key = key.strip()
            if key:
                entries[key] = value.strip()
        return entries

    def seed(self, assets: Iterable[ImageAsset], default_seconds: float) -> bool:
        """Write ``identifier=default`` for every asset unless the store exists.

        Returns True when the file was created by this call.
        """
        if self.exists():
            return False
        lines = [
            "# Display duration in seconds per image; edit and re-run to apply.",
            *(f"{asset.identifier}={default_seconds:g}" for asset in assets),
        ]
        atomic_write(self.path, ("\n".join(lines) + "\n").encode("utf-8"))
        return True


__all__ = ["DurationOverrideStore", "duration_for", "parse_seconds", "resolve_all"]
