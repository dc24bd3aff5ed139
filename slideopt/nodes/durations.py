"""Nodes around per-image durations and the operator confirmation gate."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

from ..durations import DurationOverrideStore, resolve_all
from ..types import RunState
from .base import BaseNode

DURATIONS_FILE_NAME = "durations.txt"

ConfirmCallback = Callable[[RunState], bool]


class ResolveDurations(BaseNode):
    """Seeds the override store on first use and resolves every asset's duration."""

    def __init__(self, run_id: str, logger, default_seconds: float) -> None:
        super().__init__(name="ResolveDurations", run_id=run_id, logger=logger)
        self._default_seconds = default_seconds

    def run(self, state: RunState) -> RunState:
        """Populate ``state.durations`` in sequence order."""
        store = DurationOverrideStore(Path(state.work_dir or ".") / DURATIONS_FILE_NAME)
        seeded = store.seed(state.assets, self._default_seconds)
        overrides = store.load()
        durations, invalid = resolve_all(state.assets, overrides, self._default_seconds)

        state.durations_path = str(store.path)
        state.durations_seeded = seeded
        state.durations = durations

        self.log_request(json.dumps({"store": str(store.path), "default_seconds": self._default_seconds}))
        self.log_response(
            {
                "seeded": seeded,
                "durations": {asset.identifier: seconds for asset, seconds in zip(state.assets, durations)},
                "invalid_overrides": invalid,
                "total_seconds": sum(durations),
            }
        )
        return state


class ConfirmRender(BaseNode):
    """Asks the operator whether to render with the current durations."""

    def __init__(self, run_id: str, logger, confirm: ConfirmCallback) -> None:
        super().__init__(name="ConfirmRender", run_id=run_id, logger=logger)
        self._confirm = confirm

    def run(self, state: RunState) -> RunState:
        """Record the operator decision in ``state.confirmed``."""
        self.log_request(f"Confirm render of {len(state.assets)} images using {state.durations_path}")
        state.confirmed = bool(self._confirm(state))
        self.log_response({"confirmed": state.confirmed})
        return state
