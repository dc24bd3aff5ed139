"""Utilities for keeping per-run request and response logs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .files import ensure_dir, write_json, write_text


@dataclass(slots=True)
class StepLogPaths:
    """Convenience container with derived log file paths."""

    request_path: Path
    response_path: Path


class RunLogger:
    """Persists step requests and responses under ``runs/<run_id>``."""

    def __init__(self, base_dir: str | Path = "runs") -> None:
        self._base_dir = ensure_dir(base_dir)

    def step_paths(self, run_id: str, step_name: str) -> StepLogPaths:
        """Return the paths used for logging a specific step."""
        run_root = ensure_dir(self._base_dir / run_id)
        request_path = run_root / f"{step_name}-request.txt"
        response_path = run_root / f"{step_name}-response.json"
        return StepLogPaths(request_path=request_path, response_path=response_path)

    def log_request(self, run_id: str, step_name: str, request: str) -> None:
        """Persist what the step was asked to do (plain text)."""
        paths = self.step_paths(run_id, step_name)
        write_text(paths.request_path, request)

    def log_response(self, run_id: str, step_name: str, response: Any) -> None:
        """Persist the structured response."""
        paths = self.step_paths(run_id, step_name)
        write_json(paths.response_path, response)
