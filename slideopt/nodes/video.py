"""Nodes handling the encode, output verification and the run report."""

from __future__ import annotations

from dataclasses import asdict
from functools import partial
from pathlib import Path
from typing import Any, Dict, List

from ..config import PipelineConfig
from ..encoder import EncodeOrchestrator, Encoder, EncoderInvocation, EncoderResult
from ..types import EncodeJob, EncodeMode, EncodePass, RunState
from ..verify import ffprobe_dimensions, verify
from ..utils.files import write_text
from .base import BaseNode
from .discover import WORK_AREA_NAME

PASS_LOG_NAME = "passlog"


class EncodeVideo(BaseNode):
    """Drives the external encoder in single- or two-pass mode."""

    def __init__(self, run_id: str, logger, config: PipelineConfig, encoder: Encoder) -> None:
        super().__init__(name="EncodeVideo", run_id=run_id, logger=logger)
        self._config = config
        self._encoder = encoder

    def run(self, state: RunState) -> RunState:
        """Render ``state.graph`` to the configured output file."""
        if state.graph is None or state.preset is None:
            raise ValueError("Composition graph and preset are required before encoding.")

        work_dir = Path(state.work_dir or ".")
        two_pass = self._config.two_pass
        job = EncodeJob(
            mode=EncodeMode.TWO_PASS if two_pass else EncodeMode.SINGLE_PASS,
            preset=state.preset,
            framerate=self._config.framerate,
            output_target=work_dir / self._config.output_name,
            pass_stats_path=work_dir / WORK_AREA_NAME / PASS_LOG_NAME if two_pass else None,
        )
        state.job = job

        invocations: List[Dict[str, Any]] = []

        def _record(pass_: EncodePass, invocation: EncoderInvocation, result: EncoderResult) -> None:
            invocations.append(
                {
                    "pass": pass_.value,
                    "command": self._encoder.describe(invocation),
                    "exit_status": result.exit_status,
                    "log": result.log_text,
                }
            )

        orchestrator = EncodeOrchestrator(self._encoder, observer=_record)
        try:
            output = orchestrator.run(state.graph, job)
        finally:
            self.log_request("\n\n".join(entry["command"] for entry in invocations))
            self.log_response({"mode": job.mode.value, "invocations": invocations})

        state.output_path = str(output)
        return state


class VerifyOutput(BaseNode):
    """Confirms the encoder produced a non-empty artifact."""

    def __init__(self, run_id: str, logger, ffprobe_bin: str = "ffprobe") -> None:
        super().__init__(name="VerifyOutput", run_id=run_id, logger=logger)
        self._probe = partial(ffprobe_dimensions, binary=ffprobe_bin)

    def run(self, state: RunState) -> RunState:
        """Populate ``state.report`` with the artifact size and dimensions."""
        self.log_request(f"Verifying {state.output_path}")
        state.report = verify(state.output_path or "", probe=self._probe)
        self.log_response(asdict(state.report))
        return state


class ReportNode(BaseNode):
    """Aggregates and writes the final run report."""

    def __init__(self, run_id: str, logger) -> None:
        super().__init__(name="Report", run_id=run_id, logger=logger)

    def run(self, state: RunState) -> RunState:
        """Write a short human-readable summary next to the step logs."""
        report = state.report
        dimensions = report.dimensions if report and report.dimensions else state.canvas
        lines = [
            f"output: {report.path if report else 'N/A'}",
            f"size_bytes: {report.size_bytes if report else 0}",
            f"dimensions: {dimensions or 'unknown'}",
            f"preset: {state.preset.name if state.preset else 'N/A'}",
            f"mode: {state.job.mode.value if state.job else 'N/A'}",
            f"images: {len(state.assets)}",
            f"duration_seconds: {state.graph.total_duration if state.graph else 0:g}",
        ]
        report_path = self.logger.step_paths(self.run_id, self.name).request_path.with_name("report.txt")
        write_text(report_path, "\n".join(lines) + "\n")

        self.log_request("Generating final report.")
        self.log_response({"report_path": str(report_path)})
        return state
