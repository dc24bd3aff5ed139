"""External encoder driver and single/two-pass orchestration."""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from .errors import EncodeFailure, OutputMissing
from .filters import format_seconds, render_graph
from .types import CompositionGraph, EncodeJob, EncodeMode, EncodePass, Preset


class OutputMode(str, Enum):
    DISCARD = "discard"
    WRITE = "write"


@dataclass(frozen=True, slots=True)
class EncoderInvocation:
    """One request to the external encoder."""

    graph: CompositionGraph
    framerate: int
    preset: Preset
    mode: OutputMode
    output_path: Optional[Path] = None
    pass_number: Optional[int] = None
    stats_path: Optional[Path] = None


@dataclass(frozen=True, slots=True)
class EncoderResult:
    exit_status: int
    log_text: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_status == 0

    def tail(self, lines: int = 5) -> str:
        return "\n".join(self.log_text.strip().splitlines()[-lines:])


class Encoder(Protocol):
    """Capability able to render a composition graph into a video file."""

    def available(self) -> bool:
        ...

    def describe(self, invocation: EncoderInvocation) -> str:
        ...

    def invoke(self, invocation: EncoderInvocation) -> EncoderResult:
        ...


class FfmpegEncoder:
    """Drives the ``ffmpeg`` binary with a structured argument list."""

    def __init__(self, binary: str = "ffmpeg") -> None:
        self._binary = binary

    def available(self) -> bool:
        return shutil.which(self._binary) is not None

    def build_command(self, invocation: EncoderInvocation) -> List[str]:
        """Translate an invocation into ffmpeg arguments."""
        preset = invocation.preset
        framerate = str(invocation.framerate)
        cmd = [self._binary, "-y", "-hide_banner", "-loglevel", "info"]
        for clip in invocation.graph.clips:
            cmd += [
                "-loop",
                "1",
                "-framerate",
                framerate,
                "-t",
                format_seconds(clip.display_seconds),
                "-i",
                clip.path,
            ]
        cmd += [
            "-filter_complex",
            render_graph(invocation.graph),
            "-map",
            f"[{invocation.graph.output_label}]",
            "-c:v",
            "libx264",
            "-preset",
            preset.speed_tier.value,
        ]
        if invocation.pass_number is None:
            cmd += ["-crf", str(preset.crf)]
        else:
            # x264 rejects CRF in multi-pass mode; both passes target the same average bitrate.
            cmd += ["-b:v", f"{preset.max_bitrate_kbps}k"]
        cmd += [
            "-maxrate",
            f"{preset.max_bitrate_kbps}k",
            "-bufsize",
            f"{preset.buffer_size_kbps}k",
            "-pix_fmt",
            "yuv420p",
            "-tune",
            "stillimage",
            "-r",
            framerate,
        ]
        if invocation.pass_number is not None:
            if invocation.stats_path is None:
                raise ValueError("multi-pass invocations require a stats path")
            cmd += ["-pass", str(invocation.pass_number), "-passlogfile", str(invocation.stats_path)]

        if invocation.mode is OutputMode.DISCARD:
            cmd += ["-an", "-f", "null", os.devnull]
        else:
            if invocation.output_path is None:
                raise ValueError("write invocations require an output path")
            cmd += ["-f", "mp4", "-movflags", "+faststart", str(invocation.output_path)]
        return cmd

    def describe(self, invocation: EncoderInvocation) -> str:
        return shlex.join(self.build_command(invocation))

    def invoke(self, invocation: EncoderInvocation) -> EncoderResult:
        """Run ffmpeg to completion; a missing binary is reported as a failed run."""
        cmd = self.build_command(invocation)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError:
            return EncoderResult(exit_status=127, log_text=f"{self._binary}: command not found")
        return EncoderResult(exit_status=result.returncode, log_text=result.stderr or result.stdout)


InvocationObserver = Callable[[EncodePass, EncoderInvocation, EncoderResult], None]


class EncodeOrchestrator:
    """Runs the encoder once or twice and promotes the result to the target path.

    Output is written beside the target under a ``.partial`` name and moved into
    place only after the final invocation succeeds, so a failed run never leaves
    something that looks like a finished slideshow.
    """

    def __init__(self, encoder: Encoder, observer: InvocationObserver | None = None) -> None:
        self._encoder = encoder
        self._observer = observer

    def run(self, graph: CompositionGraph, job: EncodeJob) -> Path:
        target = Path(job.output_target)
        partial = partial_path(target)
        try:
            if job.mode is EncodeMode.SINGLE_PASS:
                self._invoke(
                    EncodePass.SINGLE,
                    EncoderInvocation(graph, job.framerate, job.preset, OutputMode.WRITE, output_path=partial),
                    job,
                )
            else:
                self._invoke(
                    EncodePass.PASS1,
                    EncoderInvocation(
                        graph,
                        job.framerate,
                        job.preset,
                        OutputMode.DISCARD,
                        pass_number=1,
                        stats_path=job.pass_stats_path,
                    ),
                    job,
                )
                self._invoke(
                    EncodePass.PASS2,
                    EncoderInvocation(
                        graph,
                        job.framerate,
                        job.preset,
                        OutputMode.WRITE,
                        output_path=partial,
                        pass_number=2,
                        stats_path=job.pass_stats_path,
                    ),
                    job,
                )
            if not partial.is_file():
                raise OutputMissing(str(target), "was not written by the encoder")
            os.replace(partial, target)
        finally:
            partial.unlink(missing_ok=True)
            if job.pass_stats_path is not None:
                remove_stats(job.pass_stats_path)
        return target

    def _invoke(self, pass_: EncodePass, invocation: EncoderInvocation, job: EncodeJob) -> None:
        result = self._encoder.invoke(invocation)
        if self._observer is not None:
            self._observer(pass_, invocation, result)
        if not result.ok:
            raise EncodeFailure(
                pass_.value,
                job.preset.name,
                f"exit status {result.exit_status}; {result.tail() or 'no encoder output'}",
            )


def partial_path(target: Path) -> Path:
    return target.with_name(f"{target.stem}.partial{target.suffix}")


def remove_stats(stats_path: Path) -> None:
    """Delete the stats file and the sidecars x264 derives from its name."""
    stats_path = Path(stats_path)
    if not stats_path.parent.is_dir():
        return
    for candidate in stats_path.parent.glob(f"{stats_path.name}*"):
        if candidate.is_file():
            candidate.unlink(missing_ok=True)


__all__ = [
    "EncodeOrchestrator",
    "Encoder",
    "EncoderInvocation",
    "EncoderResult",
    "FfmpegEncoder",
    "OutputMode",
    "partial_path",
    "remove_stats",
]
