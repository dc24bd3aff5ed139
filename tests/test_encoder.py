"""Encoder command construction and single/two-pass orchestration."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from typing import List

from slideopt import presets
from slideopt.encoder import (
    EncodeOrchestrator,
    EncoderInvocation,
    EncoderResult,
    FfmpegEncoder,
    OutputMode,
    partial_path,
)
from slideopt.errors import EncodeFailure, OutputMissing
from slideopt.filters import render_graph, synthesize
from slideopt.types import CanvasDimensions, EncodeJob, EncodeMode, ImageAsset

_PASS_NAMES = {None: "single", 1: "pass1", 2: "pass2"}


class FakeEncoder:
    """In-process stand-in for ffmpeg that writes placeholder artifacts."""

    def __init__(self, fail: tuple[str, ...] = (), write_output: bool = True) -> None:
        self.fail = fail
        self.write_output = write_output
        self.invocations: List[EncoderInvocation] = []

    def available(self) -> bool:
        return True

    def describe(self, invocation: EncoderInvocation) -> str:
        return f"fake {_PASS_NAMES[invocation.pass_number]}"

    def invoke(self, invocation: EncoderInvocation) -> EncoderResult:
        self.invocations.append(invocation)
        if invocation.stats_path is not None:
            Path(f"{invocation.stats_path}-0.log").write_text("stats", encoding="utf-8")
        if invocation.mode is OutputMode.WRITE and self.write_output:
            invocation.output_path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
        if _PASS_NAMES[invocation.pass_number] in self.fail:
            return EncoderResult(exit_status=1, log_text="Error while encoding\nConversion failed!")
        return EncoderResult(exit_status=0, log_text="frame=  50 fps=0.0")


def _graph(names=("image001.jpg", "image002.jpg")):
    assets = [
        ImageAsset(sequence_index=i, source_path=f"/work/{name}", native_width=1920, native_height=1080)
        for i, name in enumerate(names)
    ]
    return synthesize(assets, CanvasDimensions(960, 540), 0.5, [2.0] * len(assets))


def _job(tmp: Path, mode: EncodeMode) -> EncodeJob:
    return EncodeJob(
        mode=mode,
        preset=presets.resolve("balanced-web"),
        framerate=25,
        output_target=tmp / "slideshow.mp4",
        pass_stats_path=tmp / "passlog" if mode is EncodeMode.TWO_PASS else None,
    )


class FfmpegCommandTest(unittest.TestCase):
    def setUp(self) -> None:
        self.encoder = FfmpegEncoder("ffmpeg")
        self.preset = presets.resolve("balanced-web")

    def test_single_pass_uses_capped_crf(self) -> None:
        cmd = self.encoder.build_command(
            EncoderInvocation(_graph(), 25, self.preset, OutputMode.WRITE, output_path=Path("/out/show.mp4"))
        )
        self.assertEqual(cmd[0], "ffmpeg")
        self.assertEqual(cmd[cmd.index("-crf") + 1], "24")
        self.assertEqual(cmd[cmd.index("-maxrate") + 1], "2000k")
        self.assertEqual(cmd[cmd.index("-bufsize") + 1], "4000k")
        self.assertEqual(cmd[cmd.index("-preset") + 1], "medium")
        self.assertEqual(cmd[cmd.index("-map") + 1], "[outv]")
        self.assertNotIn("-pass", cmd)
        self.assertEqual(cmd[-1], "/out/show.mp4")
        self.assertEqual(cmd.count("-loop"), 2)
        self.assertEqual(cmd[cmd.index("-t") + 1], "2")

    def test_two_pass_invocations_share_parameters(self) -> None:
        graph = _graph()
        stats = Path("/tmp/passlog")
        first = self.encoder.build_command(
            EncoderInvocation(graph, 25, self.preset, OutputMode.DISCARD, pass_number=1, stats_path=stats)
        )
        second = self.encoder.build_command(
            EncoderInvocation(
                graph,
                25,
                self.preset,
                OutputMode.WRITE,
                output_path=Path("/out/show.mp4"),
                pass_number=2,
                stats_path=stats,
            )
        )
        for cmd, number in ((first, "1"), (second, "2")):
            self.assertNotIn("-crf", cmd)
            self.assertEqual(cmd[cmd.index("-b:v") + 1], "2000k")
            self.assertEqual(cmd[cmd.index("-pass") + 1], number)
            self.assertEqual(cmd[cmd.index("-passlogfile") + 1], str(stats))
            self.assertEqual(cmd[cmd.index("-filter_complex") + 1], render_graph(graph))
        self.assertEqual(first[first.index("-f") + 1], "null")
        self.assertEqual(first[: first.index("-pass")], second[: second.index("-pass")])

    def test_extensionless_output_names_the_container(self) -> None:
        target = Path("/out/slideshow")
        cmd = self.encoder.build_command(
            EncoderInvocation(_graph(), 25, self.preset, OutputMode.WRITE, output_path=partial_path(target))
        )
        self.assertEqual(cmd[-1], "/out/slideshow.partial")
        self.assertEqual(cmd[cmd.index("-f") + 1], "mp4")
        self.assertLess(cmd.index("-f"), len(cmd) - 1)

    def test_file_names_stay_single_arguments(self) -> None:
        tricky = "it's a \"test\"; rm -rf $HOME.jpg"
        cmd = self.encoder.build_command(
            EncoderInvocation(_graph((tricky,)), 25, self.preset, OutputMode.WRITE, output_path=Path("o.mp4"))
        )
        self.assertIn(f"/work/{tricky}", cmd)

    def test_missing_binary_reports_failure(self) -> None:
        encoder = FfmpegEncoder("slideopt-no-such-ffmpeg")
        self.assertFalse(encoder.available())
        with tempfile.TemporaryDirectory() as tmp:
            result = encoder.invoke(
                EncoderInvocation(_graph(), 25, self.preset, OutputMode.WRITE, output_path=Path(tmp) / "o.mp4")
            )
        self.assertFalse(result.ok)
        self.assertEqual(result.exit_status, 127)


class OrchestratorTest(unittest.TestCase):
    def test_single_pass_promotes_output(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            encoder = FakeEncoder()
            output = EncodeOrchestrator(encoder).run(_graph(), _job(tmp_path, EncodeMode.SINGLE_PASS))

            self.assertEqual(output, tmp_path / "slideshow.mp4")
            self.assertTrue(output.is_file())
            self.assertFalse(partial_path(output).exists())
            self.assertEqual(len(encoder.invocations), 1)

    def test_single_pass_failure(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            with self.assertRaises(EncodeFailure) as ctx:
                EncodeOrchestrator(FakeEncoder(fail=("single",))).run(
                    _graph(), _job(tmp_path, EncodeMode.SINGLE_PASS)
                )
            self.assertEqual(ctx.exception.pass_, "single")
            self.assertIn("balanced-web", str(ctx.exception))
            self.assertIn("Conversion failed!", str(ctx.exception))
            self.assertEqual(list(tmp_path.iterdir()), [])

    def test_two_pass_success_cleans_stats(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            encoder = FakeEncoder()
            observed = []
            orchestrator = EncodeOrchestrator(encoder, observer=lambda p, inv, res: observed.append(p.value))
            output = orchestrator.run(_graph(), _job(tmp_path, EncodeMode.TWO_PASS))

            self.assertEqual(observed, ["pass1", "pass2"])
            first, second = encoder.invocations
            self.assertIs(first.graph, second.graph)
            self.assertEqual(first.preset, second.preset)
            self.assertEqual(first.mode, OutputMode.DISCARD)
            self.assertEqual(second.mode, OutputMode.WRITE)
            self.assertEqual([path.name for path in tmp_path.iterdir()], [output.name])

    def test_pass1_failure_skips_pass2(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            encoder = FakeEncoder(fail=("pass1",))
            with self.assertRaises(EncodeFailure) as ctx:
                EncodeOrchestrator(encoder).run(_graph(), _job(tmp_path, EncodeMode.TWO_PASS))
            self.assertEqual(ctx.exception.pass_, "pass1")
            self.assertEqual(len(encoder.invocations), 1)
            self.assertEqual(list(tmp_path.iterdir()), [])

    def test_pass2_failure_does_not_promote_output(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            encoder = FakeEncoder(fail=("pass2",))
            with self.assertRaises(EncodeFailure) as ctx:
                EncodeOrchestrator(encoder).run(_graph(), _job(tmp_path, EncodeMode.TWO_PASS))
            self.assertEqual(ctx.exception.pass_, "pass2")
            self.assertEqual(len(encoder.invocations), 2)
            self.assertFalse((tmp_path / "slideshow.mp4").exists())
            self.assertEqual(list(tmp_path.iterdir()), [])

    def test_clean_exit_without_output_is_reported(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(OutputMissing):
                EncodeOrchestrator(FakeEncoder(write_output=False)).run(
                    _graph(), _job(Path(tmp), EncodeMode.SINGLE_PASS)
                )

    def test_two_pass_job_requires_stats_path(self) -> None:
        with self.assertRaises(ValueError):
            EncodeJob(
                mode=EncodeMode.TWO_PASS,
                preset=presets.resolve("mobile"),
                framerate=25,
                output_target=Path("out.mp4"),
            )


if __name__ == "__main__":
    unittest.main()
