"""End-to-end regression tests for the slideshow pipeline."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from typing import List

from PIL import Image

from slideopt.config import PipelineConfig
from slideopt.encoder import EncoderInvocation, EncoderResult, OutputMode
from slideopt.errors import EncodeFailure, EncoderUnavailable, NoInputImages, UnknownPreset
from slideopt.nodes.compose import NegotiateCanvas, SynthesizeFilters
from slideopt.nodes.discover import DiscoverImages
from slideopt.nodes.durations import ConfirmRender, ResolveDurations
from slideopt.nodes.preflight import Preflight
from slideopt.nodes.video import EncodeVideo, ReportNode, VerifyOutput
from slideopt.pipeline import SlideshowOptimizer
from slideopt.types import CanvasDimensions, EncodeMode, SpeedTier


class RecordingEncoder:
    """Fake encoder capability that records invocations and writes placeholder output."""

    def __init__(self, fail_pass: int | None = None, installed: bool = True) -> None:
        self.fail_pass = fail_pass
        self.installed = installed
        self.invocations: List[EncoderInvocation] = []

    def available(self) -> bool:
        return self.installed

    def describe(self, invocation: EncoderInvocation) -> str:
        return f"fake-encoder pass={invocation.pass_number} mode={invocation.mode.value}"

    def invoke(self, invocation: EncoderInvocation) -> EncoderResult:
        self.invocations.append(invocation)
        if invocation.pass_number is not None and invocation.pass_number == self.fail_pass:
            return EncoderResult(exit_status=1, log_text="simulated failure")
        if invocation.mode is OutputMode.WRITE:
            invocation.output_path.write_bytes(b"fake video payload")
        return EncoderResult(exit_status=0)


def _create_images(directory: Path, sizes: list[tuple[int, int]]) -> None:
    """Write small JPEG stand-ins for slideshow photos."""
    for index, size in enumerate(sizes):
        Image.new("RGB", size, (30 * index % 255, 90, 160)).save(directory / f"photo{index + 1}.jpg", "JPEG")


class PipelineIntegrationTest(unittest.TestCase):
    """Covers the top-level pipeline behaviour."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.work_dir = self.root / "album"
        self.work_dir.mkdir()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _config(self, **overrides) -> PipelineConfig:
        values = {
            "runs_dir": str(self.root / "runs"),
            "min_free_mb": 0,
            "assume_yes": True,
            "default_duration": 2.0,
        }
        values.update(overrides)
        return PipelineConfig(**values)

    def test_pipeline_run(self) -> None:
        """A confirmed run renders, verifies and cleans the work area."""
        _create_images(self.work_dir, [(64, 48), (48, 64), (64, 48)])
        encoder = RecordingEncoder()
        pipeline = SlideshowOptimizer(self._config(), encoder=encoder, verbose=False)

        state = pipeline.run(self.work_dir)

        self.assertTrue(state.confirmed)
        self.assertEqual(len(state.assets), 3)
        self.assertEqual(state.canvas, CanvasDimensions(48, 36))
        self.assertEqual(len(state.graph.nodes), 3)
        self.assertIsNone(state.graph.nodes[0].fade)
        self.assertIsNotNone(state.graph.nodes[1].fade)
        self.assertEqual(state.job.mode, EncodeMode.SINGLE_PASS)
        self.assertEqual(len(encoder.invocations), 1)

        output = self.work_dir / "slideshow.mp4"
        self.assertEqual(Path(state.output_path).resolve(), output.resolve())
        self.assertTrue(output.is_file())
        self.assertEqual(state.report.size_bytes, len(b"fake video payload"))
        self.assertFalse((self.work_dir / ".slideopt").exists())

        durations = (self.work_dir / "durations.txt").read_text(encoding="utf-8")
        self.assertIn("image001=2", durations)
        self.assertIn("image003=2", durations)
        self.assertTrue(any((self.root / "runs").rglob("report.txt")))

    def test_declined_confirmation_skips_encode(self) -> None:
        _create_images(self.work_dir, [(64, 48), (64, 48)])
        encoder = RecordingEncoder()
        seen = []

        def decline(state) -> bool:
            seen.append((state.durations_seeded, list(state.durations)))
            return False

        pipeline = SlideshowOptimizer(self._config(), encoder=encoder, confirm=decline, verbose=False)
        state = pipeline.run(self.work_dir)

        self.assertFalse(state.confirmed)
        self.assertEqual(seen, [(True, [2.0, 2.0])])
        self.assertEqual(encoder.invocations, [])
        self.assertIsNone(state.graph)
        self.assertFalse((self.work_dir / "slideshow.mp4").exists())
        self.assertTrue((self.work_dir / "durations.txt").is_file())

    def test_edited_durations_reach_the_encoder(self) -> None:
        _create_images(self.work_dir, [(64, 48), (64, 48), (64, 48)])
        (self.work_dir / "durations.txt").write_text("image001=5\nimage002=oops\n", encoding="utf-8")
        encoder = RecordingEncoder()

        state = SlideshowOptimizer(self._config(), encoder=encoder, verbose=False).run(self.work_dir)

        self.assertFalse(state.durations_seeded)
        self.assertEqual(state.durations, [5.0, 2.0, 2.0])
        clips = encoder.invocations[0].graph.clips
        self.assertEqual([clip.display_seconds for clip in clips], [5.0, 2.0, 2.0])
        self.assertEqual(state.graph.total_duration, 9.0)

    def test_two_pass_failure_leaves_no_output(self) -> None:
        _create_images(self.work_dir, [(64, 48), (64, 48)])
        encoder = RecordingEncoder(fail_pass=2)
        pipeline = SlideshowOptimizer(self._config(two_pass=True), encoder=encoder, verbose=False)

        with self.assertRaises(EncodeFailure) as ctx:
            pipeline.run(self.work_dir)

        self.assertEqual(ctx.exception.pass_, "pass2")
        self.assertEqual(len(encoder.invocations), 2)
        self.assertFalse((self.work_dir / "slideshow.mp4").exists())
        self.assertFalse((self.work_dir / "slideshow.partial.mp4").exists())
        self.assertFalse((self.work_dir / ".slideopt").exists())

    def test_preset_overrides_reach_canvas_and_encoder(self) -> None:
        _create_images(self.work_dir, [(64, 48), (64, 48)])
        encoder = RecordingEncoder()
        config = self._config(resolution_percent=50, crf=30, speed_tier="veryfast")

        state = SlideshowOptimizer(config, encoder=encoder, verbose=False).run(self.work_dir)

        self.assertEqual(state.preset.name, "balanced-web")
        self.assertEqual(state.canvas, CanvasDimensions(32, 24))
        preset = encoder.invocations[0].preset
        self.assertEqual(preset.crf, 30)
        self.assertEqual(preset.speed_tier, SpeedTier.VERYFAST)
        self.assertEqual(preset.max_bitrate_kbps, 2000)

    def test_no_images(self) -> None:
        (self.work_dir / "notes.txt").write_text("not an image", encoding="utf-8")
        _create_images(self.root, [(64, 48)])
        with self.assertRaises(NoInputImages):
            SlideshowOptimizer(self._config(), encoder=RecordingEncoder(), verbose=False).run(self.work_dir)

    def test_unknown_preset_fails_before_discovery(self) -> None:
        _create_images(self.work_dir, [(64, 48)])
        pipeline = SlideshowOptimizer(self._config(preset_name="cinema"), encoder=RecordingEncoder(), verbose=False)
        with self.assertRaises(UnknownPreset):
            pipeline.run(self.work_dir)
        self.assertFalse((self.work_dir / "durations.txt").exists())

    def test_missing_encoder(self) -> None:
        _create_images(self.work_dir, [(64, 48)])
        pipeline = SlideshowOptimizer(self._config(), encoder=RecordingEncoder(installed=False), verbose=False)
        with self.assertRaises(EncoderUnavailable):
            pipeline.run(self.work_dir)


class NodeDocumentationTest(unittest.TestCase):
    def test_every_pipeline_node_is_documented(self) -> None:
        for node_cls in (
            Preflight,
            DiscoverImages,
            ResolveDurations,
            ConfirmRender,
            NegotiateCanvas,
            SynthesizeFilters,
            EncodeVideo,
            VerifyOutput,
            ReportNode,
        ):
            with self.subTest(node=node_cls.__name__):
                self.assertTrue(node_cls.__doc__)
                self.assertTrue(node_cls.run.__doc__)


if __name__ == "__main__":
    unittest.main()
