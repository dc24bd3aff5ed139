"""Command-line entry point for the slideshow optimizer."""

from __future__ import annotations

import argparse
import dataclasses
import sys

from slideopt import presets
from slideopt.config import PipelineConfig
from slideopt.errors import SlideshowError
from slideopt.pipeline import SlideshowOptimizer
from slideopt.types import RunState, SpeedTier

EXIT_OK = 0
EXIT_FAILURE = 1


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Turn a folder of JPEG images into an optimized slideshow video."
    )
    parser.add_argument("work_dir", nargs="?", help="Directory holding the source images.")
    parser.add_argument("-d", "--duration", type=float, help="Default seconds each image is shown.")
    parser.add_argument("-o", "--output", help="Output file name, written inside the working directory.")
    parser.add_argument("-f", "--framerate", type=int, help="Output frame rate.")
    parser.add_argument("-p", "--preset", help="Encoding preset name (see --list-presets).")
    parser.add_argument("--fade", type=float, help="Fade-in seconds for every image after the first (0 disables).")
    parser.add_argument(
        "-r", "--resolution", type=int, help="Override the preset scale, as a percentage of the first image."
    )
    parser.add_argument("--crf", type=int, help="Override the preset constant rate factor (0-51).")
    parser.add_argument(
        "--speed", choices=[tier.value for tier in SpeedTier], help="Override the preset encoder speed tier."
    )
    parser.add_argument("--two-pass", action="store_true", default=None, help="Use two-pass encoding.")
    parser.add_argument("-y", "--yes", action="store_true", help="Render without asking for confirmation.")
    parser.add_argument("--runs-dir", help="Directory for per-run step logs.")
    parser.add_argument("--list-presets", action="store_true", help="Print the preset catalog and exit.")
    args = parser.parse_args(argv)
    if not args.list_presets and not args.work_dir:
        parser.error("work_dir is required")
    return args


def build_config(args: argparse.Namespace, base: PipelineConfig | None = None) -> PipelineConfig:
    """Overlay explicit CLI options on the environment-derived config."""
    config = base or PipelineConfig.from_env()
    overrides = {
        "default_duration": args.duration,
        "output_name": args.output,
        "framerate": args.framerate,
        "preset_name": args.preset,
        "fade_seconds": args.fade,
        "two_pass": args.two_pass,
        "runs_dir": args.runs_dir,
        "resolution_percent": args.resolution,
        "crf": args.crf,
        "speed_tier": args.speed,
    }
    if args.yes:
        overrides["assume_yes"] = True
    return dataclasses.replace(config, **{key: value for key, value in overrides.items() if value is not None})


def prompt_confirmation(state: RunState) -> bool:
    """Interactive gate shown before any encode."""
    if state.durations_seeded:
        print(f"Created {state.durations_path} with one line per image.")
    print(f"Per-image durations are read from {state.durations_path}; edit it to change timing.")
    total = sum(state.durations)
    try:
        answer = input(f"Render {len(state.assets)} images ({total:g}s) now? [y/N] ")
    except EOFError:
        print()
        return False
    return answer.strip().lower() in {"y", "yes"}


def print_presets() -> None:
    for name in presets.names():
        preset = presets.resolve(name)
        print(
            f"{preset.name:<18} {preset.resolution_percent:>3}%  crf {preset.crf:<2}  "
            f"{preset.speed_tier.value:<9} {preset.max_bitrate_kbps}k max / {preset.buffer_size_kbps}k buf"
        )


def main(argv: list[str] | None = None) -> int:
    """Entry point used by ``python run.py``."""
    args = parse_args(sys.argv[1:] if argv is None else argv)
    if args.list_presets:
        print_presets()
        return EXIT_OK

    try:
        config = build_config(args)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    confirm = None if config.assume_yes else prompt_confirmation
    pipeline = SlideshowOptimizer(config, confirm=confirm)
    try:
        state = pipeline.run(args.work_dir)
    except SlideshowError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code

    if not state.confirmed:
        print(f"Render skipped. Edit {state.durations_path} and run again to render.")
        return EXIT_OK

    report = state.report
    print("Slideshow completed.")
    print(f"Final video: {report.path if report else state.output_path}")
    if report:
        dimensions = report.dimensions or state.canvas
        print(f"Size: {report.size_bytes / (1024 * 1024):.2f} MB, {dimensions}")
    print(f"Step logs stored under {config.runs_dir}/")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
