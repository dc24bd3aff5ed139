"""Per-image filter chain synthesis and filtergraph rendering."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .errors import DimensionProbeFailure, EmptySequence
from .types import CanvasDimensions, ClipSource, CompositionGraph, FadeIn, FilterNode, ImageAsset

PAD_COLOR = "white"
OUTPUT_LABEL = "outv"


def format_seconds(value: float) -> str:
    """Render seconds for ffmpeg options without exponent notation."""
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return text or "0"


def _even_floor(value: int) -> int:
    return value - value % 2


def fit_within(
    native_width: int, native_height: int, canvas: CanvasDimensions, asset: Optional[str] = None
) -> Tuple[int, int]:
    """Largest aspect-preserving size inside ``canvas`` that does not exceed native size.

    Raises DimensionProbeFailure when either side would round down below two pixels.
    """
    if native_width <= canvas.width and native_height <= canvas.height:
        width, height = native_width, native_height
    elif native_width * canvas.height >= native_height * canvas.width:
        width = canvas.width
        height = native_height * canvas.width // native_width
    else:
        height = canvas.height
        width = native_width * canvas.height // native_height
    scaled = _even_floor(width), _even_floor(height)
    if min(scaled) < 2:
        raise DimensionProbeFailure(
            f"native size {native_width}x{native_height} is too thin to fit {canvas}", asset=asset
        )
    return scaled


def synthesize(
    assets: Sequence[ImageAsset],
    canvas: CanvasDimensions,
    fade_seconds: float,
    durations: Sequence[float],
) -> CompositionGraph:
    """Build the composition graph for ``assets`` in sequence order.

    ``durations`` holds the display seconds of each asset, aligned by position.
    """
    if not assets:
        raise EmptySequence()
    if len(durations) != len(assets):
        raise ValueError(f"expected {len(assets)} durations, got {len(durations)}")
    if fade_seconds < 0:
        raise ValueError("fade_seconds must be zero or positive")

    ordered = sorted(zip(assets, durations), key=lambda pair: pair[0].sequence_index)
    nodes: List[FilterNode] = []
    clips: List[ClipSource] = []
    for position, (asset, seconds) in enumerate(ordered):
        if asset.native_width <= 0 or asset.native_height <= 0:
            raise DimensionProbeFailure(
                f"invalid native size {asset.native_width}x{asset.native_height}",
                asset=asset.identifier,
            )
        scaled = fit_within(asset.native_width, asset.native_height, canvas, asset=asset.identifier)
        offset = ((canvas.width - scaled[0]) // 2, (canvas.height - scaled[1]) // 2)
        fade = None
        if fade_seconds > 0 and position > 0:
            fade = FadeIn(duration_seconds=min(fade_seconds, seconds))
        nodes.append(
            FilterNode(
                input_index=position,
                scale_target=scaled,
                pad_target=canvas,
                pad_offset=offset,
                fill_color=PAD_COLOR,
                label=f"v{position}",
                fade=fade,
            )
        )
        clips.append(ClipSource(path=asset.source_path, display_seconds=seconds))

    return CompositionGraph(
        nodes=tuple(nodes),
        clips=tuple(clips),
        canvas=canvas,
        output_label=OUTPUT_LABEL,
    )


def render_node(node: FilterNode) -> str:
    """Return the filter chain text for a single node."""
    width, height = node.scale_target
    x, y = node.pad_offset
    chain = (
        f"[{node.input_index}:v]scale={width}:{height},setsar=1,"
        f"pad={node.pad_target.width}:{node.pad_target.height}:{x}:{y}:color={node.fill_color}"
    )
    if node.fade is not None:
        chain += (
            f",fade=t=in:st={format_seconds(node.fade.start_offset)}"
            f":d={format_seconds(node.fade.duration_seconds)}"
        )
    return f"{chain}[{node.label}]"


def render_graph(graph: CompositionGraph) -> str:
    """Return the complete ``-filter_complex`` text for ``graph``."""
    chains = [render_node(node) for node in graph.nodes]
    inputs = "".join(f"[{label}]" for label in graph.concat_inputs)
    chains.append(f"{inputs}concat=n={len(graph.nodes)}:v=1:a=0,format=yuv420p[{graph.output_label}]")
    return ";".join(chains)


__all__ = ["PAD_COLOR", "fit_within", "format_seconds", "render_graph", "render_node", "synthesize"]
