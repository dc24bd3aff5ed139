"""Nodes that fix the canvas and build the composition graph."""

from __future__ import annotations

import json
from dataclasses import asdict

from ..canvas import negotiate
from ..errors import EmptySequence
from ..filters import render_graph, synthesize
from ..types import RunState
from .base import BaseNode


class NegotiateCanvas(BaseNode):
    """Fixes the output canvas for the run."""

    def __init__(self, run_id: str, logger) -> None:
        super().__init__(name="NegotiateCanvas", run_id=run_id, logger=logger)

    def run(self, state: RunState) -> RunState:
        """Size the canvas from the first image in sequence order."""
        if not state.assets:
            raise EmptySequence()
        if state.preset is None:
            raise ValueError("Preset must be resolved before negotiating the canvas.")
        first = min(state.assets, key=lambda asset: asset.sequence_index)
        state.canvas = negotiate(first, state.preset)

        self.log_request(
            json.dumps({"reference": asdict(first), "resolution_percent": state.preset.resolution_percent})
        )
        self.log_response({"canvas": asdict(state.canvas)})
        return state


class SynthesizeFilters(BaseNode):
    """Builds the scale/pad/fade chains and the final concatenation."""

    def __init__(self, run_id: str, logger, fade_seconds: float) -> None:
        super().__init__(name="SynthesizeFilters", run_id=run_id, logger=logger)
        self._fade_seconds = fade_seconds

    def run(self, state: RunState) -> RunState:
        """Populate ``state.graph`` from the staged assets and their durations."""
        if state.canvas is None:
            raise ValueError("Canvas must be negotiated before synthesizing filters.")
        graph = synthesize(state.assets, state.canvas, self._fade_seconds, state.durations)
        state.graph = graph

        self.log_request(json.dumps({"fade_seconds": self._fade_seconds, "canvas": str(state.canvas)}))
        self.log_response(
            {
                "filter_complex": render_graph(graph),
                "node_count": len(graph.nodes),
                "faded_nodes": [node.label for node in graph.nodes if node.fade is not None],
                "total_duration": graph.total_duration,
            }
        )
        return state
