"""Pipeline orchestration for the slideshow optimizer."""

from __future__ import annotations

import json
import time
from dataclasses import asdict, fields, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Sequence

from langchain_core.runnables import RunnableLambda
from langgraph.graph import END, START, StateGraph

from .config import PipelineConfig
from .encoder import Encoder, FfmpegEncoder
from .nodes.base import Node
from .nodes.compose import NegotiateCanvas, SynthesizeFilters
from .nodes.discover import WORK_AREA_NAME, DiscoverImages
from .nodes.durations import ConfirmCallback, ConfirmRender, ResolveDurations
from .nodes.preflight import Preflight
from .nodes.video import EncodeVideo, ReportNode, VerifyOutput
from .types import RunState
from .utils.files import remove_tree
from .utils.run_logger import RunLogger

GATE_NODE = "ConfirmRender"
_RENDER = "render"
_HALT = "halt"


class SlideshowOptimizer:
    """High-level facade exposing the discover, confirm and render flow."""

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        encoder: Encoder | None = None,
        confirm: ConfirmCallback | None = None,
        verbose: bool = True,
    ) -> None:
        self.config = config or PipelineConfig.from_env()
        self.logger = RunLogger(base_dir=self.config.runs_dir)
        self.encoder = encoder or FfmpegEncoder(self.config.ffmpeg_bin)
        self.confirm = confirm or (lambda state: self.config.assume_yes)
        self.verbose = verbose

    def run(self, work_dir: str | Path) -> RunState:
        """Execute the pipeline for ``work_dir`` and return the resulting state.

        When the operator declines, the returned state has ``confirmed`` False and
        no encode has taken place; the durations file stays in place for editing.
        """
        run_id = self._new_run_id()
        nodes = self._build_nodes(run_id=run_id, work_dir=work_dir)
        app = self._build_graph(nodes).compile()

        try:
            result = app.invoke(self._state_values(RunState()))
        finally:
            if not self.config.keep_work_area:
                remove_tree(Path(work_dir).expanduser() / WORK_AREA_NAME)
        return result if isinstance(result, RunState) else RunState(**result)

    def _build_graph(self, nodes: Sequence[Node]) -> StateGraph:
        """Construct a LangGraph graph wired with runnable nodes."""
        graph = StateGraph(RunState)
        node_names: List[str] = []

        for node in nodes:
            graph.add_node(
                node.name,
                RunnableLambda(lambda state, _node=node: self._invoke_node(_node, state)),
                metadata={"kind": node.name, "may_block": node.name in {"EncodeVideo", GATE_NODE}},
            )
            node_names.append(node.name)

        if not node_names:
            raise RuntimeError("Pipeline has no nodes configured.")

        graph.add_edge(START, node_names[0])
        for previous, current in zip(node_names, node_names[1:]):
            if previous == GATE_NODE:
                graph.add_conditional_edges(previous, self._route_after_gate, {_RENDER: current, _HALT: END})
            else:
                graph.add_edge(previous, current)
        graph.add_edge(node_names[-1], END)

        return graph

    @staticmethod
    def _route_after_gate(state: RunState | Dict[str, Any]) -> str:
        confirmed = state.get("confirmed") if isinstance(state, dict) else state.confirmed
        return _RENDER if confirmed else _HALT

    def _build_nodes(self, *, run_id: str, work_dir: str | Path) -> Sequence[Node]:
        """Construct node instances wired with the current services."""
        config = self.config
        return [
            Preflight(run_id=run_id, logger=self.logger, config=config, work_dir=work_dir, encoder=self.encoder),
            DiscoverImages(run_id=run_id, logger=self.logger, min_free_mb=config.min_free_mb),
            ResolveDurations(run_id=run_id, logger=self.logger, default_seconds=config.default_duration),
            ConfirmRender(run_id=run_id, logger=self.logger, confirm=self.confirm),
            NegotiateCanvas(run_id=run_id, logger=self.logger),
            SynthesizeFilters(run_id=run_id, logger=self.logger, fade_seconds=config.fade_seconds),
            EncodeVideo(run_id=run_id, logger=self.logger, config=config, encoder=self.encoder),
            VerifyOutput(run_id=run_id, logger=self.logger, ffprobe_bin=config.ffprobe_bin),
            ReportNode(run_id=run_id, logger=self.logger),
        ]

    def _invoke_node(self, node: Node, state: RunState) -> Dict[str, Any]:
        """Execute a node while emitting structured IO traces.

        The updated state is handed back to the graph as a mapping of every field.
        """
        if self.verbose:
            self._print_step_io(node.name, "input", self._snapshot_state(state))

        started = time.perf_counter()
        updated_state = node.run(state)
        elapsed = time.perf_counter() - started

        if self.verbose:
            self._print_step_io(node.name, "output", self._snapshot_state(updated_state), elapsed)

        return self._state_values(updated_state)

    @staticmethod
    def _state_values(state: RunState) -> Dict[str, Any]:
        """Shallow field mapping; nested records stay as objects."""
        return {f.name: getattr(state, f.name) for f in fields(state)}

    def _snapshot_state(self, state: RunState | Any) -> Any:
        """Return a compact serialisable view of the state for logging."""
        raw = asdict(state) if is_dataclass(state) else state
        return self._strip_empty(raw)

    def _strip_empty(self, value: Any) -> Any:
        """Recursively remove empty containers for cleaner logging."""
        if isinstance(value, dict):
            return {k: self._strip_empty(v) for k, v in value.items() if not self._is_empty(v)}
        if isinstance(value, (list, tuple)):
            return [self._strip_empty(item) for item in value if not self._is_empty(item)]
        return value

    @staticmethod
    def _is_empty(value: Any) -> bool:
        """Return True if the provided value is considered empty for logging."""
        if value is None:
            return True
        if isinstance(value, (str, bytes)) and value == "":
            return True
        if isinstance(value, (list, tuple, set, dict)) and len(value) == 0:
            return True
        return False

    def _print_step_io(self, step: str, direction: str, payload: Any, elapsed: float | None = None) -> None:
        """Pretty-print the input/output payload for each step."""
        prefix = ">>" if direction == "input" else "<<"
        timing = f" [{elapsed:.2f}s]" if elapsed is not None and direction == "output" else ""
        body = json.dumps(payload, ensure_ascii=False, indent=2, default=self._json_default)
        print(f"[{step}] {prefix} {direction}{timing}:\n{body}\n")

    @staticmethod
    def _json_default(obj: Any) -> Any:
        """Fallback serializer for non-JSON compatible objects."""
        if is_dataclass(obj):
            return asdict(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, set):
            return list(obj)
        return str(obj)

    @staticmethod
    def _new_run_id() -> str:
        """Return a simple unique run identifier."""
        return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
