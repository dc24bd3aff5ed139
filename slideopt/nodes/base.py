"""Node abstractions shared by concrete pipeline steps."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..types import RunState
from ..utils.run_logger import RunLogger


class Node(Protocol):
    """A unit of work that mutates the shared run state."""

    name: str

    def run(self, state: RunState) -> RunState:
        ...


@dataclass(slots=True)
class BaseNode:
    """Convenience base for nodes needing logging support."""

    name: str
    run_id: str
    logger: RunLogger

    def log_request(self, request: str) -> None:
        """Persist the request."""
        self.logger.log_request(self.run_id, self.name, request)

    def log_response(self, response: object) -> None:
        """Persist the response."""
        self.logger.log_response(self.run_id, self.name, response)
