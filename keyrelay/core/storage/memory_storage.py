"""
In-memory state storage for testing and ephemeral use.
"""

import copy

from . import StateBlob, StateStore


class InMemoryStateStore(StateStore):
    """Keeps a deep copy of the blob, so later registry mutations do not leak in."""

    def __init__(self, initial: StateBlob | None = None) -> None:
        self._blob: StateBlob | None = copy.deepcopy(initial)

    def read_state(self) -> StateBlob | None:
        return copy.deepcopy(self._blob)

    def write_state(self, blob: StateBlob) -> None:
        self._blob = copy.deepcopy(blob)

    def clear_state(self) -> None:
        self._blob = None

    def __repr__(self) -> str:
        return f"InMemoryStateStore(has_state={self._blob is not None})"
