"""
Storage abstraction for persisted registry state.

The registry exports its state as an opaque JSON-compatible dict; a
StateStore only knows how to keep that blob somewhere and hand it back.
"""

from abc import ABC, abstractmethod
from typing import Any

StateBlob = dict[str, Any]


class StateStore(ABC):
    """Abstract storage backend for registry state.

    Implementations:
    - FileSystemStateStore: Uses ~/.keyrelay/state.json
    - InMemoryStateStore: For testing and ephemeral use
    """

    @abstractmethod
    def read_state(self) -> StateBlob | None:
        """Read the stored blob.

        Returns:
            The blob if present, None otherwise

        Raises:
            StorageError: If stored data exists but cannot be read
        """

    @abstractmethod
    def write_state(self, blob: StateBlob) -> None:
        """Replace the stored blob.

        Raises:
            StorageError: If write fails
        """

    @abstractmethod
    def clear_state(self) -> None:
        """Remove the stored blob.

        Raises:
            StorageError: If clear fails
        """

    def has_state(self) -> bool:
        return self.read_state() is not None


# Import implementations (E402 exemption: implementations subclass StateStore)
from .file_storage import FileSystemStateStore  # noqa: E402
from .memory_storage import InMemoryStateStore  # noqa: E402

__all__ = [
    "FileSystemStateStore",
    "InMemoryStateStore",
    "StateBlob",
    "StateStore",
]
