"""
Filesystem-based state storage.

Stores the registry blob in ~/.keyrelay/state.json with owner-only
permissions, since it contains API keys.
"""

import json
import logging
import os
from pathlib import Path

from ..exceptions import StorageError
from . import StateBlob, StateStore

_logger = logging.getLogger(__name__)

STATE_FILE_PERMISSIONS = 0o600


class FileSystemStateStore(StateStore):
    """File-based state storage.

    Uses $KEYRELAY_HOME/state.json (default ~/.keyrelay/state.json), or any
    directory passed as ``home_dir``.
    """

    def __init__(self, home_dir: str | Path | None = None, *, filename: str = "state.json"):
        """Initialize file-based storage.

        Args:
            home_dir: Directory holding the state file. Defaults to the
                configured KEYRELAY_HOME.
            filename: Name of the state file inside ``home_dir``.
        """
        if home_dir is not None:
            self.home_dir = Path(home_dir).expanduser()
        else:
            from keyrelay.core.config import config

            self.home_dir = config.home_dir

        self.state_file = self.home_dir / filename

    def read_state(self) -> StateBlob | None:
        """Read the blob from file.

        Returns:
            The decoded blob, or None if the file does not exist

        Raises:
            StorageError: If the file exists but cannot be read or decoded
        """
        try:
            with open(self.state_file, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            _logger.error("Corrupted state file %s: %s", self.state_file, e)
            raise StorageError(f"Invalid state data in {self.state_file}: {e}") from e
        except OSError as e:
            _logger.error("Failed to read state file %s: %s", self.state_file, e)
            raise StorageError(f"Cannot read state file: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Invalid state data in {self.state_file}: expected an object")
        return data

    def write_state(self, blob: StateBlob) -> None:
        """Write the blob to file.

        Creates the directory if needed and writes through a temporary file
        so a crash never leaves a half-written state file behind.

        Raises:
            StorageError: If write fails due to I/O errors
        """
        tmp_file = self.state_file.with_suffix(self.state_file.suffix + ".tmp")
        try:
            self.home_dir.mkdir(parents=True, exist_ok=True)

            with open(tmp_file, "w", encoding="utf-8") as f:
                if hasattr(os, "fchmod"):
                    os.fchmod(f.fileno(), STATE_FILE_PERMISSIONS)
                json.dump(blob, f, indent=2)
            os.replace(tmp_file, self.state_file)
        except (OSError, TypeError, ValueError) as e:
            _logger.error("Failed to write state file %s: %s", self.state_file, e)
            tmp_file.unlink(missing_ok=True)
            raise StorageError(f"Cannot write state file: {e}") from e

    def clear_state(self) -> None:
        """Remove the state file.

        Raises:
            StorageError: If file removal fails due to I/O errors
        """
        try:
            self.state_file.unlink(missing_ok=True)
        except OSError as e:
            _logger.error("Failed to remove state file %s: %s", self.state_file, e)
            raise StorageError(f"Cannot remove state file: {e}") from e

    @property
    def path(self) -> str:
        return str(self.state_file)
