"""
Exception hierarchy for keyrelay.

All library-specific exceptions inherit from KeyrelayError, allowing
callers to catch every library error with a single except clause.

Public generation and validation entry points never raise these for
vendor failures; they return result objects instead. The exceptions
below surface at adapter boundaries (where the orchestrator absorbs
them), at storage boundaries, and for programmer errors.

Example:
    >>> try:
    ...     store.read_state()
    ... except KeyrelayError as e:
    ...     print(f"Could not load state: {e}")
"""

from __future__ import annotations

from .error_types import FailureKind


class KeyrelayError(Exception):
    """Base exception for all keyrelay errors."""

    pass


class AdapterError(KeyrelayError):
    """Raised by a provider adapter when a vendor call fails.

    The failure is already classified, so callers only branch on ``kind``.

    Attributes:
        kind: Classified failure category
        message: Human-readable description (vendor text may be included)
        status_code: HTTP status when the call reached the vendor, else None
        retry_after: Seconds the vendor asked us to wait, when provided
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        *,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message)

    @property
    def reached_vendor(self) -> bool:
        """True when the vendor answered (as opposed to a network failure)."""
        return self.status_code is not None

    def __repr__(self) -> str:
        return (
            f"AdapterError(kind={self.kind.value!r}, status_code={self.status_code!r}, "
            f"message={self.message!r})"
        )


class ValidationError(KeyrelayError):
    """Raised when input validation fails.

    Attributes:
        field: Name of the field that failed validation
        value: The invalid value that was provided
        message: Human-readable explanation of the validation error
    """

    def __init__(self, field: str, value: object, message: str) -> None:
        self.field = field
        self.value = value
        self.message = message
        super().__init__(f"Invalid {field!r}: {message} (got {value!r})")

    def __repr__(self) -> str:
        return (
            f"ValidationError(field={self.field!r}, value={self.value!r}, message={self.message!r})"
        )


class StorageError(KeyrelayError):
    """Raised when state storage operations fail.

    This covers file I/O errors, permission issues and corrupted files.
    """

    pass


class StateFormatError(KeyrelayError):
    """Raised when an exported state blob cannot be imported."""

    pass
