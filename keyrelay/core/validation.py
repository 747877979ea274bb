"""Input checks for operator-entered secrets and stored key records.

Every check raises ValidationError. Secret values are never echoed back in
the error; ``<redacted>`` stands in for them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .exceptions import ValidationError

MIN_SECRET_LENGTH = 10

REDACTED = "<redacted>"


def validate_string(value: object, field_name: str, allow_empty: bool = False) -> str:
    """Return ``value`` if it is a string, non-blank unless ``allow_empty``.

    Raises:
        ValidationError: On a non-string or a blank string
    """
    if not isinstance(value, str):
        raise ValidationError(field_name, value, f"expected str, got {type(value).__name__}")
    if not allow_empty and not value.strip():
        raise ValidationError(field_name, value, "must be a non-empty string")
    return value


def validate_secret(value: object, field_name: str = "secret") -> str:
    """Format check run before a key is sent anywhere.

    >>> validate_secret("sk-short")
    Traceback (most recent call last):
    ...
    keyrelay.core.exceptions.ValidationError: Invalid 'secret': too short (minimum 10 characters) (got '<redacted>')

    Raises:
        ValidationError: If the secret is empty, too short, or holds whitespace or
            characters outside printable ASCII
    """
    if not isinstance(value, str) or not value:
        reason = "must be a non-empty string"
    elif any(ch.isspace() for ch in value):
        reason = "must not contain whitespace"
    elif not (value.isascii() and value.isprintable()):
        reason = "must contain printable ASCII characters only"
    elif len(value) < MIN_SECRET_LENGTH:
        reason = f"too short (minimum {MIN_SECRET_LENGTH} characters)"
    else:
        return value
    raise ValidationError(field_name, REDACTED, reason)


def validate_dict_keys(data: Mapping[str, object], allowed: Iterable[str], context: str) -> None:
    """Reject mappings carrying fields outside ``allowed``.

    Raises:
        ValidationError: Listing the unexpected fields
    """
    allowed = set(allowed)
    extra = sorted(set(data) - allowed)
    if extra:
        raise ValidationError(
            f"{context}.keys",
            extra,
            f"unexpected field(s) {', '.join(extra)}; allowed: {', '.join(sorted(allowed))}",
        )


__all__ = [
    "MIN_SECRET_LENGTH",
    "REDACTED",
    "validate_dict_keys",
    "validate_secret",
    "validate_string",
]
