"""Failure classification for provider calls.

Adapters classify every vendor failure into one of these kinds at the
adapter boundary, so failover logic never inspects raw vendor error text.
"""

from enum import Enum


class FailureKind(str, Enum):
    """Failure categories reported by provider adapters.

    Only RATE_LIMITED is treated as temporary by the key pool: it pushes the
    key into a cooldown and never counts toward the disable threshold. Every
    other kind is an ordinary failure.
    """

    RATE_LIMITED = "rate_limited"  # 429, quota exhausted, payment required
    AUTH_FAILED = "auth_failed"  # Invalid or revoked key
    TRANSPORT = "transport"  # Network error, timeout, 5xx, malformed body
    EMPTY = "empty"  # Call succeeded but returned no usable content

    @property
    def is_rate_limit(self) -> bool:
        return self is FailureKind.RATE_LIMITED
