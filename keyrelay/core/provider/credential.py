"""Credential record: one API key plus its usage and health bookkeeping."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any

from ..exceptions import ValidationError
from ..validation import validate_dict_keys, validate_string
from .catalog import ProviderId, RateLimit

# Consecutive non-rate-limit failures after which a key is disabled
FAILURE_DISABLE_THRESHOLD = 10

# Cooldown applied to a key the vendor throttled, in seconds
RATE_LIMIT_BACKOFF_SECONDS = 60.0

# Allowed fields for serialized records (helps catch typos)
_RECORD_ALLOWED_FIELDS = {
    "secret",
    "provider",
    "label",
    "usage_count",
    "last_used",
    "failure_count",
    "disabled",
    "validated",
    "validated_at",
    "rate_limit",
}


def fingerprint_secret(secret: str) -> str:
    """Return a short, log-safe identifier for a secret."""
    return "sha256:" + hashlib.sha256(secret.encode()).hexdigest()[:8]


@dataclass
class CredentialRecord:
    """One API key and its bookkeeping.

    Attributes:
        secret: The API key itself
        provider: Owning provider
        label: Optional operator-facing label
        usage_count: Successful calls served by this key
        last_used: Epoch seconds of last use; may be in the future during a
            rate-limit cooldown. 0 means never used.
        failure_count: Consecutive non-rate-limit failures
        disabled: Excluded from selection until re-enabled by an operator
        validated: Key was accepted by the provider's model listing
        validated_at: Epoch seconds of last successful validation
        rate_limit: Per-key override of the provider rate limit
    """

    secret: str
    provider: ProviderId
    label: str | None = None
    usage_count: int = 0
    last_used: float = 0.0
    failure_count: int = 0
    disabled: bool = False
    validated: bool = False
    validated_at: float | None = None
    rate_limit: RateLimit | None = None

    def __post_init__(self) -> None:
        validate_string(self.secret, "secret")
        self.provider = ProviderId.parse(self.provider)

    @property
    def fingerprint(self) -> str:
        return fingerprint_secret(self.secret)

    @property
    def identity(self) -> tuple[ProviderId, str]:
        return (self.provider, self.secret)

    def cooldown_seconds(self, provider_limit: RateLimit) -> float:
        """Effective minimum gap between two uses of this key."""
        limit = self.rate_limit or provider_limit
        return limit.cooldown_seconds

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "secret": self.secret,
            "provider": self.provider.value,
            "label": self.label,
            "usage_count": self.usage_count,
            "last_used": self.last_used,
            "failure_count": self.failure_count,
            "disabled": self.disabled,
            "validated": self.validated,
            "validated_at": self.validated_at,
            "rate_limit": self.rate_limit.to_dict() if self.rate_limit else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], provider: ProviderId | None = None) -> "CredentialRecord":
        """Create from dictionary with validation.

        Args:
            data: Dictionary produced by ``to_dict``
            provider: Owning provider when the dict omits it

        Raises:
            ValidationError: If data is invalid or contains unknown fields
        """
        if not isinstance(data, dict):
            raise ValidationError("CredentialRecord", type(data).__name__, "must be a mapping")
        validate_dict_keys(data, _RECORD_ALLOWED_FIELDS, "CredentialRecord")

        secret = data.get("secret")
        if not secret:
            raise ValidationError("secret", "<redacted>", "required field is missing or empty")

        owner = data.get("provider") or provider
        if owner is None:
            raise ValidationError("provider", owner, "required field is missing or empty")

        rate_limit_raw = data.get("rate_limit")
        try:
            rate_limit = RateLimit.from_dict(rate_limit_raw) if rate_limit_raw else None
            return cls(
                secret=secret,
                provider=owner,
                label=data.get("label"),
                usage_count=int(data.get("usage_count") or 0),
                last_used=float(data.get("last_used") or 0.0),
                failure_count=int(data.get("failure_count") or 0),
                disabled=bool(data.get("disabled", False)),
                validated=bool(data.get("validated", False)),
                validated_at=(
                    float(data["validated_at"]) if data.get("validated_at") is not None else None
                ),
                rate_limit=rate_limit,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError("CredentialRecord", "<redacted>", str(e)) from e

    def __repr__(self) -> str:
        return (
            f"CredentialRecord(provider={self.provider.value!r}, fingerprint={self.fingerprint!r}, "
            f"usage_count={self.usage_count}, failure_count={self.failure_count}, "
            f"disabled={self.disabled}, validated={self.validated})"
        )
