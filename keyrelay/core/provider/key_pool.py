"""Per-provider key pool with cooldown-aware round-robin selection."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from .catalog import PROVIDER_CATALOG, ProviderId, RateLimit
from .credential import (
    FAILURE_DISABLE_THRESHOLD,
    RATE_LIMIT_BACKOFF_SECONDS,
    CredentialRecord,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class PoolStats:
    """Aggregate counters for one pool."""

    provider: ProviderId
    total_keys: int
    active_keys: int
    validated_keys: int
    total_usage: int


class KeyPool:
    """Credential records for one provider plus selection logic.

    Responsibilities:
    - Own the provider's records, unique by secret
    - Pick the next key: least recently used among cooled-down keys, or the
      least recently used key overall when every key is still hot
    - Apply call outcomes to counters (usage, failures, cooldown, disable)

    Mutations are guarded by a re-entrant lock so no caller ever observes a
    half-updated record. Counters remain advisory: concurrent requests
    against the same key may interleave their updates.
    """

    def __init__(
        self,
        provider: ProviderId | str,
        *,
        rate_limit: RateLimit | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize an empty pool.

        Args:
            provider: Owning provider.
            rate_limit: Provider rate limit; defaults to the catalog entry.
            clock: Time source returning epoch seconds (for tests).
        """
        self.provider = ProviderId.parse(provider)
        self.rate_limit = rate_limit or PROVIDER_CATALOG[self.provider].rate_limit
        self._clock: Clock = clock or time.time
        self._records: list[CredentialRecord] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CredentialRecord]:
        with self._lock:
            return iter(list(self._records))

    def __contains__(self, secret: object) -> bool:
        return self._find(secret) is not None if isinstance(secret, str) else False

    @property
    def records(self) -> list[CredentialRecord]:
        """Snapshot of the pool's records in insertion order."""
        with self._lock:
            return list(self._records)

    def _find(self, secret: str) -> CredentialRecord | None:
        for record in self._records:
            if record.secret == secret:
                return record
        return None

    def get(self, secret: str) -> CredentialRecord | None:
        with self._lock:
            return self._find(secret)

    def add_key(self, secret: str, label: str | None = None) -> bool:
        """Insert a new key.

        Returns:
            False when the key is already present (no-op), True otherwise.
        """
        with self._lock:
            if self._find(secret) is not None:
                return False
            record = CredentialRecord(secret=secret, provider=self.provider, label=label)
            self._records.append(record)
        logger.debug("Added key %s to %s pool", record.fingerprint, self.provider.value)
        return True

    def add_record(self, record: CredentialRecord) -> bool:
        """Insert a fully populated record (used when restoring state)."""
        if record.provider is not self.provider:
            raise ValueError(
                f"Record belongs to '{record.provider.value}', not '{self.provider.value}'"
            )
        with self._lock:
            if self._find(record.secret) is not None:
                return False
            self._records.append(record)
            return True

    def remove(self, secret: str) -> bool:
        """Remove a key. Removing a missing key is a no-op."""
        with self._lock:
            record = self._find(secret)
            if record is None:
                return False
            self._records.remove(record)
        logger.info("Removed key %s from %s pool", record.fingerprint, self.provider.value)
        return True

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def next_key(self, exclude: Iterable[str] = ()) -> CredentialRecord | None:
        """Select the best candidate for the next call.

        Disabled keys and keys in ``exclude`` are never returned. Among the
        rest, the least recently used key that has cooled down wins; when every
        key is still hot the least recently used key is returned anyway, since
        availability beats strict rate-limit compliance.

        The returned key's ``last_used`` is stamped now so that concurrent
        requests spread across the pool.

        Args:
            exclude: Secrets already tried by the current logical request.

        Returns:
            The selected record, or None if no key is usable.
        """
        excluded = set(exclude)
        with self._lock:
            candidates = [
                r for r in self._records if not r.disabled and r.secret not in excluded
            ]
            if not candidates:
                return None

            now = self._clock()
            cooled = [
                r for r in candidates if now - r.last_used >= r.cooldown_seconds(self.rate_limit)
            ]
            pool = cooled or candidates
            # sorted() is stable, so insertion order breaks ties
            chosen = sorted(pool, key=lambda r: r.last_used)[0]
            if not cooled:
                logger.debug(
                    "All %d %s keys are cooling down; using least recently used %s",
                    len(candidates),
                    self.provider.value,
                    chosen.fingerprint,
                )
            if chosen.last_used < now:
                chosen.last_used = now
            return chosen

    def record_success(self, secret: str) -> None:
        """Count a successful call and clear the key's failure streak."""
        with self._lock:
            record = self._find(secret)
            if record is None:
                return
            record.usage_count += 1
            record.last_used = self._clock()
            record.failure_count = 0

    def record_failure(
        self,
        secret: str,
        rate_limited: bool,
        retry_after: float | None = None,
    ) -> None:
        """Apply a failed call to the key.

        Rate-limited failures only push ``last_used`` into the future; they
        never count toward the disable threshold. Any other failure increments
        the failure streak and disables the key at the threshold.

        Args:
            secret: The key that failed.
            rate_limited: Whether the vendor throttled the call.
            retry_after: Vendor-supplied wait in seconds; extends the cooldown
                when longer than the default backoff.
        """
        with self._lock:
            record = self._find(secret)
            if record is None:
                return

            if rate_limited:
                backoff = max(RATE_LIMIT_BACKOFF_SECONDS, retry_after or 0.0)
                record.last_used = self._clock() + backoff
                logger.info(
                    "%s key %s rate limited; cooling down for %.0fs",
                    self.provider.value,
                    record.fingerprint,
                    backoff,
                )
                return

            record.failure_count += 1
            if record.failure_count >= FAILURE_DISABLE_THRESHOLD and not record.disabled:
                record.disabled = True
                logger.warning(
                    "%s key %s disabled after %d consecutive failures",
                    self.provider.value,
                    record.fingerprint,
                    record.failure_count,
                )

    def mark_validated(self, secret: str) -> bool:
        with self._lock:
            record = self._find(secret)
            if record is None:
                return False
            record.validated = True
            record.validated_at = self._clock()
            return True

    def enable(self, secret: str) -> bool:
        """Operator override: clear ``disabled`` and the failure streak."""
        with self._lock:
            record = self._find(secret)
            if record is None:
                return False
            record.disabled = False
            record.failure_count = 0
            return True

    def disable(self, secret: str) -> bool:
        """Operator override: exclude the key from selection."""
        with self._lock:
            record = self._find(secret)
            if record is None:
                return False
            record.disabled = True
            return True

    def set_rate_limit(self, secret: str, rate_limit: RateLimit | None) -> bool:
        """Override (or with None, reset) the rate limit used for one key."""
        with self._lock:
            record = self._find(secret)
            if record is None:
                return False
            record.rate_limit = rate_limit
            return True

    @property
    def has_validated_key(self) -> bool:
        with self._lock:
            return any(r.validated for r in self._records)

    def stats(self) -> PoolStats:
        with self._lock:
            return PoolStats(
                provider=self.provider,
                total_keys=len(self._records),
                active_keys=sum(1 for r in self._records if not r.disabled),
                validated_keys=sum(1 for r in self._records if r.validated),
                total_usage=sum(r.usage_count for r in self._records),
            )
