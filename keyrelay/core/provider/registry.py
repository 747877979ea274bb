"""Provider registry: the single owner of all per-provider state."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..exceptions import StateFormatError, ValidationError
from .catalog import (
    DEFAULT_PROVIDER_ORDER,
    PROVIDER_CATALOG,
    ProviderId,
    normalize_provider_order,
)
from .credential import CredentialRecord
from .key_pool import Clock, KeyPool
from .model_info import ModelDescriptor
from .provider_state import ProviderState

if TYPE_CHECKING:
    from keyrelay.services.validation import KeyTestResult, ValidationService

logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = 1


@dataclass(frozen=True)
class ProviderSummary:
    """Operator-facing snapshot of one provider."""

    provider: ProviderId
    name: str
    enabled: bool
    validated: bool
    selected_model: str | None
    total_keys: int
    active_keys: int
    validated_keys: int
    total_usage: int
    model_count: int


class ProviderRegistry:
    """Central registry for provider state.

    Responsibilities:
    - Own one ProviderState (and its KeyPool) per catalog provider
    - Hold the failover order
    - Enforce that a provider is only enabled with a validated key and a
      selected model
    - Export and import the whole state as a JSON-compatible dict

    The registry is a plain object; ``get_provider_registry()`` offers a
    process-wide default for callers that do not wire their own.
    """

    def __init__(
        self,
        provider_order: Iterable[str | ProviderId] | None = None,
        *,
        clock: Clock | None = None,
        validation_service: "ValidationService | None" = None,
    ) -> None:
        """Initialize a registry with one empty state per catalog provider.

        Args:
            provider_order: Initial failover order; defaults to the built-in order.
            clock: Time source shared by every key pool (for tests).
            validation_service: Service used by ``test_key``; created on first use
                when omitted.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._states: dict[ProviderId, ProviderState] = self._fresh_states()
        self._order: list[ProviderId] = list(DEFAULT_PROVIDER_ORDER)
        if provider_order is not None:
            self.set_provider_order(provider_order)
        self._validation_service = validation_service

    def _fresh_states(self) -> dict[ProviderId, ProviderState]:
        return {
            provider: ProviderState(provider=provider, pool=KeyPool(provider, clock=self._clock))
            for provider in PROVIDER_CATALOG
        }

    # State access

    def state(self, provider: str | ProviderId) -> ProviderState:
        """Return the state for ``provider``.

        Raises:
            ValueError: If the provider is unknown.
        """
        return self._states[ProviderId.parse(provider)]

    def pool(self, provider: str | ProviderId) -> KeyPool:
        return self.state(provider).pool

    def __iter__(self) -> Iterator[ProviderState]:
        """Iterate over every provider state in configured order."""
        return iter([self._states[p] for p in self._full_order()])

    @property
    def validation_service(self) -> "ValidationService":
        if self._validation_service is None:
            from keyrelay.services.validation import ValidationService

            self._validation_service = ValidationService(self)
        return self._validation_service

    @validation_service.setter
    def validation_service(self, service: "ValidationService") -> None:
        self._validation_service = service

    # Keys

    def set_key(self, provider: str | ProviderId, secret: str, label: str | None = None) -> bool:
        """Store a key without validating it.

        Returns:
            False if the key was already present.
        """
        added = self.pool(provider).add_key(secret, label)
        if added:
            logger.info("Stored new %s key", ProviderId.parse(provider).value)
        return added

    async def test_key(self, provider: str | ProviderId, secret: str) -> "KeyTestResult":
        """Validate a key against the vendor and keep it when it is accepted.

        A valid key is added to the pool if it was not already there, then
        marked validated. The raw result is returned either way.
        """
        provider_id = ProviderId.parse(provider)
        result = await self.validation_service.validate(provider_id, secret)
        if result.valid:
            pool = self.pool(provider_id)
            pool.add_key(secret)
            pool.mark_validated(secret)
        return result

    def remove_key(self, provider: str | ProviderId, secret: str) -> bool:
        """Remove a key; a provider left without a validated key is disabled."""
        state = self.state(provider)
        removed = state.pool.remove(secret)
        if removed and state.enabled and not state.validated:
            state.enabled = False
            logger.warning(
                "Disabled %s: no validated key remains after removal", state.provider.value
            )
        return removed

    def enable_key(self, provider: str | ProviderId, secret: str) -> bool:
        return self.pool(provider).enable(secret)

    def disable_key(self, provider: str | ProviderId, secret: str) -> bool:
        return self.pool(provider).disable(secret)

    # Models and enablement

    def select_model(self, provider: str | ProviderId, model_id: str) -> bool:
        """Select a model for the provider. Only discovered models are accepted."""
        state = self.state(provider)
        if not state.has_model(model_id):
            logger.warning(
                "Cannot select model '%s' for %s: not among discovered models",
                model_id,
                state.provider.value,
            )
            return False
        state.selected_model = model_id
        return True

    def set_enabled(self, provider: str | ProviderId, enabled: bool) -> bool:
        """Enable or disable a provider.

        Enabling requires at least one validated key and a selected model.
        Disabling always succeeds.
        """
        state = self.state(provider)
        if not enabled:
            state.enabled = False
            return True

        if not state.validated:
            logger.warning("Cannot enable %s: no validated key", state.provider.value)
            return False
        if not state.selected_model:
            logger.warning("Cannot enable %s: no model selected", state.provider.value)
            return False

        state.enabled = True
        logger.info("Enabled %s with model %s", state.provider.value, state.selected_model)
        return True

    # Ordering

    @property
    def provider_order(self) -> list[ProviderId]:
        with self._lock:
            return list(self._order)

    def set_provider_order(self, order: Iterable[str | ProviderId]) -> None:
        """Replace the failover order. Unknown ids are ignored, duplicates collapse."""
        normalized = normalize_provider_order(list(order))
        with self._lock:
            self._order = normalized

    def _full_order(self) -> list[ProviderId]:
        with self._lock:
            order = list(self._order)
        return order + [p for p in PROVIDER_CATALOG if p not in order]

    def get_enabled_providers(self) -> list[ProviderState]:
        """Enabled providers in configured order, then the rest in catalog order."""
        return [self._states[p] for p in self._full_order() if self._states[p].enabled]

    # Environment

    def load_from_env(self, environ: Mapping[str, str] | None = None) -> int:
        """Seed pools from ``{PROVIDER}_API_KEY`` variables.

        Multiple keys for one provider are separated by whitespace. Keys are
        stored unvalidated.

        Returns:
            Number of keys newly added.
        """
        env = os.environ if environ is None else environ
        added = 0
        for provider in PROVIDER_CATALOG:
            raw = env.get(f"{provider.value.upper()}_API_KEY")
            if not raw:
                continue
            for secret in raw.split():
                if self.pool(provider).add_key(secret, label="env"):
                    added += 1
        if added:
            logger.info("Loaded %d key(s) from environment", added)
        return added

    # Reporting

    def summary(self) -> list[ProviderSummary]:
        summaries = []
        for state in self:
            stats = state.pool.stats()
            summaries.append(
                ProviderSummary(
                    provider=state.provider,
                    name=state.descriptor.name,
                    enabled=state.enabled,
                    validated=state.validated,
                    selected_model=state.selected_model,
                    total_keys=stats.total_keys,
                    active_keys=stats.active_keys,
                    validated_keys=stats.validated_keys,
                    total_usage=stats.total_usage,
                    model_count=len(state.models),
                )
            )
        return summaries

    # Persistence

    def export(self) -> dict[str, Any]:
        """Serialize the full state to a JSON-compatible dict.

        The blob contains secrets and must be stored accordingly.
        """
        providers: dict[str, Any] = {}
        for provider, state in self._states.items():
            providers[provider.value] = {
                "enabled": state.enabled,
                "selected_model": state.selected_model,
                "models": [m.to_dict() for m in state.models],
                "last_validated": state.last_validated,
                "last_error": state.last_error,
                "keys": [record.to_dict() for record in state.pool.records],
            }
        return {
            "version": STATE_FORMAT_VERSION,
            "provider_order": [p.value for p in self.provider_order],
            "providers": providers,
        }

    def import_state(self, blob: Mapping[str, Any]) -> None:
        """Replace the current state with an exported blob.

        Keys are not re-validated. Providers unknown to this build are
        ignored. Enabled flags are restored only where the enable
        precondition still holds. The registry is left untouched when the
        blob is malformed.

        Raises:
            StateFormatError: If the blob does not have the exported shape.
        """
        if not isinstance(blob, Mapping):
            raise StateFormatError(f"State must be a mapping, got {type(blob).__name__}")

        version = blob.get("version")
        if version != STATE_FORMAT_VERSION:
            raise StateFormatError(f"Unsupported state version: {version!r}")

        providers_raw = blob.get("providers", {})
        if not isinstance(providers_raw, Mapping):
            raise StateFormatError("'providers' must be a mapping")

        order_raw = blob.get("provider_order", [])
        if not isinstance(order_raw, list):
            raise StateFormatError("'provider_order' must be a list")

        states = self._fresh_states()
        for name, data in providers_raw.items():
            provider = ProviderId.try_parse(name)
            if provider is None:
                logger.warning("Ignoring unknown provider '%s' in imported state", name)
                continue
            self._restore_state(states[provider], data)

        with self._lock:
            self._states = states
            self._order = normalize_provider_order(order_raw)

    def _restore_state(self, state: ProviderState, data: Any) -> None:
        name = state.provider.value
        if not isinstance(data, Mapping):
            raise StateFormatError(f"State for '{name}' must be a mapping")

        keys = data.get("keys", [])
        models = data.get("models", [])
        if not isinstance(keys, list) or not isinstance(models, list):
            raise StateFormatError(f"'keys' and 'models' for '{name}' must be lists")

        for entry in keys:
            try:
                record = CredentialRecord.from_dict(entry, provider=state.provider)
            except ValidationError as e:
                raise StateFormatError(f"Invalid key record for '{name}': {e.message}") from e
            if record.provider is not state.provider:
                raise StateFormatError(f"Key record filed under '{name}' belongs elsewhere")
            state.pool.add_record(record)

        state.replace_models(
            [m for m in (ModelDescriptor.from_dict(raw) for raw in models) if m is not None]
        )

        selected = data.get("selected_model")
        state.selected_model = selected if isinstance(selected, str) and selected else None
        last_validated = data.get("last_validated")
        state.last_validated = (
            float(last_validated) if isinstance(last_validated, (int, float)) else None
        )
        last_error = data.get("last_error")
        state.last_error = last_error if isinstance(last_error, str) else None

        if data.get("enabled"):
            if state.validated and state.selected_model:
                state.enabled = True
            else:
                logger.warning(
                    "Not re-enabling %s: imported state lacks a validated key or model", name
                )


_registry: ProviderRegistry | None = None
_registry_lock = threading.Lock()


def get_provider_registry() -> ProviderRegistry:
    """Return the process-wide registry, creating it from config on first use."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                from keyrelay.core.config import config

                _registry = ProviderRegistry(config.provider_order or None)
    return _registry


def reset_provider_registry() -> None:
    """Drop the process-wide registry. Intended for tests."""
    global _registry
    with _registry_lock:
        _registry = None
