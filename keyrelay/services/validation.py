"""Key validation against the vendor's model listing."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from keyrelay.core.adapters import ProviderAdapter, default_adapters
from keyrelay.core.error_types import FailureKind
from keyrelay.core.exceptions import AdapterError, ValidationError
from keyrelay.core.provider.catalog import ProviderId
from keyrelay.core.provider.credential import fingerprint_secret
from keyrelay.core.provider.model_info import ModelDescriptor
from keyrelay.core.validation import validate_secret

if TYPE_CHECKING:
    from keyrelay.core.provider.provider_state import ProviderState
    from keyrelay.core.provider.registry import ProviderRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyTestResult:
    """Outcome of one validation call.

    Attributes:
        provider: Provider the key was tested against
        valid: Key was accepted and at least one generative model is available
        models: Generative models the key can use (empty when invalid)
        error: Human-readable reason when invalid
        response_time_ms: Wall time of the vendor call (0 when no call was made)
        failure: Classified failure, None when valid or rejected before any call
    """

    provider: ProviderId
    valid: bool
    models: tuple[ModelDescriptor, ...] = ()
    error: str | None = None
    response_time_ms: float = 0.0
    failure: FailureKind | None = None

    @property
    def model_ids(self) -> list[str]:
        return [m.id for m in self.models]


class ValidationService:
    """Check a key by listing models, then update the provider state.

    On success the provider's discovered models are replaced, a model is
    auto-selected when none is, and the key is marked validated if it is
    already pooled. On a failure the vendor actually answered, a pooled key
    goes through the pool's normal failure path.
    """

    def __init__(
        self,
        registry: "ProviderRegistry",
        adapters: Mapping[ProviderId, ProviderAdapter] | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        self.registry = registry
        self.adapters = dict(adapters) if adapters is not None else default_adapters()
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        if self._timeout is not None:
            return self._timeout
        from keyrelay.core.config import config

        return config.request_timeout

    async def validate(self, provider: str | ProviderId, secret: str) -> KeyTestResult:
        """Validate ``secret`` for ``provider``. Never raises for vendor failures.

        On success the provider's model list is replaced by the generative
        models the key can see. The current model selection is kept only if it
        is still listed; otherwise the catalog default model is selected when
        it was discovered, else the first listed model.

        Raises:
            ValueError: If the provider is unknown.
        """
        provider_id = ProviderId.parse(provider)
        state = self.registry.state(provider_id)

        try:
            validate_secret(secret)
        except ValidationError as e:
            return self._invalid(state, secret, f"Invalid key format: {e.message}", None, 0.0)

        adapter = self.adapters[provider_id]
        start = time.perf_counter()
        try:
            listing = await asyncio.wait_for(adapter.list_models(secret), self.timeout)
        except asyncio.TimeoutError:
            elapsed = (time.perf_counter() - start) * 1000
            return self._invalid(
                state,
                secret,
                f"{adapter.display_name}: validation timed out after {self.timeout:g}s",
                FailureKind.TRANSPORT,
                elapsed,
            )
        except AdapterError as e:
            elapsed = (time.perf_counter() - start) * 1000
            if e.reached_vendor and secret in state.pool:
                state.pool.record_failure(
                    secret, rate_limited=e.kind.is_rate_limit, retry_after=e.retry_after
                )
            message = e.message
            if e.kind is FailureKind.AUTH_FAILED:
                message = f"Invalid API key: {e.message}"
            elif e.kind is FailureKind.RATE_LIMITED:
                message = f"Rate limited while validating: {e.message}"
            return self._invalid(state, secret, message, e.kind, elapsed)
        except Exception as e:
            elapsed = (time.perf_counter() - start) * 1000
            error = adapter.unexpected_error(e)
            if secret in state.pool:
                state.pool.record_failure(secret, rate_limited=False)
            return self._invalid(state, secret, error.message, error.kind, elapsed)

        elapsed = (time.perf_counter() - start) * 1000
        descriptor = state.descriptor
        models = tuple(m for m in listing.models if descriptor.is_generative_model(m.id))
        if not models:
            return self._invalid(
                state,
                secret,
                f"{adapter.display_name}: no usable models available for this key",
                FailureKind.EMPTY,
                elapsed,
            )

        state.replace_models(list(models))
        if not state.selected_model or not state.has_model(state.selected_model):
            state.selected_model = (
                descriptor.default_model
                if state.has_model(descriptor.default_model)
                else models[0].id
            )
        state.last_validated = time.time()
        state.last_error = None
        state.pool.mark_validated(secret)

        logger.info(
            "Validated %s key %s: %d model(s) in %.0fms%s",
            provider_id.value,
            fingerprint_secret(secret),
            len(models),
            elapsed,
            " (catalog fallback)" if listing.from_catalog else "",
        )
        return KeyTestResult(
            provider=provider_id,
            valid=True,
            models=models,
            response_time_ms=elapsed,
        )

    def _invalid(
        self,
        state: "ProviderState",
        secret: str,
        error: str,
        failure: FailureKind | None,
        elapsed_ms: float,
    ) -> KeyTestResult:
        state.last_error = error
        logger.warning(
            "Validation failed for %s key %s: %s",
            state.provider.value,
            fingerprint_secret(secret) if isinstance(secret, str) else "<none>",
            error,
        )
        return KeyTestResult(
            provider=state.provider,
            valid=False,
            error=error,
            response_time_ms=elapsed_ms,
            failure=failure,
        )
