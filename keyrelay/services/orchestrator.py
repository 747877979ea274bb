"""Failover orchestration across providers and keys.

One logical request walks the candidate providers in order. Within a
provider it asks the key pool for keys it has not tried yet; every failure
moves on to the next key, and an exhausted provider moves on to the next
provider. Callers always get a result object back, never a vendor error.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
import uuid
from collections.abc import AsyncIterator, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from keyrelay.core.adapters import (
    GenerateRequest,
    ProviderAdapter,
    TokenUsage,
    default_adapters,
)
from keyrelay.core.error_types import FailureKind
from keyrelay.core.exceptions import AdapterError
from keyrelay.core.logging import correlation_context
from keyrelay.core.provider.catalog import ProviderId

if TYPE_CHECKING:
    from keyrelay.core.provider.credential import CredentialRecord
    from keyrelay.core.provider.provider_state import ProviderState
    from keyrelay.core.provider.registry import ProviderRegistry

logger = logging.getLogger(__name__)

EXHAUSTED_MESSAGE = "No provider/key available"


@dataclass
class GenerateOptions:
    """Per-request knobs. Unset numeric fields fall back to configured defaults."""

    model: str | None = None
    system_prompt: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    preferred_provider: str | ProviderId | None = None


@dataclass(frozen=True)
class Attempt:
    """One adapter call made while serving a request."""

    provider: ProviderId
    key_fingerprint: str
    model: str
    failure: FailureKind | None = None
    error: str | None = None
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.failure is None


@dataclass
class GenerateResult:
    success: bool
    content: str | None = None
    provider: ProviderId | None = None
    model: str | None = None
    usage: TokenUsage | None = None
    error: str | None = None
    attempts: list[Attempt] = field(default_factory=list)
    request_id: str | None = None


class FailoverOrchestrator:
    """Serve generation requests with provider and key failover."""

    def __init__(
        self,
        registry: "ProviderRegistry",
        adapters: Mapping[ProviderId, ProviderAdapter] | None = None,
        *,
        timeout: float | None = None,
        default_max_tokens: int | None = None,
        default_temperature: float | None = None,
    ) -> None:
        self.registry = registry
        self.adapters = dict(adapters) if adapters is not None else default_adapters()
        self._timeout = timeout
        self._default_max_tokens = default_max_tokens
        self._default_temperature = default_temperature

    # Unset values fall back to config, resolved per call

    @property
    def timeout(self) -> float:
        if self._timeout is not None:
            return self._timeout
        from keyrelay.core.config import config

        return config.request_timeout

    @property
    def default_max_tokens(self) -> int:
        if self._default_max_tokens is not None:
            return self._default_max_tokens
        from keyrelay.core.config import config

        return config.default_max_tokens

    @property
    def default_temperature(self) -> float:
        if self._default_temperature is not None:
            return self._default_temperature
        from keyrelay.core.config import config

        return config.default_temperature

    # Planning

    def candidate_providers(
        self, preferred: str | ProviderId | None = None
    ) -> list["ProviderState"]:
        """Enabled providers in failover order, the preferred one first.

        An unknown ``preferred`` id is ignored and the configured order is used.
        """
        enabled = self.registry.get_enabled_providers()
        if preferred is None:
            return enabled

        preferred_id = ProviderId.try_parse(preferred)
        if preferred_id is None:
            logger.debug("Unknown preferred provider %r; using configured order", preferred)
            return enabled
        head = [s for s in enabled if s.provider is preferred_id]
        if not head:
            logger.debug("Preferred provider %s is not enabled; ignoring", preferred_id.value)
        return head + [s for s in enabled if s.provider is not preferred_id]

    def resolve_model(self, state: "ProviderState", options: GenerateOptions) -> str:
        """Pick the model for ``state``.

        The requested model applies to the preferred provider, or to any
        provider that knows it; otherwise the provider's selected model, else
        the catalog default.
        """
        if options.model:
            preferred = ProviderId.try_parse(options.preferred_provider)
            if state.provider is preferred or state.knows_model(options.model):
                return options.model
        return state.effective_model

    def build_request(
        self, prompt: str, state: "ProviderState", options: GenerateOptions
    ) -> GenerateRequest:
        return GenerateRequest(
            prompt=prompt,
            model=self.resolve_model(state, options),
            system_prompt=options.system_prompt,
            max_tokens=options.max_tokens or self.default_max_tokens,
            temperature=(
                options.temperature
                if options.temperature is not None
                else self.default_temperature
            ),
        )

    def _record_failure(
        self,
        state: "ProviderState",
        record: "CredentialRecord",
        request: GenerateRequest,
        error: AdapterError,
        start: float,
    ) -> Attempt:
        state.pool.record_failure(
            record.secret, rate_limited=error.kind.is_rate_limit, retry_after=error.retry_after
        )
        logger.warning(
            "%s key %s failed (%s): %s",
            state.provider.value,
            record.fingerprint,
            error.kind.value,
            error.message,
        )
        return Attempt(
            provider=state.provider,
            key_fingerprint=record.fingerprint,
            model=request.model,
            failure=error.kind,
            error=error.message,
            duration_ms=(time.perf_counter() - start) * 1000,
        )

    def _timeout_error(self, adapter: ProviderAdapter) -> AdapterError:
        return AdapterError(
            FailureKind.TRANSPORT,
            f"{adapter.display_name}: timed out after {self.timeout:g}s",
        )

    @staticmethod
    def exhausted(attempts: list[Attempt], request_id: str) -> GenerateResult:
        error = EXHAUSTED_MESSAGE
        if attempts:
            last = attempts[-1]
            error += f" (last error from {last.provider.value}: {last.error})"
        else:
            error += " (no enabled provider has a usable key)"
        logger.warning("%s after %d attempt(s)", EXHAUSTED_MESSAGE, len(attempts))
        return GenerateResult(success=False, error=error, attempts=attempts, request_id=request_id)

    # Entry points

    async def generate(self, prompt: str, options: GenerateOptions | None = None) -> GenerateResult:
        """Generate text, failing over across keys and providers.

        Never raises for vendor failures; exhaustion is reported on the result.
        """
        options = options or GenerateOptions()
        request_id = uuid.uuid4().hex
        attempts: list[Attempt] = []

        with correlation_context(request_id):
            for state in self.candidate_providers(options.preferred_provider):
                adapter = self.adapters.get(state.provider)
                if adapter is None:
                    logger.debug("No adapter registered for %s", state.provider.value)
                    continue
                request = self.build_request(prompt, state, options)

                for record in _untried_keys(state):
                    start = time.perf_counter()
                    try:
                        response = await asyncio.wait_for(
                            adapter.generate(record.secret, request), self.timeout
                        )
                    except asyncio.TimeoutError:
                        error = self._timeout_error(adapter)
                    except AdapterError as e:
                        error = e
                    except Exception as e:
                        error = adapter.unexpected_error(e)
                    else:
                        state.pool.record_success(record.secret)
                        attempts.append(
                            Attempt(
                                provider=state.provider,
                                key_fingerprint=record.fingerprint,
                                model=response.model,
                                duration_ms=(time.perf_counter() - start) * 1000,
                            )
                        )
                        logger.debug(
                            "Served by %s key %s (%s)",
                            state.provider.value,
                            record.fingerprint,
                            response.model,
                        )
                        return GenerateResult(
                            success=True,
                            content=response.content,
                            provider=state.provider,
                            model=response.model,
                            usage=response.usage,
                            attempts=attempts,
                            request_id=request_id,
                        )

                    attempts.append(self._record_failure(state, record, request, error, start))

            return self.exhausted(attempts, request_id)

    def stream(self, prompt: str, options: GenerateOptions | None = None) -> "GenerationStream":
        """Start a streaming generation. Iterate the returned object for chunks."""
        return GenerationStream(self, prompt, options or GenerateOptions())


def _untried_keys(state: "ProviderState") -> "Iterator[CredentialRecord]":
    """Yield each usable key of ``state`` at most once, in pool selection order."""
    tried: set[str] = set()
    while True:
        record = state.pool.next_key(exclude=tried)
        if record is None:
            return
        tried.add(record.secret)
        yield record


class GenerationStream:
    """Async iterator of text chunks with failover before the first chunk.

    Once a chunk has been delivered the request is committed to that key; a
    later failure ends the stream. Iteration never raises for vendor
    failures. After iteration ``result`` holds the final GenerateResult with
    the full text (or the partial text and the error).
    """

    def __init__(
        self, orchestrator: FailoverOrchestrator, prompt: str, options: GenerateOptions
    ) -> None:
        self._orchestrator = orchestrator
        self._prompt = prompt
        self._options = options
        self._started = False
        self.request_id = uuid.uuid4().hex
        self.result: GenerateResult | None = None

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("GenerationStream can only be iterated once")
        self._started = True
        return self._run()

    async def collect(self) -> GenerateResult:
        """Drain the stream and return the final result."""
        async for _ in self:
            pass
        if self.result is None:
            raise RuntimeError("GenerationStream finished without a result")
        return self.result

    async def _run(self) -> AsyncIterator[str]:
        orchestrator = self._orchestrator
        attempts: list[Attempt] = []
        try:
            for state in orchestrator.candidate_providers(self._options.preferred_provider):
                adapter = orchestrator.adapters.get(state.provider)
                if adapter is None:
                    continue
                request = orchestrator.build_request(self._prompt, state, self._options)

                for record in _untried_keys(state):
                    start = time.perf_counter()
                    chunks: list[str] = []
                    error: AdapterError | None = None
                    try:
                        async with contextlib.aclosing(
                            adapter.stream(record.secret, request)
                        ) as source:
                            iterator = source.__aiter__()
                            while True:
                                try:
                                    chunk = await asyncio.wait_for(
                                        iterator.__anext__(), orchestrator.timeout
                                    )
                                except StopAsyncIteration:
                                    break
                                chunks.append(chunk)
                                yield chunk
                    except asyncio.TimeoutError:
                        error = orchestrator._timeout_error(adapter)
                    except AdapterError as e:
                        error = e
                    except Exception as e:
                        error = adapter.unexpected_error(e)

                    if error is None and not chunks:
                        error = AdapterError(
                            FailureKind.EMPTY, f"{adapter.display_name}: empty stream"
                        )

                    if error is not None:
                        attempts.append(
                            orchestrator._record_failure(state, record, request, error, start)
                        )
                        if chunks:
                            self.result = GenerateResult(
                                success=False,
                                content="".join(chunks),
                                provider=state.provider,
                                model=request.model,
                                error=f"Stream interrupted: {error.message}",
                                attempts=attempts,
                                request_id=self.request_id,
                            )
                            return
                        continue

                    state.pool.record_success(record.secret)
                    attempts.append(
                        Attempt(
                            provider=state.provider,
                            key_fingerprint=record.fingerprint,
                            model=request.model,
                            duration_ms=(time.perf_counter() - start) * 1000,
                        )
                    )
                    self.result = GenerateResult(
                        success=True,
                        content="".join(chunks),
                        provider=state.provider,
                        model=request.model,
                        attempts=attempts,
                        request_id=self.request_id,
                    )
                    return

            self.result = orchestrator.exhausted(attempts, self.request_id)
        finally:
            if self.result is None:
                self.result = GenerateResult(
                    success=False,
                    error="Stream closed by the consumer before completion",
                    attempts=attempts,
                    request_id=self.request_id,
                )
