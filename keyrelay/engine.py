"""KeyRelay: the context object wiring registry, services and storage."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any

from keyrelay.core.adapters import ProviderAdapter, default_adapters
from keyrelay.core.provider.catalog import ProviderId
from keyrelay.core.provider.registry import ProviderRegistry
from keyrelay.core.storage import StateStore
from keyrelay.services.orchestrator import (
    FailoverOrchestrator,
    GenerateOptions,
    GenerateResult,
    GenerationStream,
)
from keyrelay.services.validation import KeyTestResult, ValidationService

logger = logging.getLogger(__name__)


class KeyRelay:
    """Entry point for applications.

    Example:
        relay = KeyRelay(store=FileSystemStateStore())
        relay.load()
        result = await relay.generate("Write a haiku", max_tokens=200)
        if result.success:
            print(result.content)
    """

    def __init__(
        self,
        registry: ProviderRegistry | None = None,
        adapters: Mapping[ProviderId, ProviderAdapter] | None = None,
        store: StateStore | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        if registry is None:
            from keyrelay.core.config import config

            registry = ProviderRegistry(config.provider_order or None)
        self.registry = registry
        self.adapters = dict(adapters) if adapters is not None else default_adapters()
        self.store = store

        self.validation = ValidationService(self.registry, self.adapters, timeout=timeout)
        self.registry.validation_service = self.validation
        self.orchestrator = FailoverOrchestrator(self.registry, self.adapters, timeout=timeout)

    async def generate(
        self, prompt: str, options: GenerateOptions | None = None, **overrides: Any
    ) -> GenerateResult:
        """Generate text with failover. Keyword overrides build GenerateOptions."""
        return await self.orchestrator.generate(prompt, _options(options, overrides))

    def stream(
        self, prompt: str, options: GenerateOptions | None = None, **overrides: Any
    ) -> GenerationStream:
        return self.orchestrator.stream(prompt, _options(options, overrides))

    async def validate_key(self, provider: str | ProviderId, secret: str) -> KeyTestResult:
        """Validate a key and keep it in the pool when valid."""
        return await self.registry.test_key(provider, secret)

    def load(self) -> bool:
        """Replace registry state with the stored blob.

        Returns:
            False when no store is configured or nothing was stored.

        Raises:
            StorageError: If the stored state cannot be read.
            StateFormatError: If the stored blob is malformed.
        """
        if self.store is None:
            return False
        blob = self.store.read_state()
        if blob is None:
            return False
        self.registry.import_state(blob)
        logger.debug("Loaded registry state")
        return True

    def save(self) -> None:
        """Persist the registry state.

        Raises:
            RuntimeError: If no store is configured.
            StorageError: If the write fails.
        """
        if self.store is None:
            raise RuntimeError("KeyRelay has no state store configured")
        self.store.write_state(self.registry.export())


def _options(options: GenerateOptions | None, overrides: dict[str, Any]) -> GenerateOptions:
    if options is not None and overrides:
        raise TypeError("Pass either a GenerateOptions instance or keyword overrides, not both")
    return options if options is not None else GenerateOptions(**overrides)


_relay: KeyRelay | None = None
_relay_lock = threading.Lock()


def get_key_relay() -> KeyRelay:
    """Return a process-wide KeyRelay over the default registry and state file."""
    global _relay
    if _relay is None:
        with _relay_lock:
            if _relay is None:
                from keyrelay.core.provider.registry import get_provider_registry
                from keyrelay.core.storage import FileSystemStateStore

                _relay = KeyRelay(get_provider_registry(), store=FileSystemStateStore())
    return _relay


def reset_key_relay() -> None:
    global _relay
    with _relay_lock:
        _relay = None
