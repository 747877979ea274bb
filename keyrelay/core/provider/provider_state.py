"""Mutable per-provider state owned by the registry."""

from __future__ import annotations

from dataclasses import dataclass, field

from .catalog import PROVIDER_CATALOG, ProviderDescriptor, ProviderId
from .key_pool import KeyPool
from .model_info import ModelDescriptor


@dataclass
class ProviderState:
    """Enabled flag, model selection, discovered models and the key pool.

    ``validated`` is derived from the pool: a provider counts as validated
    while at least one of its keys has passed validation.
    """

    provider: ProviderId
    pool: KeyPool
    enabled: bool = False
    selected_model: str | None = None
    models: list[ModelDescriptor] = field(default_factory=list)
    last_validated: float | None = None
    last_error: str | None = None

    @property
    def descriptor(self) -> ProviderDescriptor:
        return PROVIDER_CATALOG[self.provider]

    @property
    def validated(self) -> bool:
        return self.pool.has_validated_key

    @property
    def model_ids(self) -> list[str]:
        return [m.id for m in self.models]

    def has_model(self, model_id: str) -> bool:
        return any(m.id == model_id for m in self.models)

    def knows_model(self, model_id: str) -> bool:
        """True if the model was discovered or is listed in the catalog."""
        return self.has_model(model_id) or model_id in self.descriptor.models

    @property
    def effective_model(self) -> str:
        """Model used when the caller does not pick one."""
        return self.selected_model or self.descriptor.default_model

    def replace_models(self, models: list[ModelDescriptor]) -> None:
        self.models = list(models)
