"""Plain helpers shared by test modules."""

from keyrelay.core.provider import ModelDescriptor, ProviderId, ProviderRegistry


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def enable_provider(
    registry: ProviderRegistry,
    provider: ProviderId,
    *secrets: str,
    model: str | None = None,
) -> None:
    """Store validated keys, discover one model, select it and enable the provider."""
    state = registry.state(provider)
    model = model or state.descriptor.default_model
    for secret in secrets:
        registry.set_key(provider, secret)
        state.pool.mark_validated(secret)
    if not state.has_model(model):
        state.replace_models(state.models + [ModelDescriptor(id=model)])
    assert registry.select_model(provider, model)
    assert registry.set_enabled(provider, True)
