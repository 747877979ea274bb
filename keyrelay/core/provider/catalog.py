"""Static provider catalog.

One immutable descriptor per supported vendor: endpoint, candidate models,
rate limits and the model id patterns that never produce text.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class ProviderId(str, Enum):
    """Closed set of supported providers."""

    GEMINI = "gemini"
    DEEPSEEK = "deepseek"
    OPENROUTER = "openrouter"
    VERCEL = "vercel"
    PERPLEXITY = "perplexity"

    @classmethod
    def parse(cls, value: "str | ProviderId") -> "ProviderId":
        """Return the ProviderId for ``value``.

        Raises:
            ValueError: If ``value`` names no supported provider.
        """
        if isinstance(value, ProviderId):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            known = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown provider '{value}'. Known providers: {known}") from None

    @classmethod
    def try_parse(cls, value: object) -> "ProviderId | None":
        if not isinstance(value, (str, ProviderId)):
            return None
        try:
            return cls.parse(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class RateLimit:
    """Vendor rate limit. ``cooldown_ms`` is the minimum gap between uses of one key."""

    requests_per_minute: int
    requests_per_day: int
    cooldown_ms: int

    @property
    def cooldown_seconds(self) -> float:
        return self.cooldown_ms / 1000.0

    def to_dict(self) -> dict[str, int]:
        return {
            "requests_per_minute": self.requests_per_minute,
            "requests_per_day": self.requests_per_day,
            "cooldown_ms": self.cooldown_ms,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "RateLimit":
        return cls(
            requests_per_minute=int(data["requests_per_minute"]),  # type: ignore[call-overload]
            requests_per_day=int(data["requests_per_day"]),  # type: ignore[call-overload]
            cooldown_ms=int(data["cooldown_ms"]),  # type: ignore[call-overload]
        )


@dataclass(frozen=True)
class ProviderDescriptor:
    """Descriptive metadata for one provider. Not user-editable."""

    id: ProviderId
    name: str
    description: str
    base_url: str
    models: tuple[str, ...]
    default_model: str
    rate_limit: RateLimit
    signup_url: str
    key_prefix: str | None = None
    excluded_model_patterns: tuple[str, ...] = ()
    required_model_pattern: str | None = None

    def is_generative_model(self, model_id: str) -> bool:
        """Check whether ``model_id`` survives this provider's exclusion rules."""
        lowered = model_id.lower()
        if self.required_model_pattern and self.required_model_pattern not in lowered:
            return False
        return not any(pattern in lowered for pattern in self.excluded_model_patterns)


# Non-generative model families exposed by OpenAI-compatible /models listings
_OPENAI_STYLE_EXCLUSIONS = ("embed", "whisper", "tts", "moderation", "dall-e", "rerank")

_CATALOG: dict[ProviderId, ProviderDescriptor] = {
    ProviderId.GEMINI: ProviderDescriptor(
        id=ProviderId.GEMINI,
        name="Google Gemini",
        description="Google AI Studio - primary free tier",
        base_url="https://generativelanguage.googleapis.com/v1beta",
        models=("gemini-2.5-flash", "gemini-2.0-flash-exp", "gemini-1.5-pro"),
        default_model="gemini-2.5-flash",
        rate_limit=RateLimit(requests_per_minute=15, requests_per_day=1500, cooldown_ms=4000),
        signup_url="https://aistudio.google.com/",
        excluded_model_patterns=("embedding", "aqa"),
        required_model_pattern="gemini",
    ),
    ProviderId.DEEPSEEK: ProviderDescriptor(
        id=ProviderId.DEEPSEEK,
        name="DeepSeek",
        description="Inexpensive general and coding models",
        base_url="https://api.deepseek.com/v1",
        models=("deepseek-chat", "deepseek-coder", "deepseek-reasoner"),
        default_model="deepseek-chat",
        rate_limit=RateLimit(requests_per_minute=60, requests_per_day=10000, cooldown_ms=1000),
        signup_url="https://platform.deepseek.com/",
        excluded_model_patterns=_OPENAI_STYLE_EXCLUSIONS,
    ),
    ProviderId.OPENROUTER: ProviderDescriptor(
        id=ProviderId.OPENROUTER,
        name="OpenRouter",
        description="Model aggregator with a unified API",
        base_url="https://openrouter.ai/api/v1",
        models=(
            "deepseek/deepseek-chat:free",
            "google/gemma-7b-it:free",
            "meta-llama/llama-3-8b-instruct:free",
            "mistralai/mistral-7b-instruct:free",
            "openai/gpt-4o-mini",
            "anthropic/claude-3-haiku",
        ),
        default_model="deepseek/deepseek-chat:free",
        # 50/day on the free tier, 1000/day with purchased credits
        rate_limit=RateLimit(requests_per_minute=20, requests_per_day=50, cooldown_ms=3000),
        signup_url="https://openrouter.ai/",
        excluded_model_patterns=_OPENAI_STYLE_EXCLUSIONS,
    ),
    ProviderId.VERCEL: ProviderDescriptor(
        id=ProviderId.VERCEL,
        name="Vercel AI Gateway",
        description="Unified AI proxy with its own upstream failover",
        base_url="https://api.vercel.ai/v1",
        models=(
            "anthropic/claude-sonnet-4",
            "openai/gpt-5.2",
            "google/gemini-2.5-flash",
            "anthropic/claude-haiku-4.5",
        ),
        default_model="anthropic/claude-sonnet-4",
        rate_limit=RateLimit(requests_per_minute=60, requests_per_day=1000, cooldown_ms=1000),
        signup_url="https://vercel.com/docs/ai-gateway",
        excluded_model_patterns=_OPENAI_STYLE_EXCLUSIONS,
    ),
    ProviderId.PERPLEXITY: ProviderDescriptor(
        id=ProviderId.PERPLEXITY,
        name="Perplexity AI",
        description="Search-augmented models",
        base_url="https://api.perplexity.ai",
        models=("sonar", "sonar-pro", "sonar-reasoning", "sonar-reasoning-pro"),
        default_model="sonar",
        rate_limit=RateLimit(requests_per_minute=3, requests_per_day=5000, cooldown_ms=350),
        signup_url="https://www.perplexity.ai/",
        key_prefix="pplx-",
        excluded_model_patterns=_OPENAI_STYLE_EXCLUSIONS,
    ),
}

PROVIDER_CATALOG: Mapping[ProviderId, ProviderDescriptor] = MappingProxyType(_CATALOG)

DEFAULT_PROVIDER_ORDER: tuple[ProviderId, ...] = (
    ProviderId.GEMINI,
    ProviderId.DEEPSEEK,
    ProviderId.OPENROUTER,
    ProviderId.VERCEL,
    ProviderId.PERPLEXITY,
)


def get_descriptor(provider: "str | ProviderId") -> ProviderDescriptor:
    """Return the catalog entry for ``provider``.

    Raises:
        ValueError: If the provider is unknown.
    """
    return PROVIDER_CATALOG[ProviderId.parse(provider)]


def normalize_provider_order(order: "list[str] | tuple[str, ...] | list[ProviderId]") -> list[ProviderId]:
    """Keep known provider ids, first occurrence wins. Unknown entries are dropped."""
    result: list[ProviderId] = []
    for entry in order:
        provider = ProviderId.try_parse(entry)
        if provider is not None and provider not in result:
            result.append(provider)
    return result
