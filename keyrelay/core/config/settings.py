"""Settings groups loaded from the environment.

Each group is a frozen dataclass with a ``load()`` classmethod that reads
its fields through the schema, so type coercion and validation happen in
one place.
"""

from dataclasses import dataclass

from keyrelay.core.config.schema import ConfigSchema
from keyrelay.core.config.validation import load_env_var


@dataclass(frozen=True)
class LoggingConfig:
    """Logging settings.

    Attributes:
        log_level: Root log level name (may carry trailing comment text)
    """

    log_level: str

    @classmethod
    def load(cls) -> "LoggingConfig":
        return cls(log_level=load_env_var(ConfigSchema.LOG_LEVEL))


@dataclass(frozen=True)
class RequestConfig:
    """Settings applied to every provider call.

    Attributes:
        request_timeout: Per-call timeout in seconds
        provider_order: Configured failover order as raw provider names
        default_max_tokens: Output token cap used when the caller sets none
        default_temperature: Sampling temperature used when the caller sets none
    """

    request_timeout: float
    provider_order: tuple[str, ...]
    default_max_tokens: int
    default_temperature: float

    @classmethod
    def load(cls) -> "RequestConfig":
        """Load request settings.

        Raises:
            ConfigError: If any environment variable fails validation
        """
        return cls(
            request_timeout=load_env_var(ConfigSchema.KEYRELAY_REQUEST_TIMEOUT),
            provider_order=load_env_var(ConfigSchema.KEYRELAY_PROVIDER_ORDER),
            default_max_tokens=load_env_var(ConfigSchema.KEYRELAY_DEFAULT_MAX_TOKENS),
            default_temperature=load_env_var(ConfigSchema.KEYRELAY_DEFAULT_TEMPERATURE),
        )


@dataclass(frozen=True)
class OpenRouterConfig:
    """Attribution headers OpenRouter asks integrators to send."""

    referer: str
    title: str

    @classmethod
    def load(cls) -> "OpenRouterConfig":
        return cls(
            referer=load_env_var(ConfigSchema.KEYRELAY_OPENROUTER_REFERER),
            title=load_env_var(ConfigSchema.KEYRELAY_OPENROUTER_TITLE),
        )


@dataclass(frozen=True)
class StateConfig:
    """Where persisted registry state lives."""

    home: str

    @classmethod
    def load(cls) -> "StateConfig":
        return cls(home=load_env_var(ConfigSchema.KEYRELAY_HOME))
