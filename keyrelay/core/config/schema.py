"""Declarative schema for environment variable configuration.

This module provides a single source of truth for all environment variables,
including automatic type coercion, validation, and documentation generation.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class EnvVarSpec:
    """Specification for a single environment variable.

    Attributes:
        name: Environment variable name (e.g., "LOG_LEVEL")
        default: Default value if env var not set
        type_hint: Type for validation (int, str, float, bool, tuple)
        description: Human-readable description for docs
        validator: Optional custom validation function
        coerce: Optional function to convert string to target type
    """

    name: str
    default: Any
    type_hint: type
    description: str
    validator: Callable[[Any], bool] | None = None
    coerce: Callable[[str], Any] | None = None


class ConfigSchema:
    """Registry of all configuration environment variables."""

    LOG_LEVEL = EnvVarSpec(
        name="LOG_LEVEL",
        default="INFO",
        type_hint=str,
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        validator=lambda x: x.split()[0].upper()
        in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )

    # === Provider calls ===

    KEYRELAY_REQUEST_TIMEOUT = EnvVarSpec(
        name="KEYRELAY_REQUEST_TIMEOUT",
        default=60.0,
        type_hint=float,
        description="Timeout in seconds for each validation or generation call",
        validator=lambda x: x > 0,
    )

    KEYRELAY_PROVIDER_ORDER = EnvVarSpec(
        name="KEYRELAY_PROVIDER_ORDER",
        default=(),
        type_hint=tuple,
        description="Comma-separated failover order (empty = built-in order)",
    )

    KEYRELAY_DEFAULT_MAX_TOKENS = EnvVarSpec(
        name="KEYRELAY_DEFAULT_MAX_TOKENS",
        default=4000,
        type_hint=int,
        description="Maximum output tokens when the caller does not specify one",
        validator=lambda x: x > 0,
    )

    KEYRELAY_DEFAULT_TEMPERATURE = EnvVarSpec(
        name="KEYRELAY_DEFAULT_TEMPERATURE",
        default=0.7,
        type_hint=float,
        description="Sampling temperature when the caller does not specify one",
        validator=lambda x: 0.0 <= x <= 2.0,
    )

    # === OpenRouter attribution headers ===

    KEYRELAY_OPENROUTER_REFERER = EnvVarSpec(
        name="KEYRELAY_OPENROUTER_REFERER",
        default="https://github.com/keyrelay/keyrelay",
        type_hint=str,
        description="HTTP-Referer header sent to OpenRouter",
    )

    KEYRELAY_OPENROUTER_TITLE = EnvVarSpec(
        name="KEYRELAY_OPENROUTER_TITLE",
        default="keyrelay",
        type_hint=str,
        description="X-Title header sent to OpenRouter",
    )

    # === State ===

    KEYRELAY_HOME = EnvVarSpec(
        name="KEYRELAY_HOME",
        default="~/.keyrelay",
        type_hint=str,
        description="Directory holding the persisted registry state (state.json)",
    )

    @classmethod
    def all_specs(cls) -> dict[str, EnvVarSpec]:
        """Return every EnvVarSpec declared on the schema, keyed by env var name."""
        return {
            value.name: value
            for value in vars(cls).values()
            if isinstance(value, EnvVarSpec)
        }
