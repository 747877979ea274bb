"""Reading schema entries out of the environment.

Raw strings are coerced by ``EnvVarSpec.type_hint`` (or the entry's own
``coerce``) and then passed through its validator. Any problem
surfaces as a ConfigError naming the variable.
"""

import os
from collections.abc import Callable
from typing import Any

from keyrelay.core.config.schema import ConfigSchema, EnvVarSpec

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})


class ConfigError(Exception):
    """An environment variable holds an unusable value.

    Attributes:
        env_var: Variable name
        value: Raw string as found in the environment
        message: What is wrong with it
    """

    def __init__(self, env_var: str, value: str, message: str) -> None:
        self.env_var = env_var
        self.value = value
        self.message = message
        super().__init__(f"{env_var}={value}: {message}")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_WORDS


def _parse_tuple(value: str) -> tuple[str, ...]:
    """Split on commas, dropping blank items."""
    return tuple(item for item in (part.strip() for part in value.split(",")) if item)


_COERCERS: dict[type, Callable[[str], Any]] = {
    bool: _parse_bool,
    int: int,
    float: float,
    tuple: _parse_tuple,
    str: str,
}


def load_env_var(spec: EnvVarSpec) -> Any:
    """Return the typed value of ``spec``, or its default when unset.

    Raises:
        ConfigError: If coercion fails or the validator rejects the value
    """
    raw = os.environ.get(spec.name)
    if raw is None:
        return spec.default

    coerce = spec.coerce or _COERCERS.get(spec.type_hint, str)
    type_name = spec.type_hint.__name__
    try:
        value = coerce(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(spec.name, raw, f"Cannot convert to {type_name}: {e}") from e

    if spec.validator is None:
        return value
    try:
        accepted = spec.validator(value)
    except (IndexError, TypeError, ValueError) as e:
        raise ConfigError(spec.name, raw, f"Validation error: {e}") from e
    if not accepted:
        raise ConfigError(spec.name, raw, f"Validation failed for type {type_name}")
    return value


def validate_all() -> list[ConfigError]:
    """Check every schema entry; return all problems instead of stopping at the first."""
    errors: list[ConfigError] = []
    for spec in ConfigSchema.all_specs().values():
        try:
            load_env_var(spec)
        except ConfigError as e:
            errors.append(e)
    return errors
