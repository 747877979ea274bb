"""Environment-driven configuration."""

from keyrelay.core.config.config import Config, config
from keyrelay.core.config.context import temporary_config
from keyrelay.core.config.schema import ConfigSchema, EnvVarSpec
from keyrelay.core.config.validation import ConfigError, load_env_var, validate_all

__all__ = [
    "Config",
    "ConfigError",
    "ConfigSchema",
    "EnvVarSpec",
    "config",
    "load_env_var",
    "temporary_config",
    "validate_all",
]
