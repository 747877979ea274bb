"""Configuration singleton for keyrelay.

This module provides a simple singleton that gives direct access to
configuration values without unnecessary abstraction.

Configuration is organized into focused groups:
- logging: log level
- requests: per-call timeout, failover order, generation defaults
- openrouter: attribution headers
- state: location of the persisted registry state
"""

from pathlib import Path

from keyrelay.core.config.settings import (
    LoggingConfig,
    OpenRouterConfig,
    RequestConfig,
    StateConfig,
)

STATE_FILENAME = "state.json"


class Config:
    """Configuration with direct property access to all settings.

    All values are loaded at initialization time from environment variables
    using schema-based validation, so a bad value fails fast with ConfigError.
    """

    def __init__(self) -> None:
        self._logging = LoggingConfig.load()
        self._requests = RequestConfig.load()
        self._openrouter = OpenRouterConfig.load()
        self._state = StateConfig.load()

    # Logging settings
    @property
    def log_level(self) -> str:
        return self._logging.log_level

    # Request settings
    @property
    def request_timeout(self) -> float:
        return self._requests.request_timeout

    @property
    def provider_order(self) -> tuple[str, ...]:
        return self._requests.provider_order

    @property
    def default_max_tokens(self) -> int:
        return self._requests.default_max_tokens

    @property
    def default_temperature(self) -> float:
        return self._requests.default_temperature

    # OpenRouter settings
    @property
    def openrouter_referer(self) -> str:
        return self._openrouter.referer

    @property
    def openrouter_title(self) -> str:
        return self._openrouter.title

    # State settings
    @property
    def home_dir(self) -> Path:
        return Path(self._state.home).expanduser()

    @property
    def state_file(self) -> Path:
        return self.home_dir / STATE_FILENAME

    @classmethod
    def reset_singleton(cls) -> None:
        """Reset the global config singleton for test isolation.

        Recreates the singleton after the test environment has been modified.
        Never call this in production code.
        """
        global config
        config = cls()

        import keyrelay.core.config as package

        package.config = config


# Module-level singleton
config = Config()
