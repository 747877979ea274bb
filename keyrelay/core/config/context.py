"""Scoped configuration for tests and one-off scripts."""

import os
from collections.abc import Generator, Mapping
from contextlib import contextmanager

from keyrelay.core.config.config import Config


@contextmanager
def temporary_config(
    env_overrides: Mapping[str, str] | None = None,
    clear_provider_keys: bool = True,
) -> Generator[Config, None, None]:
    """Yield a Config built from a patched environment.

    The module singleton is left alone. Every variable touched inside the
    block is put back (or removed again) on exit.

    Args:
        env_overrides: Variables to set while the block runs.
        clear_provider_keys: Hide ``*_API_KEY`` variables first.

    Example:
        with temporary_config({"KEYRELAY_REQUEST_TIMEOUT": "5"}) as cfg:
            assert cfg.request_timeout == 5.0
    """
    overrides = dict(env_overrides or {})
    hidden = [k for k in os.environ if k.endswith("_API_KEY")] if clear_provider_keys else []
    saved = {k: os.environ.get(k) for k in [*hidden, *overrides]}

    try:
        for key in hidden:
            del os.environ[key]
        os.environ.update(overrides)
        yield Config()
    finally:
        for key, value in saved.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
