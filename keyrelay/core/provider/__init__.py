"""Provider catalog, credentials, key pools and the registry."""

from .catalog import (
    DEFAULT_PROVIDER_ORDER,
    PROVIDER_CATALOG,
    ProviderDescriptor,
    ProviderId,
    RateLimit,
    get_descriptor,
    normalize_provider_order,
)
from .credential import (
    FAILURE_DISABLE_THRESHOLD,
    RATE_LIMIT_BACKOFF_SECONDS,
    CredentialRecord,
    fingerprint_secret,
)
from .key_pool import KeyPool, PoolStats
from .model_info import ModelDescriptor, ModelPricing
from .provider_state import ProviderState
from .registry import (
    ProviderRegistry,
    ProviderSummary,
    get_provider_registry,
    reset_provider_registry,
)

__all__ = [
    "DEFAULT_PROVIDER_ORDER",
    "FAILURE_DISABLE_THRESHOLD",
    "PROVIDER_CATALOG",
    "RATE_LIMIT_BACKOFF_SECONDS",
    "CredentialRecord",
    "KeyPool",
    "ModelDescriptor",
    "ModelPricing",
    "PoolStats",
    "ProviderDescriptor",
    "ProviderId",
    "ProviderRegistry",
    "ProviderState",
    "ProviderSummary",
    "RateLimit",
    "fingerprint_secret",
    "get_descriptor",
    "get_provider_registry",
    "normalize_provider_order",
    "reset_provider_registry",
]
