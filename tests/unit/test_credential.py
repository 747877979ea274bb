"""Tests for credential records and the provider catalog."""

import pytest

from keyrelay.core.exceptions import ValidationError
from keyrelay.core.provider import (
    DEFAULT_PROVIDER_ORDER,
    PROVIDER_CATALOG,
    CredentialRecord,
    ProviderId,
    RateLimit,
    fingerprint_secret,
    get_descriptor,
    normalize_provider_order,
)

SECRET = "sk-test-0123456789abcdef"


@pytest.mark.unit
class TestCredentialRecord:
    def test_defaults(self):
        record = CredentialRecord(secret=SECRET, provider="deepseek")

        assert record.provider is ProviderId.DEEPSEEK
        assert record.usage_count == 0
        assert record.failure_count == 0
        assert record.last_used == 0.0
        assert not record.disabled
        assert not record.validated

    def test_repr_never_contains_secret(self):
        record = CredentialRecord(secret=SECRET, provider=ProviderId.GEMINI)

        assert SECRET not in repr(record)
        assert record.fingerprint in repr(record)

    def test_fingerprint_is_stable_and_short(self):
        assert fingerprint_secret(SECRET) == fingerprint_secret(SECRET)
        assert fingerprint_secret(SECRET).startswith("sha256:")
        assert len(fingerprint_secret(SECRET)) == len("sha256:") + 8
        assert fingerprint_secret(SECRET) != fingerprint_secret(SECRET + "x")

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            CredentialRecord(secret=SECRET, provider="acme")

    def test_dict_round_trip_keeps_counters_and_override(self):
        record = CredentialRecord(
            secret=SECRET,
            provider=ProviderId.OPENROUTER,
            label="team",
            usage_count=7,
            last_used=123.5,
            failure_count=2,
            disabled=True,
            validated=True,
            validated_at=100.0,
            rate_limit=RateLimit(requests_per_minute=1, requests_per_day=2, cooldown_ms=3),
        )

        restored = CredentialRecord.from_dict(record.to_dict())

        assert restored == record

    def test_from_dict_rejects_unknown_fields(self):
        data = CredentialRecord(secret=SECRET, provider="gemini").to_dict()
        data["secrte"] = "typo"

        with pytest.raises(ValidationError, match="unexpected field"):
            CredentialRecord.from_dict(data)

    def test_from_dict_requires_secret(self):
        with pytest.raises(ValidationError):
            CredentialRecord.from_dict({"provider": "gemini"})

    def test_from_dict_uses_owner_provider_when_missing(self):
        restored = CredentialRecord.from_dict({"secret": SECRET}, provider=ProviderId.VERCEL)

        assert restored.provider is ProviderId.VERCEL

    def test_cooldown_prefers_key_override(self):
        provider_limit = PROVIDER_CATALOG[ProviderId.GEMINI].rate_limit
        record = CredentialRecord(secret=SECRET, provider="gemini")
        assert record.cooldown_seconds(provider_limit) == 4.0

        record.rate_limit = RateLimit(requests_per_minute=60, requests_per_day=100, cooldown_ms=500)
        assert record.cooldown_seconds(provider_limit) == 0.5


@pytest.mark.unit
class TestCatalog:
    def test_every_provider_has_a_descriptor(self):
        assert set(PROVIDER_CATALOG) == set(ProviderId)
        for provider, descriptor in PROVIDER_CATALOG.items():
            assert descriptor.id is provider
            assert descriptor.default_model in descriptor.models

    def test_default_order(self):
        assert [p.value for p in DEFAULT_PROVIDER_ORDER] == [
            "gemini",
            "deepseek",
            "openrouter",
            "vercel",
            "perplexity",
        ]

    def test_rate_limits(self):
        assert get_descriptor("gemini").rate_limit.cooldown_ms == 4000
        assert get_descriptor("perplexity").rate_limit.cooldown_ms == 350
        assert get_descriptor("openrouter").rate_limit.requests_per_day == 50

    def test_catalog_is_read_only(self):
        with pytest.raises(TypeError):
            PROVIDER_CATALOG[ProviderId.GEMINI] = None  # type: ignore[index]

    def test_parse_is_case_insensitive(self):
        assert ProviderId.parse(" Gemini ") is ProviderId.GEMINI
        assert ProviderId.try_parse("nope") is None
        assert ProviderId.try_parse(42) is None

    def test_gemini_excludes_non_generative_models(self):
        descriptor = get_descriptor("gemini")

        assert descriptor.is_generative_model("gemini-2.5-flash")
        assert not descriptor.is_generative_model("text-embedding-004")
        assert not descriptor.is_generative_model("gemini-embedding-001")
        assert not descriptor.is_generative_model("aqa")

    def test_openai_style_exclusions(self):
        descriptor = get_descriptor("deepseek")

        assert descriptor.is_generative_model("deepseek-chat")
        assert not descriptor.is_generative_model("whisper-1")
        assert not descriptor.is_generative_model("text-embedding-3-small")

    def test_normalize_order_drops_unknown_and_duplicates(self):
        order = normalize_provider_order(["deepseek", "acme", "gemini", "deepseek"])

        assert order == [ProviderId.DEEPSEEK, ProviderId.GEMINI]
