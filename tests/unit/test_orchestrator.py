"""Tests for provider and key failover."""

import asyncio

import pytest

from keyrelay.core.error_types import FailureKind
from keyrelay.core.provider import ProviderId
from keyrelay.services import FailoverOrchestrator, GenerateOptions
from keyrelay.services.orchestrator import EXHAUSTED_MESSAGE
from tests.fixtures.fake_adapters import (
    FakeAdapter,
    auth_failed,
    empty_response,
    fake_adapters,
    rate_limited,
    transport_error,
)
from tests.fixtures.helpers import enable_provider

GEMINI_A = "AIza-gemini-key-000A"
GEMINI_B = "AIza-gemini-key-000B"
DEEPSEEK_A = "sk-deepseek-key-000A"
OPENROUTER_A = "sk-or-openrouter-000A"


class HangingAdapter(FakeAdapter):
    async def generate(self, secret, request):
        await asyncio.sleep(1)
        return await super().generate(secret, request)


@pytest.fixture
def adapters():
    return fake_adapters()


@pytest.fixture
def orchestrator(registry, adapters):
    return FailoverOrchestrator(registry, adapters, timeout=5)


def served_by(adapters, provider):
    return [secret for secret, _ in adapters[provider].calls]


@pytest.mark.unit
class TestGenerate:
    async def test_skips_disabled_and_keyless_providers(self, registry, orchestrator, adapters):
        # Gemini has a key but is disabled; DeepSeek is enabled with its only key
        # administratively disabled; OpenRouter is enabled with a key
        registry.set_key("gemini", GEMINI_A)
        enable_provider(registry, ProviderId.DEEPSEEK, DEEPSEEK_A)
        registry.disable_key("deepseek", DEEPSEEK_A)
        enable_provider(registry, ProviderId.OPENROUTER, OPENROUTER_A)

        result = await orchestrator.generate("hello")

        assert result.success
        assert result.provider is ProviderId.OPENROUTER
        assert result.content == "ok"
        assert served_by(adapters, ProviderId.GEMINI) == []
        assert served_by(adapters, ProviderId.DEEPSEEK) == []
        assert len(result.attempts) == 1

    async def test_success_updates_key_usage(self, registry, orchestrator):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)

        result = await orchestrator.generate("hello")

        assert result.success
        assert result.request_id
        assert registry.pool("gemini").get(GEMINI_A).usage_count == 1

    async def test_rate_limited_key_fails_over_to_next_key(
        self, registry, orchestrator, adapters, clock
    ):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A, GEMINI_B)
        adapters[ProviderId.GEMINI].queue(GEMINI_A, rate_limited())

        result = await orchestrator.generate("hello")

        assert result.success
        assert served_by(adapters, ProviderId.GEMINI) == [GEMINI_A, GEMINI_B]
        assert [a.failure for a in result.attempts] == [FailureKind.RATE_LIMITED, None]
        record = registry.pool("gemini").get(GEMINI_A)
        assert record.failure_count == 0
        assert record.last_used == clock.now + 60

    async def test_exhausted_provider_fails_over_to_next_provider(
        self, registry, orchestrator, adapters
    ):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        enable_provider(registry, ProviderId.DEEPSEEK, DEEPSEEK_A)
        adapters[ProviderId.GEMINI].queue(GEMINI_A, auth_failed())

        result = await orchestrator.generate("hello")

        assert result.success
        assert result.provider is ProviderId.DEEPSEEK
        assert result.model == "deepseek-chat"
        assert registry.pool("gemini").get(GEMINI_A).failure_count == 1

    async def test_each_key_tried_once(self, registry, orchestrator, adapters):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A, GEMINI_B)
        adapters[ProviderId.GEMINI].queue(GEMINI_A, transport_error(), transport_error())
        adapters[ProviderId.GEMINI].queue(GEMINI_B, transport_error(), transport_error())

        result = await orchestrator.generate("hello")

        assert not result.success
        assert sorted(served_by(adapters, ProviderId.GEMINI)) == [GEMINI_A, GEMINI_B]
        assert len(result.attempts) == 2

    async def test_exhaustion_reports_last_error(self, registry, orchestrator, adapters):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        adapters[ProviderId.GEMINI].queue(GEMINI_A, auth_failed())

        result = await orchestrator.generate("hello")

        assert not result.success
        assert result.content is None
        assert result.error.startswith(EXHAUSTED_MESSAGE)
        assert "401 - bad key" in result.error
        assert result.attempts[0].failure is FailureKind.AUTH_FAILED

    async def test_nothing_enabled(self, orchestrator):
        result = await orchestrator.generate("hello")

        assert not result.success
        assert result.error.startswith(EXHAUSTED_MESSAGE)
        assert result.attempts == []

    async def test_empty_content_is_a_failure(self, registry, orchestrator, adapters):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        adapters[ProviderId.GEMINI].queue(GEMINI_A, empty_response())

        result = await orchestrator.generate("hello")

        assert not result.success
        assert result.attempts[0].failure is FailureKind.EMPTY

    async def test_timeout_is_transport_failure(self, registry):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        adapters = {ProviderId.GEMINI: HangingAdapter(ProviderId.GEMINI)}
        orchestrator = FailoverOrchestrator(registry, adapters, timeout=0.01)

        result = await orchestrator.generate("hello")

        assert not result.success
        assert result.attempts[0].failure is FailureKind.TRANSPORT
        assert "timed out" in result.attempts[0].error

    async def test_unexpected_adapter_exception_is_recorded_and_fails_over(
        self, registry, orchestrator, adapters
    ):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A, GEMINI_B)
        adapters[ProviderId.GEMINI].queue(GEMINI_A, RuntimeError("sk-leaked-in-message"))

        result = await orchestrator.generate("hello")

        assert result.success
        assert served_by(adapters, ProviderId.GEMINI) == [GEMINI_A, GEMINI_B]
        failed = result.attempts[0]
        assert failed.failure is FailureKind.TRANSPORT
        assert "RuntimeError" in failed.error
        assert "sk-leaked" not in failed.error
        assert registry.pool("gemini").get(GEMINI_A).failure_count == 1


@pytest.mark.unit
class TestPlanning:
    async def test_preferred_provider_goes_first(self, registry, orchestrator, adapters):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        enable_provider(registry, ProviderId.DEEPSEEK, DEEPSEEK_A)

        result = await orchestrator.generate(
            "hello", GenerateOptions(preferred_provider="deepseek")
        )

        assert result.provider is ProviderId.DEEPSEEK
        assert served_by(adapters, ProviderId.GEMINI) == []

    def test_disabled_preferred_provider_is_ignored(self, registry, orchestrator):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)

        candidates = orchestrator.candidate_providers("deepseek")

        assert [s.provider for s in candidates] == [ProviderId.GEMINI]

    def test_unknown_preferred_provider_uses_configured_order(self, registry, orchestrator):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        enable_provider(registry, ProviderId.DEEPSEEK, DEEPSEEK_A)

        candidates = orchestrator.candidate_providers("claude")

        assert [s.provider for s in candidates] == [ProviderId.GEMINI, ProviderId.DEEPSEEK]

    async def test_generate_with_unknown_preferred_provider(
        self, registry, orchestrator, adapters
    ):
        enable_provider(registry, ProviderId.DEEPSEEK, DEEPSEEK_A)

        result = await orchestrator.generate("hello", GenerateOptions(preferred_provider="claude"))

        assert result.success
        assert result.provider is ProviderId.DEEPSEEK

    def test_configured_order_is_respected(self, registry, orchestrator):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        enable_provider(registry, ProviderId.DEEPSEEK, DEEPSEEK_A)
        registry.set_provider_order(["deepseek"])

        assert [s.provider for s in orchestrator.candidate_providers()] == [
            ProviderId.DEEPSEEK,
            ProviderId.GEMINI,
        ]

    def test_model_resolution(self, registry, orchestrator):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        enable_provider(registry, ProviderId.DEEPSEEK, DEEPSEEK_A)
        gemini = registry.state("gemini")
        deepseek = registry.state("deepseek")

        # Unknown to deepseek and not preferred there: falls back to its selection
        options = GenerateOptions(model="gemini-1.5-pro", preferred_provider="gemini")
        assert orchestrator.resolve_model(gemini, options) == "gemini-1.5-pro"
        assert orchestrator.resolve_model(deepseek, options) == "deepseek-chat"

        # No model requested: the selected model
        assert orchestrator.resolve_model(gemini, GenerateOptions()) == "gemini-2.5-flash"

    def test_request_defaults(self, registry, orchestrator):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)

        request = orchestrator.build_request(
            "hello", registry.state("gemini"), GenerateOptions(system_prompt="be brief")
        )

        assert request.max_tokens == 4000
        assert request.temperature == 0.7
        assert request.system_prompt == "be brief"

    def test_explicit_zero_temperature_is_kept(self, registry, orchestrator):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)

        request = orchestrator.build_request(
            "hello", registry.state("gemini"), GenerateOptions(temperature=0.0, max_tokens=10)
        )

        assert request.temperature == 0.0
        assert request.max_tokens == 10

    def test_defaults_follow_config(self, registry, monkeypatch):
        from keyrelay.core.config import Config

        monkeypatch.setenv("KEYRELAY_DEFAULT_MAX_TOKENS", "256")
        Config.reset_singleton()
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        orchestrator = FailoverOrchestrator(registry, fake_adapters())

        request = orchestrator.build_request("hi", registry.state("gemini"), GenerateOptions())

        assert request.max_tokens == 256


@pytest.mark.unit
class TestStream:
    async def test_stream_success(self, registry, orchestrator, adapters):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        adapters[ProviderId.GEMINI].queue(GEMINI_A, ["Hel", "lo"])

        stream = orchestrator.stream("hello")
        chunks = [chunk async for chunk in stream]

        assert chunks == ["Hel", "lo"]
        assert stream.result.success
        assert stream.result.content == "Hello"
        assert registry.pool("gemini").get(GEMINI_A).usage_count == 1

    async def test_failover_before_first_chunk(self, registry, orchestrator, adapters):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        enable_provider(registry, ProviderId.DEEPSEEK, DEEPSEEK_A)
        adapters[ProviderId.GEMINI].queue(GEMINI_A, rate_limited())
        adapters[ProviderId.DEEPSEEK].queue(DEEPSEEK_A, ["from ", "deepseek"])

        result = await orchestrator.stream("hello").collect()

        assert result.success
        assert result.provider is ProviderId.DEEPSEEK
        assert result.content == "from deepseek"
        assert len(result.attempts) == 2

    async def test_empty_stream_fails_over(self, registry, orchestrator, adapters):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        enable_provider(registry, ProviderId.DEEPSEEK, DEEPSEEK_A)
        adapters[ProviderId.GEMINI].queue(GEMINI_A, [])

        result = await orchestrator.stream("hello").collect()

        assert result.success
        assert result.attempts[0].failure is FailureKind.EMPTY

    async def test_failure_after_first_chunk_ends_stream(self, registry, orchestrator, adapters):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        enable_provider(registry, ProviderId.DEEPSEEK, DEEPSEEK_A)
        adapters[ProviderId.GEMINI].queue(GEMINI_A, ["partial", transport_error()])

        stream = orchestrator.stream("hello")
        chunks = [chunk async for chunk in stream]

        assert chunks == ["partial"]
        assert not stream.result.success
        assert stream.result.content == "partial"
        assert stream.result.error.startswith("Stream interrupted")
        assert served_by(adapters, ProviderId.DEEPSEEK) == []

    async def test_unexpected_exception_before_first_chunk_fails_over(
        self, registry, orchestrator, adapters
    ):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        enable_provider(registry, ProviderId.DEEPSEEK, DEEPSEEK_A)
        adapters[ProviderId.GEMINI].queue(GEMINI_A, UnicodeEncodeError("ascii", "x", 0, 1, "no"))

        result = await orchestrator.stream("hello").collect()

        assert result.success
        assert result.provider is ProviderId.DEEPSEEK
        assert result.attempts[0].failure is FailureKind.TRANSPORT
        assert registry.pool("gemini").get(GEMINI_A).failure_count == 1

    async def test_unexpected_exception_after_first_chunk_ends_stream(
        self, registry, orchestrator, adapters
    ):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        adapters[ProviderId.GEMINI].queue(GEMINI_A, ["partial", KeyError("choices")])

        result = await orchestrator.stream("hello").collect()

        assert not result.success
        assert result.content == "partial"
        assert result.error.startswith("Stream interrupted")

    async def test_collect_returns_the_stream_result(self, registry, orchestrator):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        stream = orchestrator.stream("hello")

        result = await stream.collect()

        assert result is stream.result
        assert result.content == "ok"

    async def test_stream_exhaustion(self, registry, orchestrator, adapters):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        adapters[ProviderId.GEMINI].queue(GEMINI_A, auth_failed())

        result = await orchestrator.stream("hello").collect()

        assert not result.success
        assert result.error.startswith(EXHAUSTED_MESSAGE)

    async def test_stream_iterates_once(self, registry, orchestrator):
        enable_provider(registry, ProviderId.GEMINI, GEMINI_A)
        stream = orchestrator.stream("hello")
        await stream.collect()

        with pytest.raises(RuntimeError):
            stream.__aiter__()
