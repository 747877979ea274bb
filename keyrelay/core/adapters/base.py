"""Provider adapter contract and shared HTTP plumbing.

Every adapter speaks one vendor's wire format and reports failures as
``AdapterError`` with an already-classified ``FailureKind``. Callers never
look at raw vendor error text to decide what to do next.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..error_types import FailureKind
from ..exceptions import AdapterError
from ..provider.catalog import PROVIDER_CATALOG, ProviderDescriptor, ProviderId
from ..provider.model_info import ModelDescriptor

logger = logging.getLogger(__name__)

# Vendor error bodies are truncated to this many characters in messages
ERROR_TEXT_LIMIT = 200

RATE_LIMIT_STATUSES = frozenset({402, 429})
AUTH_STATUSES = frozenset({401, 403})


@dataclass(frozen=True)
class GenerateRequest:
    """One text generation call, already resolved to a concrete model."""

    prompt: str
    model: str
    system_prompt: str | None = None
    max_tokens: int = 4000
    temperature: float = 0.7


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


@dataclass(frozen=True)
class AdapterResponse:
    """Successful generation: non-empty text plus whatever usage the vendor reported."""

    content: str
    model: str
    usage: TokenUsage | None = None


@dataclass(frozen=True)
class ModelListResult:
    """Raw model listing, before generative-model filtering.

    ``from_catalog`` is set when the vendor offers no usable listing and the
    catalog models stand in for it.
    """

    models: tuple[ModelDescriptor, ...] = field(default_factory=tuple)
    from_catalog: bool = False


def parse_retry_after(response: httpx.Response) -> float | None:
    """Return the Retry-After header in seconds, if it is numeric."""
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        seconds = float(raw)
    except ValueError:
        # HTTP-date form is rare for these APIs; fall back to the default backoff
        return None
    return seconds if seconds >= 0 else None


def classify_status(status_code: int) -> FailureKind:
    """Map an HTTP status to a failure kind."""
    if status_code in RATE_LIMIT_STATUSES:
        return FailureKind.RATE_LIMITED
    if status_code in AUTH_STATUSES:
        return FailureKind.AUTH_FAILED
    return FailureKind.TRANSPORT


class ProviderAdapter(ABC):
    """Capability interface implemented once per provider.

    Adapters are stateless apart from configuration: the secret is passed
    per call, and each call opens its own ``httpx.AsyncClient``.
    """

    provider: ProviderId

    def __init__(self, *, timeout: float | None = None, base_url: str | None = None) -> None:
        """Initialize the adapter.

        Args:
            timeout: Per-call timeout in seconds; defaults to the configured
                request timeout, read at call time.
            base_url: Override of the catalog endpoint (for tests or proxies).
        """
        self._timeout = timeout
        self.base_url = (base_url or self.descriptor.base_url).rstrip("/")

    @property
    def descriptor(self) -> ProviderDescriptor:
        return PROVIDER_CATALOG[self.provider]

    @property
    def display_name(self) -> str:
        return self.descriptor.name

    @property
    def timeout(self) -> float:
        if self._timeout is not None:
            return self._timeout
        from keyrelay.core.config import config

        return config.request_timeout

    @abstractmethod
    async def list_models(self, secret: str) -> ModelListResult:
        """List the models ``secret`` can access.

        Raises:
            AdapterError: If the listing call fails.
        """

    @abstractmethod
    async def generate(self, secret: str, request: GenerateRequest) -> AdapterResponse:
        """Produce text for ``request``.

        Raises:
            AdapterError: On any failure, including an empty response.
        """

    async def stream(self, secret: str, request: GenerateRequest) -> AsyncIterator[str]:
        """Yield text chunks for ``request``.

        Adapters without native streaming yield the whole completion at once.

        Raises:
            AdapterError: On any failure.
        """
        response = await self.generate(secret, request)
        yield response.content

    # HTTP helpers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send one request and return the response if it is a 2xx.

        Raises:
            AdapterError: TRANSPORT for network errors and timeouts, or the
                classified kind for a non-2xx status.
        """
        try:
            async with self._client() as client:
                response = await client.request(
                    method, url, headers=headers, params=params, json=json_body
                )
        except httpx.TimeoutException as e:
            raise AdapterError(
                FailureKind.TRANSPORT, f"{self.display_name}: request timed out"
            ) from e
        except httpx.HTTPError as e:
            # str(e) may carry the URL, which can hold the key as a query param
            raise AdapterError(
                FailureKind.TRANSPORT,
                f"{self.display_name}: request failed ({type(e).__name__})",
            ) from e

        if not response.is_success:
            raise self.error_from_response(response)
        return response

    def error_from_response(self, response: httpx.Response) -> AdapterError:
        """Build a classified AdapterError for a non-2xx response."""
        text = response.text
        kind = self.classify_error(response.status_code, text)
        return AdapterError(
            kind,
            f"{self.display_name}: {response.status_code} - {text[:ERROR_TEXT_LIMIT]}",
            status_code=response.status_code,
            retry_after=parse_retry_after(response) if kind.is_rate_limit else None,
        )

    def classify_error(self, status_code: int, body: str) -> FailureKind:
        """Classify a failed response. Adapters override this for vendor codes."""
        return classify_status(status_code)

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        """Decode a JSON object body.

        Raises:
            AdapterError: TRANSPORT if the body is not a JSON object.
        """
        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise AdapterError(
                FailureKind.TRANSPORT,
                f"{self.display_name}: malformed JSON response",
                status_code=response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise AdapterError(
                FailureKind.TRANSPORT,
                f"{self.display_name}: unexpected response shape",
                status_code=response.status_code,
            )
        return data

    def unexpected_error(self, exc: Exception) -> AdapterError:
        """Wrap an exception that escaped the adapter as a TRANSPORT failure.

        Only the exception type is kept; its message may echo the secret.
        """
        logger.error("%s: unexpected %s from adapter", self.display_name, type(exc).__name__)
        return AdapterError(
            FailureKind.TRANSPORT,
            f"{self.display_name}: unexpected error ({type(exc).__name__})",
        )

    def _empty(self, status_code: int | None = None) -> AdapterError:
        return AdapterError(
            FailureKind.EMPTY,
            f"{self.display_name}: no content in response",
            status_code=status_code,
        )

    def _catalog_models(self) -> ModelListResult:
        return ModelListResult(
            models=tuple(ModelDescriptor(id=m) for m in self.descriptor.models),
            from_catalog=True,
        )

    async def _stream_sse(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """POST and yield each decoded ``data:`` event of a server-sent event stream.

        Raises:
            AdapterError: As ``_send`` for connection and status failures;
                TRANSPORT if the connection drops mid-stream.
        """
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST", url, headers=headers, params=params, json=json_body
                ) as response:
                    if not response.is_success:
                        await response.aread()
                        raise self.error_from_response(response)

                    async for line in response.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        payload = line[len("data:") :].strip()
                        if not payload:
                            continue
                        if payload == "[DONE]":
                            return
                        try:
                            event = json.loads(payload)
                        except json.JSONDecodeError:
                            logger.debug("%s: skipping undecodable SSE line", self.display_name)
                            continue
                        if isinstance(event, dict):
                            yield event
        except httpx.TimeoutException as e:
            raise AdapterError(
                FailureKind.TRANSPORT, f"{self.display_name}: stream timed out"
            ) from e
        except httpx.HTTPError as e:
            raise AdapterError(
                FailureKind.TRANSPORT,
                f"{self.display_name}: stream failed ({type(e).__name__})",
            ) from e
