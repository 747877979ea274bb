"""RESPX-based HTTP mocking fixtures and response builders for provider APIs."""

import httpx
import pytest
import respx

GEMINI_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEEPSEEK_BASE = "https://api.deepseek.com/v1"
OPENROUTER_BASE = "https://openrouter.ai/api/v1"
VERCEL_BASE = "https://api.vercel.ai/v1"
VERCEL_GATEWAY_MODELS = "https://ai-gateway.vercel.sh/v1/models"
PERPLEXITY_BASE = "https://api.perplexity.ai"


# === OpenAI-format Response Fixtures ===


@pytest.fixture
def openai_chat_completion():
    """Standard OpenAI chat completion response."""
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1677652288,
        "model": "deepseek-chat",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "Hello! How can I help you today?"},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 15, "total_tokens": 25},
    }


@pytest.fixture
def openai_model_list():
    """OpenAI-format ``/models`` listing with one non-generative entry."""
    return {
        "object": "list",
        "data": [
            {"id": "deepseek-chat", "object": "model"},
            {"id": "deepseek-reasoner", "object": "model"},
            {"id": "text-embedding-3-small", "object": "model"},
        ],
    }


@pytest.fixture
def openai_streaming_chunks():
    """OpenAI streaming response chunks."""
    return [
        b'data: {"id":"chatcmpl-123","choices":[{"index":0,"delta":{"role":"assistant","content":""},"finish_reason":null}]}\n\n',
        b'data: {"id":"chatcmpl-123","choices":[{"index":0,"delta":{"content":"Hello"},"finish_reason":null}]}\n\n',
        b'data: {"id":"chatcmpl-123","choices":[{"index":0,"delta":{"content":"!"},"finish_reason":null}]}\n\n',
        b'data: {"id":"chatcmpl-123","choices":[{"index":0,"delta":{},"finish_reason":"stop"}]}\n\n',
        b"data: [DONE]\n\n",
    ]


# === Gemini Response Fixtures ===


@pytest.fixture
def gemini_generate_response():
    return {
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": "Gemini says hi"}]}}
        ],
        "usageMetadata": {
            "promptTokenCount": 4,
            "candidatesTokenCount": 3,
            "totalTokenCount": 7,
        },
    }


@pytest.fixture
def gemini_model_list():
    return {
        "models": [
            {
                "name": "models/gemini-2.5-flash",
                "displayName": "Gemini 2.5 Flash",
                "inputTokenLimit": 1048576,
                "supportedGenerationMethods": ["generateContent", "countTokens"],
            },
            {
                "name": "models/text-embedding-004",
                "supportedGenerationMethods": ["embedContent"],
            },
            {
                "name": "models/aqa",
                "supportedGenerationMethods": ["generateAnswer"],
            },
        ]
    }


@pytest.fixture
def gemini_streaming_chunks():
    return [
        b'data: {"candidates":[{"content":{"parts":[{"text":"Hel"}]}}]}\r\n\r\n',
        b'data: {"candidates":[{"content":{"parts":[{"text":"lo"}]}}]}\r\n\r\n',
    ]


# === RESPX Mock Fixtures ===


@pytest.fixture
def mock_provider_apis():
    """RESPX router for every provider host; unmatched requests fail the test.

    Example:
        def test_chat(mock_provider_apis, openai_chat_completion):
            mock_provider_apis.post(f"{DEEPSEEK_BASE}/chat/completions").mock(
                return_value=httpx.Response(200, json=openai_chat_completion)
            )
    """
    with respx.mock(assert_all_called=False) as respx_mock:
        yield respx_mock


# === Helper Functions ===


def create_openai_error(status_code: int, error_type: str, message: str) -> httpx.Response:
    """Create an OpenAI-formatted error response."""
    return httpx.Response(
        status_code,
        json={"error": {"message": message, "type": error_type, "code": None}},
    )


def create_gemini_error(
    status_code: int, status: str, message: str, reason: str | None = None
) -> httpx.Response:
    """Create a Google API error response."""
    error: dict = {"code": status_code, "message": message, "status": status}
    if reason:
        error["details"] = [
            {"@type": "type.googleapis.com/google.rpc.ErrorInfo", "reason": reason}
        ]
    return httpx.Response(status_code, json={"error": error})


def create_streaming_response(chunks: list[bytes]) -> httpx.Response:
    """Create a streaming HTTP response from chunks."""
    return httpx.Response(
        status_code=200,
        headers={"content-type": "text/event-stream"},
        content=b"".join(chunks),
    )
