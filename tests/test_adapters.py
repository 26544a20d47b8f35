"""Tests for provider adapters, using httpx.MockTransport instead of the network."""

import json

import httpx
import pytest

from model_adapters.adapters import (
    AdapterConfig,
    AnthropicAdapter,
    CursorAdapter,
    GrokAdapter,
    Message,
    OpenAIAdapter,
    OpenRouterAdapter,
)
from model_adapters.circuit import CircuitBreakerConfig
from model_adapters.errors import (
    AuthenticationError,
    CircuitOpenError,
    ConfigurationError,
    InvalidRequestError,
    ProviderNetworkError,
    RateLimitError,
    TerminalProviderError,
    UnimplementedError,
)
from model_adapters.retry import RetryConfig
from model_adapters.tokens import estimate_tokens

FAST_RETRY = RetryConfig(max_retries=2, initial_delay=0.0)


class RecordingHandler:
    """MockTransport handler returning queued responses and recording requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def calls(self) -> int:
        return len(self.requests)

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def openai_reply(content="Hello there", usage=None):
    data = {"model": "gpt-4", "choices": [{"message": {"role": "assistant", "content": content}}]}
    if usage is not None:
        data["usage"] = usage
    return httpx.Response(200, json=data)


def make_openai(handler, **kwargs):
    return OpenAIAdapter(
        AdapterConfig(api_key="test-key", model="gpt-4"),
        retry_config=kwargs.pop("retry_config", FAST_RETRY),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


CONTEXT = [
    Message.user("m1", "What is the capital of France?"),
    Message.assistant("m2", "Paris."),
    Message(id="m3", author_type="ai", content="Anything else?"),
]


# ---------------------------------------------------------------------------
# capability contract
# ---------------------------------------------------------------------------


def test_check_context_window_sums_explicit_and_estimated_tokens():
    adapter = CursorAdapter()
    messages = [
        Message(id="a", author_type="user", content="ignored", tokens=10),
        Message(id="b", author_type="assistant", content="hi"),
    ]

    expected = 10 + estimate_tokens("hi")
    assert adapter.check_context_window(messages) == expected
    assert adapter.check_context_window(messages) == expected


def test_check_context_window_respects_explicit_zero():
    adapter = CursorAdapter()
    assert adapter.check_context_window([Message.user("a", "a long message", tokens=0)]) == 0
    assert adapter.check_context_window([]) == 0


def test_estimate_tokens():
    assert estimate_tokens("") == 0
    assert estimate_tokens("hi") == 1
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_message_roles():
    assert [m.role for m in CONTEXT] == ["user", "assistant", "assistant"]


# ---------------------------------------------------------------------------
# OpenAI-compatible adapters
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_openai_generate_response():
    handler = RecordingHandler(
        openai_reply(usage={"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15})
    )
    adapter = make_openai(handler)

    response = await adapter.generate_response(CONTEXT, "Be brief.", ["m3"])

    assert response.content == "Hello there"
    assert response.model == "ChatGPT"
    assert response.tokens == 15
    assert response.context_used == 15
    assert response.input_tokens == 10
    assert response.output_tokens == 5
    assert response.reply_to == ["m3"]

    request = handler.requests[0]
    assert request.url == "https://api.openai.com/v1/chat/completions"
    assert request.headers["authorization"] == "Bearer test-key"
    body = handler.body()
    assert body["model"] == "gpt-4"
    assert body["messages"][0] == {"role": "system", "content": "Be brief."}
    assert [m["role"] for m in body["messages"][1:]] == ["user", "assistant", "assistant"]
    await adapter.close_async()


@pytest.mark.asyncio
async def test_empty_context_and_default_reply_to():
    handler = RecordingHandler(openai_reply(usage={"total_tokens": 3}))
    adapter = make_openai(handler)

    response = await adapter.generate_response([], "Start the discussion.")

    assert response.reply_to == []
    assert handler.body()["messages"] == [{"role": "system", "content": "Start the discussion."}]


@pytest.mark.asyncio
async def test_missing_usage_falls_back_to_estimate():
    handler = RecordingHandler(openai_reply(content="A fairly short answer."))
    adapter = make_openai(handler)

    response = await adapter.generate_response(CONTEXT, "Be brief.")

    expected = (
        adapter.check_context_window(CONTEXT)
        + estimate_tokens("Be brief.")
        + estimate_tokens("A fairly short answer.")
    )
    assert response.tokens == expected
    assert response.context_used == expected


def test_missing_api_key_raises_configuration_error(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(ConfigurationError) as exc_info:
        OpenAIAdapter(AdapterConfig(model="gpt-4"))

    assert str(exc_info.value).startswith("OpenAI API error:")


def test_api_key_read_from_environment(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "env-key")
    adapter = OpenAIAdapter()
    assert adapter.api_key == "env-key"
    assert adapter.model == OpenAIAdapter.default_model


def test_shared_config_keeps_each_provider_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai-secret")
    monkeypatch.setenv("GROK_API_KEY", "xai-key")
    config = AdapterConfig(model="shared-model")

    openai = OpenAIAdapter(config)
    grok = GrokAdapter(config)

    assert openai.api_key == "sk-openai-secret"
    assert grok.api_key == "xai-key"
    assert config.api_key_env is None


@pytest.mark.asyncio
async def test_reported_zero_usage_is_kept():
    handler = RecordingHandler(
        openai_reply(content="", usage={"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0})
    )
    adapter = make_openai(handler)

    response = await adapter.generate_response(CONTEXT, "Be brief.")

    assert response.tokens == 0
    assert response.context_used == 0
    assert response.input_tokens == 0
    assert response.output_tokens == 0


@pytest.mark.asyncio
async def test_rate_limit_is_retried():
    handler = RecordingHandler(
        httpx.Response(429, json={"error": {"message": "slow down"}}),
        openai_reply(usage={"total_tokens": 4}),
    )
    adapter = make_openai(handler)

    response = await adapter.generate_response(CONTEXT, "Be brief.")

    assert response.tokens == 4
    assert handler.calls == 2
    assert adapter.circuit_breaker.failure_count == 0


@pytest.mark.asyncio
async def test_rate_limit_hint_does_not_override_backoff():
    throttled = httpx.Response(429, headers={"retry-after": "20"}, json={"error": {"message": "slow down"}})
    handler = RecordingHandler(throttled, throttled, throttled, openai_reply(usage={"total_tokens": 4}))
    sleep = FakeSleep()
    adapter = make_openai(handler, retry_config=RetryConfig(max_retries=3, initial_delay=1.0), sleep=sleep)

    response = await adapter.generate_response(CONTEXT, "Be brief.")

    assert response.tokens == 4
    assert handler.calls == 4
    assert sleep.delays == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_network_error_is_retried():
    handler = RecordingHandler(httpx.ConnectError("connection reset"), openai_reply(usage={"total_tokens": 4}))
    adapter = make_openai(handler)

    response = await adapter.generate_response(CONTEXT, "Be brief.")

    assert response.content == "Hello there"
    assert handler.calls == 2


@pytest.mark.asyncio
async def test_network_error_exhausts_retries():
    handler = RecordingHandler(httpx.ConnectError("connection reset"))
    adapter = make_openai(handler)

    with pytest.raises(ProviderNetworkError):
        await adapter.generate_response(CONTEXT, "Be brief.")

    assert handler.calls == 3


@pytest.mark.asyncio
async def test_bad_request_is_not_retried():
    handler = RecordingHandler(httpx.Response(400, json={"error": {"message": "bad model"}}))
    adapter = make_openai(handler)

    with pytest.raises(InvalidRequestError) as exc_info:
        await adapter.generate_response(CONTEXT, "Be brief.")

    assert handler.calls == 1
    assert "OpenAI API error: Invalid request: bad model" in str(exc_info.value)
    assert adapter.circuit_breaker.failure_count == 1


@pytest.mark.asyncio
async def test_authentication_error():
    handler = RecordingHandler(httpx.Response(401, text="unauthorized"))
    adapter = make_openai(handler)

    with pytest.raises(AuthenticationError) as exc_info:
        await adapter.generate_response(CONTEXT, "Be brief.")

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_exhausted_retries_count_as_one_breaker_failure():
    handler = RecordingHandler(httpx.Response(429, headers={"retry-after": "0"}, json={}))
    adapter = make_openai(handler)

    with pytest.raises(RateLimitError):
        await adapter.generate_response(CONTEXT, "Be brief.")

    assert handler.calls == 3
    assert adapter.circuit_breaker.failure_count == 1


@pytest.mark.asyncio
async def test_open_circuit_stops_provider_calls():
    handler = RecordingHandler(httpx.Response(400, json={"error": {"message": "bad"}}))
    adapter = make_openai(handler, circuit_config=CircuitBreakerConfig(failure_threshold=2))

    for _ in range(2):
        with pytest.raises(InvalidRequestError):
            await adapter.generate_response(CONTEXT, "Be brief.")

    with pytest.raises(CircuitOpenError) as exc_info:
        await adapter.generate_response(CONTEXT, "Be brief.")

    assert handler.calls == 2
    assert str(exc_info.value).startswith("OpenAI API error:")


@pytest.mark.asyncio
async def test_invalid_json_is_terminal():
    handler = RecordingHandler(httpx.Response(200, text="not json"))
    adapter = make_openai(handler)

    with pytest.raises(TerminalProviderError):
        await adapter.generate_response(CONTEXT, "Be brief.")

    assert handler.calls == 1


@pytest.mark.asyncio
async def test_unexpected_exception_is_wrapped():
    handler = RecordingHandler(httpx.Response(200, json={"choices": "oops"}))
    adapter = make_openai(handler)

    with pytest.raises(TerminalProviderError) as exc_info:
        await adapter.generate_response(CONTEXT, "Be brief.")

    assert str(exc_info.value).startswith("OpenAI API error:")
    assert exc_info.value.__cause__ is not None


@pytest.mark.asyncio
async def test_grok_uses_xai_endpoint():
    handler = RecordingHandler(openai_reply(usage={"total_tokens": 9}))
    adapter = GrokAdapter(
        AdapterConfig(api_key="xai-key"),
        retry_config=FAST_RETRY,
        transport=httpx.MockTransport(handler),
    )

    response = await adapter.generate_response(CONTEXT, "Be brief.")

    assert response.model == "Grok"
    assert handler.requests[0].url == "https://api.x.ai/v1/chat/completions"
    assert handler.body()["model"] == "grok-beta"


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_anthropic_generate_response():
    handler = RecordingHandler(
        httpx.Response(
            200,
            json={
                "content": [{"type": "text", "text": "Bonjour"}, {"type": "text", "text": "!"}],
                "usage": {"input_tokens": 7, "output_tokens": 3},
            },
        )
    )
    adapter = AnthropicAdapter(
        AdapterConfig(api_key="ant-key", model="claude-3-opus-20240229"),
        retry_config=FAST_RETRY,
        transport=httpx.MockTransport(handler),
    )

    response = await adapter.generate_response(CONTEXT, "Answer in French.", ["m1"])

    assert response.content == "Bonjour!"
    assert response.model == "Claude"
    assert response.tokens == 10
    assert response.context_used == 10
    assert response.reply_to == ["m1"]
    assert adapter.get_max_context_window() == 200000

    request = handler.requests[0]
    assert request.url == "https://api.anthropic.com/v1/messages"
    assert request.headers["x-api-key"] == "ant-key"
    assert request.headers["anthropic-version"] == AnthropicAdapter.API_VERSION
    body = handler.body()
    assert body["system"] == "Answer in French."
    assert all(m["role"] != "system" for m in body["messages"])


# ---------------------------------------------------------------------------
# OpenRouter
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_openrouter_generate_response_with_cost():
    handler = RecordingHandler(
        openai_reply(usage={"prompt_tokens": 20, "completion_tokens": 10, "total_tokens": 30, "cost": 0.0012})
    )
    adapter = OpenRouterAdapter(
        "anthropic/claude-3.5-sonnet",
        AdapterConfig(api_key="or-key"),
        retry_config=FAST_RETRY,
        transport=httpx.MockTransport(handler),
    )

    response = await adapter.generate_response(CONTEXT, "Be brief.")

    assert adapter.get_model_name() == "Anthropic claude-3.5-sonnet"
    assert response.tokens == 30
    assert response.cost == pytest.approx(0.0012)
    assert handler.requests[0].url == "https://openrouter.ai/api/v1/chat/completions"
    assert handler.body()["model"] == "anthropic/claude-3.5-sonnet"


def test_openrouter_does_not_mutate_shared_config():
    config = AdapterConfig(api_key="or-key")
    OpenRouterAdapter("openai/gpt-4o", config)
    assert config.model is None


def test_openrouter_requires_composite_id():
    with pytest.raises(ConfigurationError):
        OpenRouterAdapter("gpt-4o", AdapterConfig(api_key="or-key"))


# ---------------------------------------------------------------------------
# Cursor placeholder
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_cursor_unconfigured_constructs_but_fails_on_call():
    adapter = CursorAdapter()

    assert not adapter.is_configured
    with pytest.raises(ConfigurationError):
        await adapter.generate_response(CONTEXT, "Be brief.")


@pytest.mark.asyncio
async def test_cursor_configured_still_unimplemented():
    adapter = CursorAdapter(AdapterConfig(api_key="k", model="cursor-small", base_url="https://cursor.example"))

    assert adapter.is_configured
    with pytest.raises(UnimplementedError) as exc_info:
        await adapter.generate_response(CONTEXT, "Be brief.")

    assert str(exc_info.value).startswith("Cursor API error:")
