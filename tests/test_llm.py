"""Unit tests for the LLM module."""
import httpx
import pytest

from conftest import BASE_URL, RecordingHandler, byte_chunks, mock_client, sse_body, sse_line
from streamchat.llm import (
    ChatMessage,
    LLMProvider,
    OpenAICompatibleProvider,
    create_llm_provider,
    provider_from_settings,
)
from streamchat.llm.errors import (
    NetworkFailure,
    StreamUnavailable,
    UnexpectedResponse,
    UpstreamError,
    describe_status,
)
from streamchat.settings import ModelSettings

HELLO = [ChatMessage(role="user", content="hello")]


def make_provider(handler, base_url: str = BASE_URL, **kwargs) -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider(
        api_key="k",
        model="glm-4-flash",
        base_url=base_url,
        http_client=mock_client(handler),
        **kwargs
    )


async def collect(provider: OpenAICompatibleProvider, messages=HELLO) -> list[str]:
    stream = await provider.chat_completion_stream(messages)
    return [delta async for delta in stream]


class TestDescribeStatus:
    """Tests for status code descriptions."""

    @pytest.mark.parametrize(
        ("status", "fragment"),
        [
            (400, "model name"),
            (401, "API Key authentication failed"),
            (403, "permission"),
            (404, "API Base URL"),
            (429, "Too many requests"),
            (500, "server error"),
            (503, "server error"),
        ],
    )
    def test_known_statuses(self, status, fragment):
        assert fragment in describe_status(status, "ignored body")

    def test_other_status_quotes_truncated_body(self):
        message = describe_status(418, "x" * 300)
        assert message.startswith("API request failed (418): ")
        assert message.endswith("x" * 100)
        assert "x" * 101 not in message


class TestLLMProviderInterface:
    """Tests for the abstract LLMProvider interface."""

    def test_provider_is_abstract(self):
        """Test that LLMProvider cannot be instantiated directly."""
        with pytest.raises(TypeError):
            LLMProvider()  # type: ignore


class TestStreamingRequest:
    """Tests for the streamed completion request."""

    @pytest.mark.asyncio
    async def test_request_shape(self):
        handler = RecordingHandler([httpx.Response(200, content=byte_chunks(sse_body("hi")))])
        provider = make_provider(handler, base_url=BASE_URL + "/")

        assert await collect(provider) == ["hi"]

        request = handler.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://example.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer k"
        assert request.headers["Content-Type"] == "application/json"
        assert handler.bodies[0] == {
            "model": "glm-4-flash",
            "messages": [{"role": "user", "content": "hello"}],
            "stream": True,
        }

    @pytest.mark.asyncio
    async def test_request_is_sent_on_first_iteration(self):
        handler = RecordingHandler([httpx.Response(200, content=byte_chunks(sse_body("a")))])
        provider = make_provider(handler)

        stream = await provider.chat_completion_stream(HELLO)
        assert handler.requests == []
        assert [delta async for delta in stream] == ["a"]
        assert stream.text == "a"
        assert stream.finished

    @pytest.mark.asyncio
    async def test_deltas_arrive_across_chunks(self):
        body = sse_body("Hi", " there")
        chunks = [body[:5], body[5:40], body[40:]]
        handler = RecordingHandler([httpx.Response(200, content=byte_chunks(*chunks))])

        assert "".join(await collect(make_provider(handler))) == "Hi there"

    @pytest.mark.asyncio
    async def test_history_is_sent_in_order(self):
        handler = RecordingHandler([httpx.Response(200, content=byte_chunks(sse_body("x")))])
        messages = [
            ChatMessage(role="user", content="hello"),
            ChatMessage(role="assistant", content="Hello! How can I help?"),
            ChatMessage(role="user", content="thanks"),
        ]
        await collect(make_provider(handler), messages)
        assert [m["content"] for m in handler.bodies[0]["messages"]] == [
            "hello", "Hello! How can I help?", "thanks"
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 403, 404, 429, 500, 502, 418])
    async def test_error_status_raises_upstream_error(self, status):
        handler = RecordingHandler([httpx.Response(status, text="upstream said no")])

        with pytest.raises(UpstreamError) as exc_info:
            await collect(make_provider(handler))
        assert exc_info.value.status_code == status
        assert exc_info.value.body == "upstream said no"
        assert str(exc_info.value) == describe_status(status, "upstream said no")

    @pytest.mark.asyncio
    async def test_401_message(self):
        handler = RecordingHandler([httpx.Response(401, json={"error": "bad key"})])

        with pytest.raises(UpstreamError, match="API Key authentication failed"):
            await collect(make_provider(handler))

    @pytest.mark.asyncio
    async def test_no_body_status_is_stream_unavailable(self):
        handler = RecordingHandler([httpx.Response(204)])

        with pytest.raises(StreamUnavailable):
            await collect(make_provider(handler))

    @pytest.mark.asyncio
    async def test_connect_error_is_likely_unreachable(self):
        handler = RecordingHandler([httpx.ConnectError("connection refused")])

        with pytest.raises(NetworkFailure) as exc_info:
            await collect(make_provider(handler))
        assert exc_info.value.likely_unreachable
        assert "reachable" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_mid_stream_read_error_keeps_earlier_deltas(self):
        async def broken_body():
            yield sse_line("partial").encode()
            raise httpx.ReadError("connection reset")

        handler = RecordingHandler([httpx.Response(200, content=broken_body())])
        stream = await make_provider(handler).chat_completion_stream(HELLO)

        received = []
        with pytest.raises(NetworkFailure) as exc_info:
            async for delta in stream:
                received.append(delta)
        assert received == ["partial"]
        assert stream.text == "partial"
        assert not stream.finished
        assert not exc_info.value.likely_unreachable

    @pytest.mark.asyncio
    async def test_malformed_frames_are_logged_not_raised(self):
        body = b"data: {oops\n" + sse_body("fine")
        handler = RecordingHandler([httpx.Response(200, content=byte_chunks(body))])
        provider = make_provider(handler)
        logs = []
        provider.set_debug_callback(lambda level, component, message: logs.append((level, component, message)))

        assert await collect(provider) == ["fine"]
        assert any(level == "debug" and "malformed" in message for level, _, message in logs)
        assert all(component == "LLM" for _, component, _ in logs)

    @pytest.mark.asyncio
    async def test_undecodable_body_is_network_failure(self):
        garbage = httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip at all")
        handler = RecordingHandler([garbage])

        with pytest.raises(NetworkFailure) as exc_info:
            await collect(make_provider(handler))
        assert isinstance(exc_info.value.__cause__, httpx.DecodingError)
        assert not exc_info.value.likely_unreachable


class TestNonStreamingRequest:
    """Tests for the non-streaming completion request."""

    @pytest.mark.asyncio
    async def test_success(self):
        handler = RecordingHandler([httpx.Response(200, json={
            "model": "glm-4-flash",
            "choices": [{"message": {"role": "assistant", "content": "pong"}}],
            "usage": {"total_tokens": 3},
        })])
        provider = make_provider(handler)

        response = await provider.chat_completion(HELLO, max_tokens=10)

        assert response.content == "pong"
        assert response.model == "glm-4-flash"
        assert response.usage == {"total_tokens": 3}
        assert handler.bodies[0]["stream"] is False
        assert handler.bodies[0]["max_tokens"] == 10
        assert "temperature" not in handler.bodies[0]

    @pytest.mark.asyncio
    async def test_missing_message_is_unexpected_response(self):
        handler = RecordingHandler([httpx.Response(200, json={"choices": []})])

        with pytest.raises(UnexpectedResponse):
            await make_provider(handler).chat_completion(HELLO)

    @pytest.mark.asyncio
    async def test_non_json_body_is_unexpected_response(self):
        handler = RecordingHandler([httpx.Response(200, text="<html>")])

        with pytest.raises(UnexpectedResponse):
            await make_provider(handler).chat_completion(HELLO)

    @pytest.mark.asyncio
    async def test_error_status(self):
        handler = RecordingHandler([httpx.Response(404, text="not found")])

        with pytest.raises(UpstreamError, match="API Base URL"):
            await make_provider(handler).chat_completion(HELLO)

    @pytest.mark.asyncio
    async def test_undecodable_body_is_network_failure(self):
        garbage = httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip at all")
        handler = RecordingHandler([garbage])

        with pytest.raises(NetworkFailure):
            await make_provider(handler).chat_completion(HELLO)


class TestProviderLifecycle:
    """Tests for client ownership."""

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self):
        client = mock_client(RecordingHandler([]))
        async with OpenAICompatibleProvider(
            api_key="k", model="m", base_url=BASE_URL, http_client=client
        ):
            pass
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self):
        provider = OpenAICompatibleProvider(api_key="k", model="m", base_url=BASE_URL)
        async with provider:
            pass
        assert provider._client.is_closed


class TestFactory:
    """Tests for the provider factory functions."""

    def test_create_openai_compatible(self):
        provider = create_llm_provider(
            "openai-compatible", api_key="k", model="glm-4-flash", base_url=BASE_URL
        )
        assert isinstance(provider, OpenAICompatibleProvider)
        assert provider.model == "glm-4-flash"
        assert provider.endpoint == f"{BASE_URL}/chat/completions"

    def test_missing_config_raises_type_error(self):
        with pytest.raises(TypeError, match="base_url"):
            create_llm_provider("openai", api_key="k", model="m")

    def test_unknown_provider_raises_value_error(self):
        with pytest.raises(ValueError, match="Unsupported provider"):
            create_llm_provider("unknown", api_key="k", model="m", base_url=BASE_URL)

    def test_from_settings(self):
        settings = ModelSettings(name="glm-4-flash", base_url=f" {BASE_URL}/ ", api_key="k")
        provider = provider_from_settings(settings)
        assert provider.model == "glm-4-flash"
        assert provider.endpoint == f"{BASE_URL}/chat/completions"


class TestIntegration:
    """Tests against a real endpoint, skipped unless configured."""

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_stream_real_api(self, api_keys):
        """Integration test: stream a short answer from a real endpoint."""
        if not all(api_keys.values()):
            pytest.skip("STREAMCHAT_TEST_API_KEY / _BASE_URL / _MODEL not set")

        provider = create_llm_provider(
            "openai-compatible",
            api_key=api_keys["api_key"],
            model=api_keys["model"],
            base_url=api_keys["base_url"],
        )
        async with provider:
            stream = await provider.chat_completion_stream(
                [ChatMessage(role="user", content="Say hi")], max_tokens=10
            )
            text = "".join([delta async for delta in stream])
        assert text
