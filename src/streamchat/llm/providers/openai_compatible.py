import time
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

import httpx

from ..base import LLMProvider
from ..errors import (
    MalformedFrame,
    NetworkFailure,
    StreamUnavailable,
    UnexpectedResponse,
    UpstreamError,
)
from ..models import ChatMessage, LLMResponse, StreamingResponse
from ..sse import iter_sse_deltas

# Success statuses that never carry a body
NO_BODY_STATUSES = frozenset({204, 205})

# Reads slower than this are reported as warnings
SLOW_READ_SECONDS = 1.0


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def network_failure(error: httpx.RequestError) -> NetworkFailure:
    """Map an httpx request error onto NetworkFailure.

    Connection-level failures are flagged as likely unreachable endpoints,
    anything else, such as a mid-stream reset or an undecodable body, is
    reported generically.
    """
    unreachable = isinstance(error, (httpx.ConnectError, httpx.ConnectTimeout))
    detail = str(error) or type(error).__name__
    return NetworkFailure(detail, likely_unreachable=unreachable)


class OpenAICompatibleProvider(LLMProvider):
    """Provider for any endpoint speaking the OpenAI chat completions wire format.

    Hidden design decisions:
    - Request shape: POST {base_url}/chat/completions with a bearer token
    - Streaming body decoding (delegated to the SSE decoder)
    - Mapping of status codes and transport failures onto ChatClientError
    - No client-side timeout and no retries
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
        **client_kwargs: Any
    ):
        """Initialize the provider.

        Args:
            api_key: Bearer credential sent in the Authorization header
            model: Model identifier sent with every request
            base_url: HTTP origin plus path prefix, e.g. https://host/v1
            http_client: Shared client to use; the provider will not close it
            **client_kwargs: Additional kwargs for the owned httpx.AsyncClient
        """
        super().__init__()
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        if http_client is None:
            client_kwargs.setdefault("timeout", None)
            http_client = httpx.AsyncClient(**client_kwargs)
        self._client = http_client

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

    @property
    def endpoint(self) -> str:
        """Full URL of the completions endpoint."""
        return f"{self._base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def _build_payload(
        self,
        messages: list[ChatMessage],
        model: str | None,
        stream: bool,
        temperature: float | None,
        max_tokens: int | None,
        **kwargs: Any
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model or self._model,
            "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
            "stream": stream,
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        payload.update(kwargs)
        return payload

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Generate a non-streaming completion.

        Args:
            messages: Conversation history
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            **kwargs: Extra request body fields

        Returns:
            LLMResponse with generated content

        Raises:
            UpstreamError: Non-success status
            UnexpectedResponse: Body without choices[0].message
            NetworkFailure: Transport failure
        """
        payload = self._build_payload(
            messages, model, False, temperature, max_tokens, **kwargs
        )
        self._debug("info", f"POST {self.endpoint} (model={payload['model']}, stream=false)")

        started = time.monotonic()
        try:
            response = await self._client.post(
                self.endpoint, json=payload, headers=self._headers()
            )
        except httpx.RequestError as e:
            self._debug("error", f"Request failed: {e!r}")
            raise network_failure(e) from e

        self._debug("info", f"Response {response.status_code} in {_elapsed_ms(started)} ms")
        if not response.is_success:
            self._debug("error", f"Error body: {response.text[:200]}")
            raise UpstreamError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise UnexpectedResponse("body is not JSON") from e

        try:
            message = data["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as e:
            raise UnexpectedResponse("missing choices[0].message") from e
        if not isinstance(message, dict):
            raise UnexpectedResponse("choices[0].message is not an object")

        content = message.get("content")
        usage = data.get("usage")
        return LLMResponse(
            content=content if isinstance(content, str) else "",
            model=data.get("model") or payload["model"],
            usage=usage if isinstance(usage, dict) else None,
        )

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        """Generate a streaming completion.

        Args:
            messages: Conversation history
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            **kwargs: Extra request body fields

        Returns:
            StreamingResponse that issues the request on first iteration
        """
        payload = self._build_payload(
            messages, model, True, temperature, max_tokens, **kwargs
        )
        return StreamingResponse(self._stream_generator(payload))

    async def _stream_generator(self, payload: dict[str, Any]) -> AsyncIterator[str]:
        """Internal generator that performs the request and yields deltas."""
        self._debug(
            "info",
            f"POST {self.endpoint} (model={payload['model']}, "
            f"messages={len(payload['messages'])}, stream=true)"
        )
        started = time.monotonic()

        try:
            async with self._client.stream(
                "POST", self.endpoint, json=payload, headers=self._headers()
            ) as response:
                self._debug(
                    "info", f"Response {response.status_code} in {_elapsed_ms(started)} ms"
                )
                if not response.is_success:
                    await response.aread()
                    self._debug("error", f"Error body: {response.text[:200]}")
                    raise UpstreamError(response.status_code, response.text)

                if response.status_code in NO_BODY_STATUSES:
                    raise StreamUnavailable(f"status {response.status_code} has no body")

                received_first = False
                deltas = iter_sse_deltas(
                    self._timed_chunks(response), on_malformed=self._report_malformed
                )
                async with aclosing(deltas):
                    async for delta in deltas:
                        if not received_first:
                            received_first = True
                            self._debug("info", f"First delta after {_elapsed_ms(started)} ms")
                        yield delta

                self._debug("info", f"Stream finished after {_elapsed_ms(started)} ms")
        except httpx.RequestError as e:
            self._debug("error", f"Stream failed: {e!r}")
            raise network_failure(e) from e

    async def _timed_chunks(self, response: httpx.Response) -> AsyncIterator[bytes]:
        last_read = time.monotonic()
        async for chunk in response.aiter_bytes():
            waited = time.monotonic() - last_read
            if waited > SLOW_READ_SECONDS:
                self._debug("warning", f"Slow chunk read: {int(waited * 1000)} ms")
            yield chunk
            last_read = time.monotonic()

    def _report_malformed(self, error: MalformedFrame) -> None:
        self._debug("debug", str(error))

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()
