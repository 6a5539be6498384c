from collections.abc import AsyncIterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StreamingResponse:
    """Wrapper for a streamed completion.

    Acts as an async iterator of text deltas. Iteration is what drives the
    HTTP request, so status and network errors surface from the first
    __anext__() call rather than from chat_completion_stream() itself.

    Usage:
        stream = await provider.chat_completion_stream(messages)
        async for delta in stream:
            print(delta, end="")
        print(stream.text)  # everything received so far
    """

    def __init__(self, async_iter: AsyncIterator[str]):
        """Initialize with an async iterator of text deltas.

        Args:
            async_iter: Async iterator yielding text deltas
        """
        self._iter = async_iter
        self._parts: list[str] = []
        self._finished = False

    @property
    def text(self) -> str:
        """Concatenation of all deltas yielded so far."""
        return "".join(self._parts)

    @property
    def finished(self) -> bool:
        """True once the underlying sequence ended normally."""
        return self._finished

    def __aiter__(self) -> "StreamingResponse":
        """Return self as async iterator."""
        return self

    async def __anext__(self) -> str:
        """Get next delta from the underlying iterator."""
        try:
            delta = await self._iter.__anext__()
        except StopAsyncIteration:
            self._finished = True
            raise
        self._parts.append(delta)
        return delta

    async def aclose(self) -> None:
        """Stop the stream early and release the connection."""
        aclose = getattr(self._iter, "aclose", None)
        if aclose is not None:
            await aclose()


class ChatMessage(BaseModel):
    """A role/content pair as sent to the completions endpoint."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="Role of the message sender: 'user', 'assistant', or 'system'")
    content: str = Field(description="Content of the message")


class LLMResponse(BaseModel):
    """Response from a non-streaming completion."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Generated text content")
    model: str = Field(description="Model that generated the response")
    usage: dict[str, Any] | None = Field(
        default=None,
        description="Token usage information, when the endpoint reports it"
    )
