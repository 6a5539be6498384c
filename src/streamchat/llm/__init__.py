from .base import LLMProvider
from .errors import (
    ChatClientError,
    ConfigurationMissing,
    InvalidEndpoint,
    MalformedFrame,
    NetworkFailure,
    StreamUnavailable,
    UnexpectedResponse,
    UpstreamError,
    describe_status,
)
from .factory import create_llm_provider, provider_from_settings
from .models import ChatMessage, LLMResponse, StreamingResponse
from .providers import OpenAICompatibleProvider
from .sse import SSEDecoder, iter_sse_deltas

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "provider_from_settings",
    "ChatMessage",
    "LLMResponse",
    "StreamingResponse",
    "OpenAICompatibleProvider",
    "SSEDecoder",
    "iter_sse_deltas",
    "ChatClientError",
    "ConfigurationMissing",
    "InvalidEndpoint",
    "MalformedFrame",
    "NetworkFailure",
    "StreamUnavailable",
    "UnexpectedResponse",
    "UpstreamError",
    "describe_status",
]
