from typing import TYPE_CHECKING, Any

from .base import LLMProvider
from .providers import OpenAICompatibleProvider

if TYPE_CHECKING:
    from ..settings import ModelSettings

_OPENAI_COMPATIBLE_ALIASES = ("openai-compatible", "openai", "compatible")


def create_llm_provider(provider: str, **config: Any) -> LLMProvider:
    """Create an LLM provider instance.

    This factory function hides the instantiation logic for providers.

    Args:
        provider: Provider type ('openai-compatible', alias 'openai')
        **config: Provider-specific configuration
            For OpenAI-compatible endpoints:
                - api_key: str (required)
                - model: str (required)
                - base_url: str (required)
                - http_client: httpx.AsyncClient | None

    Returns:
        Initialized LLM provider instance

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> provider = create_llm_provider(
        ...     "openai-compatible",
        ...     api_key="sk-...",
        ...     model="glm-4-flash",
        ...     base_url="https://open.bigmodel.cn/api/paas/v4",
        ... )
    """
    provider_lower = provider.lower()

    if provider_lower in _OPENAI_COMPATIBLE_ALIASES:
        for key in ("api_key", "model", "base_url"):
            if key not in config:
                raise TypeError(f"OpenAI-compatible provider requires '{key}' in config")
        return OpenAICompatibleProvider(**config)

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: 'openai-compatible'"
    )


def provider_from_settings(settings: "ModelSettings", **config: Any) -> LLMProvider:
    """Create the provider described by the user's model settings.

    Args:
        settings: Complete model settings (name, base URL, API key)
        **config: Extra provider configuration, e.g. a shared http_client

    Returns:
        Initialized LLM provider instance
    """
    return create_llm_provider(
        "openai-compatible",
        api_key=settings.api_key.strip(),
        model=settings.name.strip(),
        base_url=settings.base_url.strip(),
        **config,
    )
