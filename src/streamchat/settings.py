"""Model settings: which endpoint to talk to and how to authenticate.

Hides:
- The persisted field names (camelCase, shared with older stored data)
- What counts as complete, empty, or a valid API Base
- Where an optional default API key comes from
"""

import os

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .llm.errors import ConfigurationMissing, InvalidEndpoint

API_KEY_ENV_VAR = "STREAMCHAT_API_KEY"

# Human names used in "missing fields" messages
FIELD_LABELS = {
    "name": "model name",
    "base_url": "API Base",
    "api_key": "API Key",
}

# Defaults shipped by older releases; purged from storage on startup
LEGACY_DEFAULT_NAMES = frozenset({"智谱AI"})
LEGACY_DEFAULT_BASE_URLS = frozenset({"https://open.bigmodel.cn/api/paas/v4"})


class ModelSettings(BaseModel):
    """Endpoint configuration entered by the user.

    An empty instance is the explicit first-run state; nothing is defaulted.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(default="", description="Model identifier, e.g. glm-4-flash")
    base_url: str = Field(
        default="",
        alias="baseUrl",
        description="HTTP origin plus path prefix, e.g. https://host/v1"
    )
    api_key: str = Field(default="", alias="apiKey", description="Bearer credential")

    @property
    def is_complete(self) -> bool:
        """True when all three fields are populated."""
        return not self.missing_fields()

    @property
    def is_empty(self) -> bool:
        """True when no field is populated."""
        return not (self.name or self.base_url or self.api_key)

    @property
    def is_legacy_default(self) -> bool:
        """True for the bundled default an older release used to store."""
        return self.name in LEGACY_DEFAULT_NAMES or self.base_url in LEGACY_DEFAULT_BASE_URLS

    def missing_fields(self) -> list[str]:
        """Labels of the fields that are still empty, in display order."""
        return [
            label for field, label in FIELD_LABELS.items()
            if not getattr(self, field).strip()
        ]

    def require_complete(self) -> None:
        """Raise ConfigurationMissing unless every field is populated."""
        missing = self.missing_fields()
        if missing:
            raise ConfigurationMissing(missing)

    def to_storage(self) -> str:
        """Serialize with the persisted (camelCase) field names."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_storage(cls, raw: str) -> "ModelSettings":
        """Parse a persisted settings object.

        Raises:
            pydantic.ValidationError: If the data is not a settings object
        """
        return cls.model_validate_json(raw)

    def with_default_api_key(self, default_key: str | None) -> "ModelSettings":
        """Fill in the API key from a default when none was entered."""
        if self.api_key or not default_key:
            return self
        return self.model_copy(update={"api_key": default_key})


def validate_base_url(base_url: str) -> httpx.URL:
    """Check that an API Base is an absolute http(s) URL.

    Args:
        base_url: URL as typed by the user

    Returns:
        The parsed URL

    Raises:
        InvalidEndpoint: If the URL cannot be parsed, has another scheme,
            or has no host
    """
    try:
        url = httpx.URL(base_url.strip())
    except httpx.InvalidURL as e:
        raise InvalidEndpoint(base_url, str(e)) from e

    if url.scheme not in ("http", "https"):
        raise InvalidEndpoint(base_url, "protocol must be http or https")
    if not url.host:
        raise InvalidEndpoint(base_url, "URL has no host")
    return url


def default_api_key() -> str | None:
    """Optional API key supplied through the environment (or a .env file)."""
    return os.getenv(API_KEY_ENV_VAR) or None
