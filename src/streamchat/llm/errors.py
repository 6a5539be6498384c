"""Error taxonomy for talking to a completions endpoint.

Every error a send can end with derives from ChatClientError, so callers
can catch one type at the request boundary and render str(error) as the
banner text. MalformedFrame is the exception: the stream decoder never
raises it, it only reports it through a callback and keeps going.
"""

# Generic text is followed by at most this many characters of the body
ERROR_BODY_PREVIEW = 100

_STATUS_MESSAGES = {
    400: "Bad request, the model name may be incorrect",
    401: "API Key authentication failed, check that the API Key is correct",
    403: "Access denied, the API Key may lack permission or has expired",
    404: "API address not found, check the API Base URL",
    429: "Too many requests, please retry later",
}

_SERVER_ERROR_MESSAGE = "Upstream server error, please retry later"


def describe_status(status_code: int, body: str = "") -> str:
    """Human readable description of a non-success HTTP status.

    Args:
        status_code: HTTP status returned by the endpoint
        body: Response body text, quoted (truncated) for unknown statuses

    Returns:
        Message suitable for an error banner
    """
    if status_code in _STATUS_MESSAGES:
        return _STATUS_MESSAGES[status_code]
    if 500 <= status_code <= 599:
        return _SERVER_ERROR_MESSAGE
    return f"API request failed ({status_code}): {body[:ERROR_BODY_PREVIEW]}"


class ChatClientError(Exception):
    """Base class for errors surfaced to the user during a send."""


class ConfigurationMissing(ChatClientError):
    """One or more model settings are unset, no request was attempted."""

    def __init__(self, missing_fields: list[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(
            "Configure the model settings first (missing: "
            f"{', '.join(self.missing_fields)})"
        )


class InvalidEndpoint(ChatClientError):
    """The configured API Base is not a usable http(s) URL."""

    def __init__(self, base_url: str, reason: str):
        self.base_url = base_url
        self.reason = reason
        super().__init__(f"Invalid API Base: {reason}")


class UpstreamError(ChatClientError):
    """The endpoint answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(describe_status(status_code, body))


class StreamUnavailable(ChatClientError):
    """A success response came back without a readable body stream."""

    def __init__(self, detail: str = "response has no readable body"):
        self.detail = detail
        super().__init__(f"Unable to read the response stream: {detail}")


class UnexpectedResponse(ChatClientError):
    """A non-streaming body did not contain choices[0].message."""

    def __init__(self, detail: str = ""):
        self.detail = detail
        message = "Unexpected API response format, the model name may not match"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class NetworkFailure(ChatClientError):
    """The request itself failed before or while reading the response."""

    def __init__(self, detail: str, likely_unreachable: bool = False):
        self.detail = detail
        self.likely_unreachable = likely_unreachable
        if likely_unreachable:
            message = (
                "Network connection failed, check that the API Base URL "
                f"is correct and reachable ({detail})"
            )
        else:
            message = f"Network error: {detail}"
        super().__init__(message)


class MalformedFrame(ChatClientError):
    """A single stream line could not be turned into a delta.

    Recovered locally: the line is skipped and the stream continues.
    """

    def __init__(self, line: str, reason: str):
        self.line = line
        self.reason = reason
        super().__init__(f"Skipped malformed stream frame ({reason}): {line[:80]}")
