import re

_TRANSIENT_PATTERN = re.compile(
    r"timeout|timed out|rate limit|rate_limit|too many requests|network|"
    r"connection reset|econnreset|\b50[0234]\b",
    re.IGNORECASE,
)


def is_transient_message(message: str) -> bool:
    """True when an upstream error message describes a retryable condition."""
    return bool(_TRANSIENT_PATTERN.search(message))


class GatewayError(Exception):
    """Raised when a text-completion call fails.

    ``transient`` marks failures worth retrying. When not given explicitly it
    is derived from the message.
    """

    def __init__(self, message: str, transient: bool | None = None) -> None:
        super().__init__(message)
        self.transient = is_transient_message(message) if transient is None else transient


class GatewayConfigurationError(GatewayError):
    """Raised when the completion client cannot be configured."""

    def __init__(self, message: str) -> None:
        super().__init__(message, transient=False)
