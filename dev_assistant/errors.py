"""
Error classes shared by the assistant.

Every failure the assistant reports to the user derives from `AssistantError`,
which carries the user-facing message plus the low level exception (if any)
that caused it.
"""

from typing import Optional


class AssistantError(Exception):
    """Base class for all dev-assistant errors."""

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        user_hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.user_hint = user_hint


class ConfigurationError(AssistantError):
    """Missing or malformed credentials or provider selection. Always fatal."""


class UserCancelled(AssistantError):
    """The user declined to send a prompt. Not a failure."""

    def __init__(self, message: str = "Operation cancelled by the user.", **kwargs):
        super().__init__(message, **kwargs)


class AdapterProtocolError(AssistantError):
    """A provider adapter could not make progress decoding a response."""


class NetworkError(AssistantError):
    """Transport level failure: connection refused, reset, timeout..."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        if self.user_hint is None:
            self.user_hint = "Check your internet connection or that the provider is running."


# Status codes the providers are known to use, mapped to the message shown
# to the user.
_STATUS_MESSAGES = {
    400: "Invalid model or prompt size too large. Try specifying fewer files.",
    401: "Invalid API key",
    403: "Inactive subscription or usage limit reached",
    404: "Model or endpoint not found",
    413: "Prompt too large. Try specifying fewer files.",
    429: "Rate limit error",
    500: "Internal server error",
    502: "Provider overloaded or unavailable",
    503: "Provider overloaded or unavailable",
    529: "Provider overloaded or unavailable",
}

UNCLASSIFIED_MESSAGE = "Unclassified provider error"


def classify_status(status_code: Optional[int]) -> str:
    """Map an HTTP status code to a short user-facing message."""
    return _STATUS_MESSAGES.get(status_code, UNCLASSIFIED_MESSAGE)


class ProviderError(AssistantError):
    """
    The provider answered, but not with a usable response.

    Raised for non-2xx HTTP statuses (classified by `classify_status`) and
    for error records reported by the provider inside an otherwise successful
    response, in which case `status_code` is None.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code

    @classmethod
    def from_status(cls, status_code: int, detail: str = "") -> "ProviderError":
        error = cls(classify_status(status_code), status_code=status_code)
        error.user_hint = detail or None
        return error


class SubprocessError(AssistantError):
    """A helper program (pager, clipboard, git...) failed or is not installed."""

    def __init__(self, message: str, command: str = "", returncode: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.command = command
        self.returncode = returncode
