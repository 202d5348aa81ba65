"""Custom exceptions for the bot.

The completion core raises subclasses of ``CompletionError``; the mention
handler is the only place that turns them into user-facing text.
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """Closed set of upstream failure categories derived from HTTP status."""

    BAD_REQUEST = "bad_request"
    AUTH_FAILURE = "auth_failure"
    QUOTA_EXHAUSTED = "quota_exhausted"
    UNPROCESSABLE = "unprocessable"
    RATE_LIMITED = "rate_limited"
    SERVER_FAULT = "server_fault"
    SERVICE_UNAVAILABLE = "service_unavailable"
    UNKNOWN = "unknown"

    @property
    def user_message(self) -> str:
        return _USER_MESSAGES[self]


_STATUS_CATEGORIES = {
    400: ErrorCategory.BAD_REQUEST,
    401: ErrorCategory.AUTH_FAILURE,
    403: ErrorCategory.AUTH_FAILURE,
    402: ErrorCategory.QUOTA_EXHAUSTED,
    422: ErrorCategory.UNPROCESSABLE,
    429: ErrorCategory.RATE_LIMITED,
    500: ErrorCategory.SERVER_FAULT,
    502: ErrorCategory.SERVICE_UNAVAILABLE,
    503: ErrorCategory.SERVICE_UNAVAILABLE,
    504: ErrorCategory.SERVICE_UNAVAILABLE,
}

_USER_MESSAGES = {
    ErrorCategory.BAD_REQUEST: (
        "Hmm, I couldn't make sense of that one. Try rephrasing your message?"
    ),
    ErrorCategory.AUTH_FAILURE: (
        "My access to the brain farm has been revoked. Someone should tell the admins!"
    ),
    ErrorCategory.QUOTA_EXHAUSTED: (
        "I'm out of credits for now. An admin needs to top up the account before I can talk again."
    ),
    ErrorCategory.UNPROCESSABLE: (
        "My configuration looks wrong and the model refused it. Please ping an admin."
    ),
    ErrorCategory.RATE_LIMITED: (
        "Everyone is talking to me at once and the model asked me to slow down. Try again in a minute!"
    ),
    ErrorCategory.SERVER_FAULT: (
        "The model server tripped over its own feet. Give it a moment and try again."
    ),
    ErrorCategory.SERVICE_UNAVAILABLE: (
        "The model is overloaded right now. Try again in a little while."
    ),
    ErrorCategory.UNKNOWN: (
        "Something unexpected went wrong on the model side. Try again in a few moments."
    ),
}

DEADLINE_MESSAGE = (
    "That took way too long and I gave up waiting. Try again shortly!"
)

GENERIC_FAILURE_MESSAGE = (
    "Oops, my signals are scrambled right now. Try again in a few moments."
)


def classify_status(status_code: int) -> ErrorCategory:
    """Map an upstream HTTP status to its category.

    Total over all integers: unrecognized codes map to ``UNKNOWN``.
    """
    return _STATUS_CATEGORIES.get(status_code, ErrorCategory.UNKNOWN)


def classify(status_code: int, raw_body: str = "") -> ErrorCategory:
    """Categorize an upstream error from its status and raw body.

    The status decides whenever it is recognized; the body is only consulted
    for otherwise unknown codes, where an ``insufficient_quota`` marker means
    the account ran out of credits.
    """
    category = classify_status(status_code)
    if category is ErrorCategory.UNKNOWN and "insufficient_quota" in (raw_body or "").lower():
        return ErrorCategory.QUOTA_EXHAUSTED
    return category


class BotException(Exception):
    """Base class for bot exceptions."""

    def __init__(self, message: str = "Bot error"):
        self.message = message
        super().__init__(message)


class CompletionError(BotException):
    """Raised when a completion request cannot produce a reply."""


class ClassifiedError(CompletionError):
    """The completion service answered with a non-200 status.

    The raw status and body are kept verbatim; no error schema is assumed.
    """

    def __init__(self, status_code: int, raw_body: str):
        self.status_code = status_code
        self.raw_body = raw_body
        super().__init__(f"Completion API error (HTTP {status_code}): {raw_body}")

    @property
    def category(self) -> ErrorCategory:
        return classify(self.status_code, self.raw_body)

    def user_message(self) -> str:
        return self.category.user_message


class TransportError(CompletionError):
    """The request never completed (connection, DNS, read failures)."""


class DeadlineExceededError(TransportError):
    """A completion attempt or the combined completion deadline elapsed."""

    def __init__(self, timeout: float | None = None, message: str | None = None):
        self.timeout = timeout
        if message is None:
            message = (
                f"Completion deadline of {timeout:g}s exceeded"
                if timeout is not None
                else "Completion deadline exceeded"
            )
        super().__init__(message)


class ProtocolError(CompletionError):
    """The exchange completed but its content violates the protocol."""


class EmptyResponseError(ProtocolError):
    """The completion service returned zero choices."""

    def __init__(self, phase: str = "first"):
        self.phase = phase
        super().__init__(f"Empty response from the model ({phase} call)")


class MalformedResponseError(ProtocolError):
    """The completion response body could not be decoded."""


class ArgumentDecodeError(ProtocolError):
    """Tool arguments proposed by the model do not match the tool's schema."""

    def __init__(self, tool_name: str, raw_arguments: str, reason: str):
        self.tool_name = tool_name
        self.raw_arguments = raw_arguments
        super().__init__(
            f"Invalid arguments for tool {tool_name!r}: {reason}"
        )


class ToolExecutionError(BotException):
    """A tool failed; recorded on the completion result, never fatal."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(message)
