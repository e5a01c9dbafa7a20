"""Domain exceptions for batch summary jobs."""


class PretacklerError(Exception):
    """Base class for PreTackler errors."""


class ConfigurationError(PretacklerError):
    """Raised when prompt, credentials, or input paths are unusable."""


class StreamRequestError(PretacklerError):
    """Base class for failures of one streaming completion attempt."""

    retryable: bool = False

    def __init__(self, message: str, *, retryable: bool | None = None) -> None:
        super().__init__(message)
        if retryable is not None:
            self.retryable = retryable


class CompletionTransportError(StreamRequestError):
    """Raised on connect failures, timeouts, or broken response streams."""

    retryable = True


class CompletionStatusError(StreamRequestError):
    """Raised when the completion endpoint answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(
            f"completion endpoint returned {status_code}: {body}",
            retryable=is_retryable_status(status_code),
        )
        self.status_code = status_code
        self.body = body


class StreamIdleTimeoutError(StreamRequestError):
    """Raised when no stream chunk arrives within the idle bound."""

    retryable = True

    def __init__(self, idle_timeout_seconds: float) -> None:
        super().__init__(f"no stream chunk received within {idle_timeout_seconds:.1f}s")
        self.idle_timeout_seconds = idle_timeout_seconds


class StagingError(PretacklerError):
    """Raised when staging output cannot be written or published."""


def is_retryable_status(status_code: int) -> bool:
    """Return whether an HTTP status warrants another attempt."""

    return status_code == 429 or 500 <= status_code <= 599


__all__ = [
    "CompletionStatusError",
    "CompletionTransportError",
    "ConfigurationError",
    "PretacklerError",
    "StagingError",
    "StreamIdleTimeoutError",
    "StreamRequestError",
    "is_retryable_status",
]
