"""Domain public API."""

from pretackler.domain.completion_models import (
    ChatCompletionRequest,
    ChatMessage,
    StreamChoice,
    StreamChunk,
    StreamDelta,
)
from pretackler.domain.errors import (
    CompletionStatusError,
    CompletionTransportError,
    ConfigurationError,
    PretacklerError,
    StagingError,
    StreamIdleTimeoutError,
    StreamRequestError,
    is_retryable_status,
)
from pretackler.domain.jobs import (
    Attempt,
    AttemptOutcome,
    BatchReport,
    ChannelClass,
    Job,
    JobReport,
    ScheduleCounters,
    SkippedInput,
)
from pretackler.domain.ports import CompletionStreamClient, JobHandler

__all__ = [
    "Attempt",
    "AttemptOutcome",
    "BatchReport",
    "ChannelClass",
    "ChatCompletionRequest",
    "ChatMessage",
    "CompletionStatusError",
    "CompletionStreamClient",
    "CompletionTransportError",
    "ConfigurationError",
    "Job",
    "JobHandler",
    "JobReport",
    "PretacklerError",
    "ScheduleCounters",
    "SkippedInput",
    "StagingError",
    "StreamChoice",
    "StreamChunk",
    "StreamDelta",
    "StreamIdleTimeoutError",
    "StreamRequestError",
    "is_retryable_status",
]
