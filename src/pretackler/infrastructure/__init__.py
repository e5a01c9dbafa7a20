"""Infrastructure layer public API."""

from pretackler.infrastructure.completion import CompletionClient
from pretackler.infrastructure.runtime import (
    FairScheduler,
    IdleLatencyEstimator,
    RateLimiter,
    ResourceProbe,
    RetryController,
    RetryPolicy,
    StreamingTransaction,
)

__all__ = [
    "CompletionClient",
    "FairScheduler",
    "IdleLatencyEstimator",
    "RateLimiter",
    "ResourceProbe",
    "RetryController",
    "RetryPolicy",
    "StreamingTransaction",
]
