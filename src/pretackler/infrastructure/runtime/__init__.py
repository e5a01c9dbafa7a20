"""Concurrency, pacing, retry, and staging primitives for the job engine."""

from pretackler.infrastructure.runtime.fair_scheduler import (
    FairScheduler,
    JobChannel,
    SchedulerClosedError,
)
from pretackler.infrastructure.runtime.idle_latency import IdleLatencyEstimator
from pretackler.infrastructure.runtime.rate_limiter import RateLimiter
from pretackler.infrastructure.runtime.resource_probe import ResourceProbe, ResourceSample
from pretackler.infrastructure.runtime.retry import (
    FaultInjection,
    FaultKind,
    RetryController,
    RetryPolicy,
    classify_failure,
)
from pretackler.infrastructure.runtime.staging import (
    StreamFrame,
    StreamingTransaction,
    parse_frame,
)

__all__ = [
    "FairScheduler",
    "FaultInjection",
    "FaultKind",
    "IdleLatencyEstimator",
    "JobChannel",
    "RateLimiter",
    "ResourceProbe",
    "ResourceSample",
    "RetryController",
    "RetryPolicy",
    "SchedulerClosedError",
    "StreamFrame",
    "StreamingTransaction",
    "classify_failure",
    "parse_frame",
]
