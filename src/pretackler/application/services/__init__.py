"""Application services public API."""

from pretackler.application.services.batch_service import BatchService
from pretackler.application.services.job_executor import (
    EffectiveTimeouts,
    JobExecutor,
    TimeoutPolicy,
    effective_timeouts,
)

__all__ = [
    "BatchService",
    "EffectiveTimeouts",
    "JobExecutor",
    "TimeoutPolicy",
    "effective_timeouts",
]
