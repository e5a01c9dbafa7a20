"""Per-job attempt loop with failure classification and exponential backoff."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeVar

from pretackler.domain.errors import StreamRequestError
from pretackler.domain.jobs import Attempt, AttemptOutcome

_DEFAULT_MAX_ATTEMPTS = 5
_DEFAULT_BASE_DELAY_SECONDS = 1.0
_DEFAULT_BACKOFF_FACTOR = 2.0
_DEFAULT_MAX_DELAY_SECONDS = 30.0

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FaultKind(StrEnum):
    """Failure classes the fault injector can force."""

    RATE_LIMITED = "429"
    SERVER_ERROR = "5xx"
    IDLE_STALL = "idle"


@dataclass(slots=True, frozen=True)
class FaultInjection:
    """Force one failure class on early attempts of every job.

    `failing_attempts` defaults to all but the last attempt, so the final
    attempt always runs for real.
    """

    kind: FaultKind
    failing_attempts: int | None = None

    def applies_to(self, attempt: int, max_attempts: int) -> bool:
        limit = max_attempts - 1
        if self.failing_attempts is not None:
            limit = min(limit, self.failing_attempts)
        return attempt <= limit


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Attempt ceiling and exponential backoff parameters."""

    max_attempts: int = _DEFAULT_MAX_ATTEMPTS
    base_delay_seconds: float = _DEFAULT_BASE_DELAY_SECONDS
    backoff_factor: float = _DEFAULT_BACKOFF_FACTOR
    max_delay_seconds: float = _DEFAULT_MAX_DELAY_SECONDS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1.")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0.")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1.")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds.")

    def delay_for(self, attempt: int) -> float:
        """Return the backoff delay after a failed attempt number `attempt`."""

        delay = self.base_delay_seconds * (self.backoff_factor ** max(attempt - 1, 0))
        return min(delay, self.max_delay_seconds)


def classify_failure(exc: BaseException) -> AttemptOutcome:
    """Map an attempt error to a retryable or terminal outcome."""

    if isinstance(exc, StreamRequestError) and exc.retryable:
        return AttemptOutcome.RETRYABLE_FAILURE
    return AttemptOutcome.TERMINAL_FAILURE


class RetryController:
    """Drive one job's attempts until success, a terminal error, or the ceiling."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        fault_injection: FaultInjection | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        label: str = "job",
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._fault_injection = fault_injection
        self._sleep = sleep
        self._label = label
        self.attempts: list[Attempt] = []

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def injected_fault(self, attempt: int) -> FaultKind | None:
        """Return the fault to simulate on `attempt`, if any."""

        injection = self._fault_injection
        if injection is None:
            return None
        if not injection.applies_to(attempt, self._policy.max_attempts):
            return None
        return injection.kind

    async def run(self, operation: Callable[[int], Awaitable[T]]) -> T:
        """Call `operation(attempt)` until it succeeds or must give up.

        The last error propagates unchanged once the outcome is terminal or
        the attempt ceiling is reached.
        """

        max_attempts = self._policy.max_attempts
        attempt = 0
        while True:
            attempt += 1
            try:
                result = await operation(attempt)
            except Exception as exc:
                outcome = classify_failure(exc)
                if outcome is AttemptOutcome.TERMINAL_FAILURE or attempt >= max_attempts:
                    self.attempts.append(
                        Attempt(ordinal=attempt, delay_seconds=0.0, outcome=outcome, error=str(exc))
                    )
                    if outcome is AttemptOutcome.RETRYABLE_FAILURE:
                        logger.warning(
                            "%s: attempt %s/%s failed, giving up: %s",
                            self._label,
                            attempt,
                            max_attempts,
                            exc,
                        )
                    raise

                delay = self._policy.delay_for(attempt)
                self.attempts.append(
                    Attempt(ordinal=attempt, delay_seconds=delay, outcome=outcome, error=str(exc))
                )
                logger.warning(
                    "%s: attempt %s/%s failed: %s; retrying in %.2fs.",
                    self._label,
                    attempt,
                    max_attempts,
                    exc,
                    delay,
                )
                await self._sleep(delay)
                continue

            self.attempts.append(
                Attempt(ordinal=attempt, delay_seconds=0.0, outcome=AttemptOutcome.SUCCESS)
            )
            return result


__all__ = [
    "FaultInjection",
    "FaultKind",
    "RetryController",
    "RetryPolicy",
    "classify_failure",
]
