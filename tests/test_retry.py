from __future__ import annotations

import asyncio

import pytest

from pretackler.domain.errors import (
    CompletionStatusError,
    CompletionTransportError,
    StagingError,
    StreamIdleTimeoutError,
)
from pretackler.domain.jobs import AttemptOutcome
from pretackler.infrastructure.runtime import (
    FaultInjection,
    FaultKind,
    RetryController,
    RetryPolicy,
    classify_failure,
)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def failing_then_ok(failures: list[Exception]):
    calls: list[int] = []

    async def operation(attempt: int) -> str:
        calls.append(attempt)
        if failures:
            raise failures.pop(0)
        return "ok"

    return operation, calls


@pytest.mark.parametrize("failures", [1, 2, 4])
def test_injected_rate_limits_back_off_then_succeed(failures: int) -> None:
    sleep = RecordingSleep()
    controller = RetryController(RetryPolicy(max_attempts=5), sleep=sleep)
    operation, calls = failing_then_ok(
        [CompletionStatusError(429, "slow down") for _ in range(failures)]
    )

    result = asyncio.run(controller.run(operation))

    assert result == "ok"
    assert calls == list(range(1, failures + 2))
    assert len(sleep.delays) == failures
    assert sleep.delays == sorted(sleep.delays)
    assert sleep.delays == [2.0**index for index in range(failures)]
    assert controller.attempts[-1].outcome is AttemptOutcome.SUCCESS
    assert [attempt.outcome for attempt in controller.attempts[:-1]] == [
        AttemptOutcome.RETRYABLE_FAILURE
    ] * failures


def test_terminal_status_fails_without_retry() -> None:
    sleep = RecordingSleep()
    controller = RetryController(sleep=sleep)
    operation, calls = failing_then_ok([CompletionStatusError(400, "bad request")])

    with pytest.raises(CompletionStatusError) as exc_info:
        asyncio.run(controller.run(operation))

    assert exc_info.value.status_code == 400
    assert calls == [1]
    assert sleep.delays == []
    assert controller.attempts[0].outcome is AttemptOutcome.TERMINAL_FAILURE


def test_retry_gives_up_after_max_attempts() -> None:
    sleep = RecordingSleep()
    controller = RetryController(RetryPolicy(max_attempts=3), sleep=sleep)
    operation, calls = failing_then_ok(
        [CompletionTransportError("reset") for _ in range(5)]
    )

    with pytest.raises(CompletionTransportError):
        asyncio.run(controller.run(operation))

    assert calls == [1, 2, 3]
    assert sleep.delays == [1.0, 2.0]
    assert len(controller.attempts) == 3


def test_single_attempt_policy_raises_first_retryable_error() -> None:
    sleep = RecordingSleep()
    controller = RetryController(RetryPolicy(max_attempts=1), sleep=sleep)
    operation, calls = failing_then_ok([CompletionStatusError(503, "busy")])

    with pytest.raises(CompletionStatusError) as exc_info:
        asyncio.run(controller.run(operation))

    assert exc_info.value.status_code == 503
    assert calls == [1]
    assert sleep.delays == []
    assert [attempt.outcome for attempt in controller.attempts] == [
        AttemptOutcome.RETRYABLE_FAILURE
    ]


def test_success_on_last_attempt_is_returned() -> None:
    controller = RetryController(RetryPolicy(max_attempts=2), sleep=RecordingSleep())
    operation, calls = failing_then_ok([CompletionTransportError("reset")])

    assert asyncio.run(controller.run(operation)) == "ok"
    assert calls == [1, 2]
    assert controller.attempts[-1].outcome is AttemptOutcome.SUCCESS


def test_backoff_is_capped() -> None:
    policy = RetryPolicy(
        max_attempts=10,
        base_delay_seconds=1.0,
        backoff_factor=3.0,
        max_delay_seconds=5.0,
    )

    assert [policy.delay_for(attempt) for attempt in range(1, 5)] == [1.0, 3.0, 5.0, 5.0]


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (CompletionStatusError(429, "x"), AttemptOutcome.RETRYABLE_FAILURE),
        (CompletionStatusError(500, "x"), AttemptOutcome.RETRYABLE_FAILURE),
        (CompletionStatusError(599, "x"), AttemptOutcome.RETRYABLE_FAILURE),
        (CompletionStatusError(404, "x"), AttemptOutcome.TERMINAL_FAILURE),
        (CompletionTransportError("x"), AttemptOutcome.RETRYABLE_FAILURE),
        (StreamIdleTimeoutError(30.0), AttemptOutcome.RETRYABLE_FAILURE),
        (StagingError("disk full"), AttemptOutcome.TERMINAL_FAILURE),
        (ValueError("bug"), AttemptOutcome.TERMINAL_FAILURE),
    ],
)
def test_classify_failure(error: Exception, expected: AttemptOutcome) -> None:
    assert classify_failure(error) is expected


def test_fault_injection_spares_the_last_attempt() -> None:
    injection = FaultInjection(kind=FaultKind.SERVER_ERROR)
    controller = RetryController(RetryPolicy(max_attempts=3), fault_injection=injection)

    assert [controller.injected_fault(attempt) for attempt in (1, 2, 3)] == [
        FaultKind.SERVER_ERROR,
        FaultKind.SERVER_ERROR,
        None,
    ]


def test_fault_injection_respects_failing_attempts() -> None:
    injection = FaultInjection(kind=FaultKind.RATE_LIMITED, failing_attempts=1)

    assert injection.applies_to(1, 5) is True
    assert injection.applies_to(2, 5) is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": 0},
        {"base_delay_seconds": -1.0},
        {"backoff_factor": 0.5},
        {"base_delay_seconds": 10.0, "max_delay_seconds": 1.0},
    ],
)
def test_retry_policy_rejects_invalid_values(kwargs: dict[str, float]) -> None:
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)
