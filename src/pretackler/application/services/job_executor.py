"""End-to-end execution of one summary job across retry attempts."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import NoReturn

from pretackler.domain.completion_models import ChatCompletionRequest
from pretackler.domain.errors import (
    CompletionStatusError,
    PretacklerError,
    StreamIdleTimeoutError,
)
from pretackler.domain.jobs import ChannelClass, Job, JobReport
from pretackler.domain.ports import CompletionStreamClient
from pretackler.infrastructure.inputs.messages import build_user_message
from pretackler.infrastructure.runtime.idle_latency import IdleLatencyEstimator
from pretackler.infrastructure.runtime.rate_limiter import RateLimiter
from pretackler.infrastructure.runtime.retry import (
    FaultInjection,
    FaultKind,
    RetryController,
    RetryPolicy,
)
from pretackler.infrastructure.runtime.staging import StreamingTransaction

_DEFAULT_LONG_TIMEOUT_MULTIPLIER = 5.0
_DEFAULT_ADAPTIVE_IDLE_FACTOR = 1.2
_INJECTED_FAULT_BODY = "injected fault"

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TimeoutPolicy:
    """How long-channel jobs scale their request and idle bounds.

    Overrides, when set, replace the scaled value; 0 means unbounded.
    """

    long_multiplier: float = _DEFAULT_LONG_TIMEOUT_MULTIPLIER
    long_request_timeout_seconds: float | None = None
    long_idle_timeout_seconds: float | None = None
    adaptive_idle_enabled: bool = True
    adaptive_idle_factor: float = _DEFAULT_ADAPTIVE_IDLE_FACTOR


@dataclass(slots=True, frozen=True)
class EffectiveTimeouts:
    request_seconds: float
    idle_seconds: float


def effective_timeouts(
    job: Job,
    policy: TimeoutPolicy,
    estimator: IdleLatencyEstimator | None = None,
) -> EffectiveTimeouts:
    """Resolve the bounds for one attempt of `job`."""

    if job.channel is not ChannelClass.LONG:
        return EffectiveTimeouts(job.request_timeout_seconds, job.idle_timeout_seconds)

    request_seconds = policy.long_request_timeout_seconds
    if request_seconds is None:
        request_seconds = job.request_timeout_seconds * policy.long_multiplier
    idle_seconds = policy.long_idle_timeout_seconds
    if idle_seconds is None:
        idle_seconds = job.idle_timeout_seconds * policy.long_multiplier

    if policy.adaptive_idle_enabled and estimator is not None:
        idle_seconds = estimator.widen_idle_timeout(idle_seconds, policy.adaptive_idle_factor)
    return EffectiveTimeouts(request_seconds, idle_seconds)


async def _stalled_stream() -> AsyncIterator[bytes]:
    await asyncio.Event().wait()
    yield b""


class JobExecutor:
    """Run one job: pace, request, stream into staging, commit, retry on failure."""

    def __init__(
        self,
        client: CompletionStreamClient,
        system_prompt: str,
        *,
        model: str,
        temperature: float,
        top_k: int,
        rate_limiter: RateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout_policy: TimeoutPolicy | None = None,
        idle_estimator: IdleLatencyEstimator | None = None,
        fault_injection: FaultInjection | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._system_prompt = system_prompt
        self._model = model
        self._temperature = temperature
        self._top_k = top_k
        self._rate_limiter = rate_limiter or RateLimiter()
        self._retry_policy = retry_policy or RetryPolicy()
        self._timeout_policy = timeout_policy or TimeoutPolicy()
        self._idle_estimator = idle_estimator
        self._fault_injection = fault_injection
        self._sleep = sleep
        self._clock = clock

    async def execute(self, job: Job) -> JobReport:
        """Run `job` to a final report; failures never raise."""

        started_at = self._clock()
        controller = RetryController(
            self._retry_policy,
            fault_injection=self._fault_injection,
            sleep=self._sleep,
            label=str(job.source),
        )

        try:
            payload = await asyncio.to_thread(job.source.read_bytes)
        except OSError as exc:
            return self._failure(job, started_at, 0, f"Cannot read {job.source}: {exc}")

        request = ChatCompletionRequest.for_prompt(
            model=self._model,
            temperature=self._temperature,
            top_k=self._top_k,
            system_prompt=self._system_prompt,
            user_content=build_user_message(job.source.name, job.language, payload),
        )

        async def attempt(ordinal: int) -> int:
            return await self._attempt(job, request, ordinal, controller)

        try:
            bytes_written = await controller.run(attempt)
        except PretacklerError as exc:
            status_code = exc.status_code if isinstance(exc, CompletionStatusError) else None
            return self._failure(
                job,
                started_at,
                len(controller.attempts),
                str(exc),
                status_code=status_code,
            )

        report = JobReport(
            job=job,
            succeeded=True,
            attempts=len(controller.attempts),
            elapsed_seconds=self._clock() - started_at,
            bytes_written=bytes_written,
        )
        logger.info(
            "Summary written: %s (%.2fs, %s bytes, %.1f B/s, %s attempt(s))",
            job.destination,
            report.elapsed_seconds,
            report.bytes_written,
            report.throughput_bytes_per_second,
            report.attempts,
        )
        return report

    async def _attempt(
        self,
        job: Job,
        request: ChatCompletionRequest,
        ordinal: int,
        controller: RetryController,
    ) -> int:
        timeouts = effective_timeouts(job, self._timeout_policy, self._idle_estimator)
        await self._rate_limiter.acquire_request_slot()

        fault = controller.injected_fault(ordinal)
        if fault is FaultKind.RATE_LIMITED:
            raise CompletionStatusError(429, _INJECTED_FAULT_BODY)
        if fault is FaultKind.SERVER_ERROR:
            raise CompletionStatusError(503, _INJECTED_FAULT_BODY)
        if fault is FaultKind.IDLE_STALL:
            return await self._stall(job, timeouts.idle_seconds)

        async with self._client.stream_chat(
            request,
            request_timeout_seconds=timeouts.request_seconds,
        ) as chunks:
            logger.debug("%s: stream opened on attempt %s.", job.source, ordinal)
            async with StreamingTransaction.open(
                job.destination,
                on_delta=self._rate_limiter.acquire_bytes,
            ) as transaction:
                await self._drain(job, transaction, chunks, timeouts.idle_seconds)
                transaction.commit()
                return transaction.bytes_written

    async def _stall(self, job: Job, idle_seconds: float) -> NoReturn:
        """Simulate a stream that never delivers a chunk."""

        if idle_seconds > 0:
            async with StreamingTransaction.open(job.destination) as transaction:
                await self._drain(job, transaction, _stalled_stream(), idle_seconds)
        raise StreamIdleTimeoutError(idle_seconds)

    async def _drain(
        self,
        job: Job,
        transaction: StreamingTransaction,
        chunks: AsyncIterator[bytes],
        idle_seconds: float,
    ) -> None:
        """Apply chunks in arrival order; each read is bounded by `idle_seconds`."""

        estimator = self._idle_estimator if job.channel is ChannelClass.LONG else None
        last_chunk_at: float | None = None
        iterator = aiter(chunks)
        while True:
            try:
                async with asyncio.timeout(idle_seconds if idle_seconds > 0 else None):
                    chunk = await anext(iterator)
            except StopAsyncIteration:
                break
            except TimeoutError as exc:
                logger.debug("%s: idle timeout after %.2fs without data.", job.source, idle_seconds)
                raise StreamIdleTimeoutError(idle_seconds) from exc

            now = self._clock()
            if estimator is not None and last_chunk_at is not None:
                estimator.observe((now - last_chunk_at) * 1000.0)
            last_chunk_at = now

            if await transaction.append(chunk):
                return
        await transaction.finish_input()

    def _failure(
        self,
        job: Job,
        started_at: float,
        attempts: int,
        error: str,
        *,
        status_code: int | None = None,
    ) -> JobReport:
        logger.error(
            "Summary failed: %s after %s attempt(s): %s",
            job.source,
            attempts,
            error,
        )
        return JobReport(
            job=job,
            succeeded=False,
            attempts=attempts,
            elapsed_seconds=self._clock() - started_at,
            error=error,
            status_code=status_code,
        )


__all__ = ["EffectiveTimeouts", "JobExecutor", "TimeoutPolicy", "effective_timeouts"]
