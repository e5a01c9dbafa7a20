"""Two-class job dispatch over a fixed worker pool with alternating preference."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Iterable

from pretackler.domain.errors import PretacklerError
from pretackler.domain.jobs import ChannelClass, Job, JobReport, ScheduleCounters
from pretackler.domain.ports import JobHandler

logger = logging.getLogger(__name__)


class SchedulerClosedError(PretacklerError):
    """Raised when submitting to a channel that no longer accepts jobs."""


class JobChannel:
    """Closable bounded FIFO of jobs belonging to one channel class."""

    def __init__(self, channel: ChannelClass, capacity: int | None = None) -> None:
        self._channel = channel
        self._capacity = None if capacity is None else max(1, capacity)
        self._items: deque[Job] = deque()
        self._closed = False
        self._changed = asyncio.Condition()

    @property
    def channel(self) -> ChannelClass:
        return self._channel

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._items)

    async def put(self, job: Job) -> None:
        """Enqueue a job, waiting for space when the channel is full."""

        async with self._changed:
            await self._changed.wait_for(lambda: self._closed or not self._is_full())
            if self._closed:
                raise SchedulerClosedError(f"The {self._channel} channel is closed.")
            self._items.append(job)
            self._changed.notify_all()

    async def close(self) -> None:
        """Stop accepting jobs and wake every blocked consumer."""

        async with self._changed:
            self._closed = True
            self._changed.notify_all()

    async def try_get(self) -> Job | None:
        """Return the next job without waiting, or None when empty."""

        async with self._changed:
            return self._pop_locked()

    async def get(self) -> Job | None:
        """Wait for the next job; return None once the channel is closed and drained."""

        async with self._changed:
            await self._changed.wait_for(lambda: bool(self._items) or self._closed)
            return self._pop_locked()

    def _pop_locked(self) -> Job | None:
        if not self._items:
            return None
        job = self._items.popleft()
        self._changed.notify_all()
        return job

    def _is_full(self) -> bool:
        return self._capacity is not None and len(self._items) >= self._capacity


class FairScheduler:
    """Drain normal and long channels with `worker_count` concurrent workers.

    Each worker flips its preferred channel every dispatch cycle. A cycle tries
    the preferred channel, then the other, without waiting; only when both are
    empty does the worker block, first on the preferred channel and then on
    the other. A worker therefore exits only after both channels are closed
    and drained.
    """

    def __init__(
        self,
        worker_count: int,
        handler: JobHandler,
        *,
        normal_capacity: int | None = None,
        long_capacity: int | None = None,
    ) -> None:
        self._worker_count = max(1, worker_count)
        self._handler = handler
        self._channels = {
            ChannelClass.NORMAL: JobChannel(ChannelClass.NORMAL, normal_capacity),
            ChannelClass.LONG: JobChannel(ChannelClass.LONG, long_capacity),
        }
        self._reports: list[JobReport] = []
        self.counters = ScheduleCounters()

    @property
    def worker_count(self) -> int:
        return self._worker_count

    def pending(self, channel: ChannelClass) -> int:
        """Return the number of queued jobs in `channel`."""

        return len(self._channels[channel])

    async def submit(self, job: Job) -> None:
        """Enqueue a job on the channel matching its class."""

        await self._channels[job.channel].put(job)

    async def submit_all(self, jobs: Iterable[Job]) -> None:
        for job in jobs:
            await self.submit(job)

    async def close(self) -> None:
        """Close both channels to new input."""

        for channel in self._channels.values():
            await channel.close()

    async def run(self) -> list[JobReport]:
        """Close input, drain both channels, and return reports in completion order."""

        await self.close()
        workers = [
            asyncio.create_task(self._worker(worker_id), name=f"pretackler-worker-{worker_id}")
            for worker_id in range(self._worker_count)
        ]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise
        return list(self._reports)

    async def _worker(self, worker_id: int) -> None:
        cycle = worker_id
        while True:
            job = await self._next_job(cycle)
            if job is None:
                logger.debug("Worker %s found both channels drained; exiting.", worker_id)
                return
            cycle += 1
            await self._run_job(job)

    async def _next_job(self, cycle: int) -> Job | None:
        preferred, other = self._channel_order(cycle)

        job = await preferred.try_get()
        if job is None:
            job = await other.try_get()
        if job is None:
            job = await preferred.get()
        if job is None:
            job = await other.get()
        return job

    def _channel_order(self, cycle: int) -> tuple[JobChannel, JobChannel]:
        normal = self._channels[ChannelClass.NORMAL]
        long = self._channels[ChannelClass.LONG]
        if cycle % 2 == 0:
            return normal, long
        return long, normal

    async def _run_job(self, job: Job) -> None:
        self.counters.started += 1
        started_at = time.monotonic()
        try:
            report = await self._handler(job)
        except Exception as exc:
            logger.exception("Unhandled error while processing %s.", job.source)
            report = JobReport(
                job=job,
                succeeded=False,
                attempts=0,
                elapsed_seconds=time.monotonic() - started_at,
                error=f"Unexpected error: {exc}",
            )

        if report.succeeded:
            self.counters.completed += 1
        else:
            self.counters.failed += 1
        self._reports.append(report)


__all__ = ["FairScheduler", "JobChannel", "SchedulerClosedError"]
