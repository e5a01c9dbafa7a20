"""Batch run orchestration: collect jobs, size the pool, dispatch, and report."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pretackler.domain.errors import StagingError
from pretackler.domain.jobs import BatchReport, ChannelClass, Job
from pretackler.domain.ports import CompletionStreamClient, JobHandler
from pretackler.infrastructure.inputs.collector import CollectionOptions, JobPlan, collect_jobs
from pretackler.infrastructure.runtime.fair_scheduler import FairScheduler
from pretackler.infrastructure.runtime.resource_probe import ResourceProbe

logger = logging.getLogger(__name__)


class BatchService:
    """Run every job of one input path through the fair scheduler."""

    def __init__(
        self,
        handler: JobHandler,
        collection_options: CollectionOptions,
        *,
        resource_probe: ResourceProbe | None = None,
        concurrency_ceil: int | None = None,
        client: CompletionStreamClient | None = None,
    ) -> None:
        self._handler = handler
        self._collection_options = collection_options
        self._resource_probe = resource_probe or ResourceProbe()
        self._concurrency_ceil = concurrency_ceil
        self._client = client

    async def aclose(self) -> None:
        """Release the completion client when this service owns one."""

        if self._client is not None:
            await self._client.aclose()

    async def run(self, input_path: Path) -> BatchReport:
        """Summarize `input_path` (file or directory) and return the run report."""

        plan = await asyncio.to_thread(collect_jobs, input_path, self._collection_options)
        report = BatchReport(output_root=plan.output_root, skipped=list(plan.skipped))
        for skipped in plan.skipped:
            logger.info("Skipped %s: %s", skipped.path, skipped.reason)

        report.directories_created = await asyncio.to_thread(self._create_directories, plan)

        if not plan.jobs:
            logger.info("No processable files under %s.", input_path)
            return report

        concurrency = await self._resource_probe.estimate_concurrency(
            self._concurrency_ceil,
            len(plan.jobs),
        )
        report.concurrency = concurrency
        logger.info(
            "Dispatching %s job(s) (%s long) with %s worker(s).",
            len(plan.jobs),
            sum(1 for job in plan.jobs if job.channel is ChannelClass.LONG),
            concurrency,
        )

        scheduler = self._build_scheduler(plan.jobs, concurrency)
        await scheduler.submit_all(plan.jobs)
        report.reports = await scheduler.run()
        report.counters = scheduler.counters

        logger.info(
            "PreTackler finished: %s succeeded, %s failed, %s skipped, output at %s",
            report.counters.completed,
            report.counters.failed,
            len(report.skipped),
            report.output_root,
        )
        return report

    def _build_scheduler(self, jobs: list[Job], concurrency: int) -> FairScheduler:
        long_count = sum(1 for job in jobs if job.channel is ChannelClass.LONG)
        normal_count = len(jobs) - long_count
        return FairScheduler(
            concurrency,
            self._handler,
            normal_capacity=max(normal_count, concurrency * 2),
            long_capacity=max(long_count, concurrency * 2),
        )

    def _create_directories(self, plan: JobPlan) -> int:
        created = 0
        for directory in plan.directories:
            if directory.is_dir():
                continue
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StagingError(f"Cannot create output directory {directory}: {exc}") from exc
            created += 1
        return created


__all__ = ["BatchService"]
