"""Host resource sampling for the worker concurrency budget."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import psutil

_PER_TASK_MEMORY_BYTES = 64 * 1024 * 1024
_PER_TASK_BANDWIDTH_BYTES = 512 * 1024
_NETWORK_SAMPLE_SECONDS = 0.5
_HEADROOM = 0.85

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ResourceSample:
    """One snapshot of host capacity."""

    cpu_cores: int
    available_memory_bytes: int
    network_bytes_per_second: float


class ResourceProbe:
    """Propose a concurrency ceiling from CPU, memory, and network headroom."""

    def __init__(
        self,
        per_task_memory_bytes: int = _PER_TASK_MEMORY_BYTES,
        per_task_bandwidth_bytes: int = _PER_TASK_BANDWIDTH_BYTES,
        network_sample_seconds: float = _NETWORK_SAMPLE_SECONDS,
        headroom: float = _HEADROOM,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._per_task_memory_bytes = max(1, per_task_memory_bytes)
        self._per_task_bandwidth_bytes = max(1, per_task_bandwidth_bytes)
        self._network_sample_seconds = max(0.01, network_sample_seconds)
        self._headroom = headroom
        self._sleep = sleep

    async def estimate_concurrency(self, user_override: int | None, job_count: int) -> int:
        """Return the worker budget for `job_count` jobs."""

        job_count = max(1, job_count)
        if user_override is not None:
            return min(max(1, user_override), job_count)

        sample = await self.sample()
        limit = self.limit_from_sample(sample, job_count)
        logger.debug(
            "Resource probe: cores=%s available_memory=%s network=%.0fB/s -> concurrency %s",
            sample.cpu_cores,
            sample.available_memory_bytes,
            sample.network_bytes_per_second,
            limit,
        )
        return limit

    async def sample(self) -> ResourceSample:
        """Read CPU and memory, and measure network throughput over a short window."""

        cpu_cores = psutil.cpu_count(logical=True) or 1
        available_memory = psutil.virtual_memory().available

        before = self._network_bytes()
        await self._sleep(self._network_sample_seconds)
        after = self._network_bytes()
        throughput = max(after - before, 0) / self._network_sample_seconds

        return ResourceSample(
            cpu_cores=cpu_cores,
            available_memory_bytes=available_memory,
            network_bytes_per_second=throughput,
        )

    def limit_from_sample(self, sample: ResourceSample, job_count: int) -> int:
        """Combine per-resource limits into one budget clamped to `[1, job_count]`."""

        cpu_limit = math.ceil(max(1, sample.cpu_cores) * self._headroom)
        available_memory = max(sample.available_memory_bytes, self._per_task_memory_bytes)
        memory_limit = max(
            1,
            math.floor(available_memory / self._per_task_memory_bytes * self._headroom),
        )

        if sample.network_bytes_per_second < self._per_task_bandwidth_bytes:
            network_limit = max(cpu_limit, memory_limit)
        else:
            network_limit = max(
                1,
                math.ceil(
                    sample.network_bytes_per_second
                    / self._per_task_bandwidth_bytes
                    * self._headroom
                ),
            )

        limit = max(1, min(cpu_limit, memory_limit, network_limit))
        return min(limit, max(1, job_count))

    def _network_bytes(self) -> int:
        counters = psutil.net_io_counters()
        if counters is None:
            return 0
        return counters.bytes_sent + counters.bytes_recv


__all__ = ["ResourceProbe", "ResourceSample"]
