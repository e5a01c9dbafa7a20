"""Job and run-report models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path


class ChannelClass(StrEnum):
    """Scheduling class of a job."""

    NORMAL = "normal"
    LONG = "long"


class AttemptOutcome(StrEnum):
    """Result classification of one request attempt."""

    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable-failure"
    TERMINAL_FAILURE = "terminal-failure"


@dataclass(slots=True, frozen=True)
class Job:
    """One file to summarize into one destination file."""

    source: Path
    destination: Path
    request_timeout_seconds: float
    idle_timeout_seconds: float
    channel: ChannelClass = ChannelClass.NORMAL
    language: str = "unknown"


@dataclass(slots=True, frozen=True)
class Attempt:
    """Record of one attempt inside a job's retry loop."""

    ordinal: int
    delay_seconds: float
    outcome: AttemptOutcome
    error: str | None = None


@dataclass(slots=True, frozen=True)
class JobReport:
    """Final result of one job."""

    job: Job
    succeeded: bool
    attempts: int
    elapsed_seconds: float
    bytes_written: int = 0
    error: str | None = None
    status_code: int | None = None

    @property
    def throughput_bytes_per_second(self) -> float:
        """Return written bytes per second of wall-clock time."""

        if self.elapsed_seconds <= 0:
            return 0.0
        return self.bytes_written / self.elapsed_seconds


@dataclass(slots=True)
class ScheduleCounters:
    """Monotonic progress counters shared by scheduler workers."""

    started: int = 0
    completed: int = 0
    failed: int = 0

    @property
    def finished(self) -> int:
        return self.completed + self.failed


@dataclass(slots=True, frozen=True)
class SkippedInput:
    """An input file left out of the run, with the reason."""

    path: Path
    reason: str


@dataclass(slots=True)
class BatchReport:
    """Outcome of one batch run."""

    output_root: Path
    concurrency: int = 0
    reports: list[JobReport] = field(default_factory=list)
    skipped: list[SkippedInput] = field(default_factory=list)
    directories_created: int = 0
    counters: ScheduleCounters = field(default_factory=ScheduleCounters)

    @property
    def succeeded(self) -> list[JobReport]:
        return [report for report in self.reports if report.succeeded]

    @property
    def failed(self) -> list[JobReport]:
        return [report for report in self.reports if not report.succeeded]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


__all__ = [
    "Attempt",
    "AttemptOutcome",
    "BatchReport",
    "ChannelClass",
    "Job",
    "JobReport",
    "ScheduleCounters",
    "SkippedInput",
]
