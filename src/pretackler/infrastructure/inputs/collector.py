"""Input enumeration: skip rules, output paths, and channel classification."""

from __future__ import annotations

import logging
import os
import random
from dataclasses import dataclass, field
from pathlib import Path

from pretackler.domain.errors import ConfigurationError
from pretackler.domain.jobs import ChannelClass, Job, SkippedInput
from pretackler.infrastructure.inputs.language import detect_language

_LINE_COUNT_CHUNK_BYTES = 64 * 1024

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CollectionOptions:
    """Rules applied while turning input paths into jobs."""

    version: str = "v1"
    request_timeout_seconds: float = 45.0
    idle_timeout_seconds: float = 30.0
    skip_exts: tuple[str, ...] = ()
    skip_larger_than_bytes: int | None = None
    long_file_bytes_threshold: int = 524_288
    long_file_lines_threshold: int = 4000
    long_channel_enabled: bool = True
    shuffle: bool = True


@dataclass(slots=True)
class JobPlan:
    """Jobs plus the output layout they write into."""

    output_root: Path
    jobs: list[Job] = field(default_factory=list)
    directories: list[Path] = field(default_factory=list)
    skipped: list[SkippedInput] = field(default_factory=list)
    single_file: bool = False


def summary_file_name(file_name: str, version: str) -> str:
    return f"{file_name}.summary.{version}.md"


def output_root_for(input_dir: Path, version: str) -> Path:
    """Return `<parent>/<dir>.summaries.<version>` for a directory input."""

    resolved = input_dir.resolve()
    if not resolved.name:
        raise ConfigurationError(f"Cannot derive an output directory name from {input_dir}.")
    return resolved.parent / f"{resolved.name}.summaries.{version}"


def normalize_extensions(raw: tuple[str, ...] | list[str]) -> frozenset[str]:
    """Lower-case extensions without their leading dot."""

    return frozenset(ext.strip().lstrip(".").lower() for ext in raw if ext.strip().lstrip("."))


def collect_jobs(
    input_path: Path,
    options: CollectionOptions,
    rng: random.Random | None = None,
) -> JobPlan:
    """Build the job plan for a single file or a directory tree."""

    if input_path.is_file():
        return _collect_single_file(input_path, options)
    if input_path.is_dir():
        return _collect_directory(input_path, options, rng or random.Random())
    raise ConfigurationError(f"Input path is neither a file nor a directory: {input_path}")


def _collect_single_file(input_path: Path, options: CollectionOptions) -> JobPlan:
    destination = input_path.with_name(summary_file_name(input_path.name, options.version))
    plan = JobPlan(output_root=input_path.parent, single_file=True)
    _plan_file(plan, input_path, destination, options, normalize_extensions(options.skip_exts))
    return plan


def _collect_directory(
    input_dir: Path,
    options: CollectionOptions,
    rng: random.Random,
) -> JobPlan:
    plan = JobPlan(output_root=output_root_for(input_dir, options.version))
    skip_exts = normalize_extensions(options.skip_exts)
    plan.directories.append(plan.output_root)

    for current, dir_names, file_names in os.walk(input_dir, followlinks=False):
        current_path = Path(current)
        relative_dir = current_path.relative_to(input_dir)
        dir_names.sort()
        for dir_name in dir_names:
            if (current_path / dir_name).is_symlink():
                continue
            plan.directories.append(plan.output_root / relative_dir / dir_name)

        for file_name in sorted(file_names):
            source = current_path / file_name
            if source.is_symlink() or not source.is_file():
                continue
            destination = (
                plan.output_root / relative_dir / summary_file_name(file_name, options.version)
            )
            _plan_file(plan, source, destination, options, skip_exts)

    if options.shuffle:
        rng.shuffle(plan.jobs)
    return plan


def _plan_file(
    plan: JobPlan,
    source: Path,
    destination: Path,
    options: CollectionOptions,
    skip_exts: frozenset[str],
) -> None:
    """Add one job for `source`, or record why it was left out."""

    try:
        reason = _skip_reason(source, options, skip_exts)
        if reason is None:
            plan.jobs.append(_build_job(source, destination, options))
            return
    except OSError as exc:
        reason = f"unreadable: {exc}"
    plan.skipped.append(SkippedInput(path=source, reason=reason))


def _skip_reason(path: Path, options: CollectionOptions, skip_exts: frozenset[str]) -> str | None:
    extension = path.suffix.lstrip(".").lower()
    if extension and extension in skip_exts:
        return f"extension .{extension} is excluded"

    limit = options.skip_larger_than_bytes
    if limit is not None:
        size = path.stat().st_size
        if size > limit:
            return f"size {size} bytes exceeds {limit} bytes"
    return None


def _build_job(source: Path, destination: Path, options: CollectionOptions) -> Job:
    return Job(
        source=source,
        destination=destination,
        request_timeout_seconds=options.request_timeout_seconds,
        idle_timeout_seconds=options.idle_timeout_seconds,
        channel=classify_channel(source, options),
        language=detect_language(source),
    )


def classify_channel(path: Path, options: CollectionOptions) -> ChannelClass:
    """Return LONG for files at or beyond the byte or line thresholds."""

    if not options.long_channel_enabled:
        return ChannelClass.NORMAL
    if path.stat().st_size >= options.long_file_bytes_threshold:
        return ChannelClass.LONG
    threshold = options.long_file_lines_threshold
    if count_lines(path, stop_at=threshold) >= threshold:
        return ChannelClass.LONG
    return ChannelClass.NORMAL


def count_lines(path: Path, stop_at: int | None = None) -> int:
    """Count lines, stopping early once `stop_at` is reached."""

    lines = 0
    last_byte = b""
    with path.open("rb") as handle:
        while chunk := handle.read(_LINE_COUNT_CHUNK_BYTES):
            lines += chunk.count(b"\n")
            last_byte = chunk[-1:]
            if stop_at is not None and lines >= stop_at:
                return lines
    if last_byte and last_byte != b"\n":
        lines += 1
    return lines


__all__ = [
    "CollectionOptions",
    "JobPlan",
    "classify_channel",
    "collect_jobs",
    "count_lines",
    "normalize_extensions",
    "output_root_for",
    "summary_file_name",
]
