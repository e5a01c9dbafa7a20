"""Command-line entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from pretackler import __version__
from pretackler.bootstrap import build_batch_service
from pretackler.config import Settings
from pretackler.domain.errors import PretacklerError
from pretackler.infrastructure.runtime.retry import FaultKind

EXIT_OK = 0
EXIT_JOB_FAILURES = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_INTERRUPTED = 130

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def _parse_bool(raw: str) -> bool:
    normalized = raw.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise argparse.ArgumentTypeError(f"expected true/false, got '{raw}'")


def _parse_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser; unset options fall back to PRETACKLER_* settings."""

    parser = argparse.ArgumentParser(
        prog="pretackler",
        description="Stream chat-completion summaries for a file or a directory tree.",
    )
    parser.add_argument("input", type=Path, help="File or directory to summarize.")
    parser.add_argument("--version", help="Version tag embedded in output names (default: v1).")
    parser.add_argument(
        "--prompt",
        dest="prompt_path",
        type=Path,
        help="Prompt template path (default: ./prompt_template.md).",
    )
    parser.add_argument("--model", help="Model name (default: deepseek-chat).")
    parser.add_argument("--endpoint", help="Chat-completion endpoint URL.")
    parser.add_argument("--api-key-file", type=Path, help="File holding the API key.")
    parser.add_argument("--temperature", type=float, help="Sampling temperature (default: 0.65).")
    parser.add_argument("--top-k", type=int, help="Top-K sampling parameter (default: 1).")
    parser.add_argument(
        "--concurrency-ceil",
        "--max-concurrency",
        dest="concurrency_ceil",
        type=int,
        help="Worker ceiling; estimated from host resources when unset.",
    )
    parser.add_argument(
        "--rate-limit-rps",
        type=float,
        help="Maximum requests per second (default: unlimited).",
    )
    parser.add_argument(
        "--rate-limit-bytes-per-sec",
        type=int,
        help="Maximum streamed bytes per second (default: unlimited).",
    )
    parser.add_argument(
        "--connect-timeout",
        dest="connect_timeout_seconds",
        type=float,
        help="Connect timeout in seconds (default: 15).",
    )
    parser.add_argument(
        "--request-timeout",
        dest="request_timeout_seconds",
        type=float,
        help="Seconds to wait for response headers (default: 45, 0 = unbounded).",
    )
    parser.add_argument(
        "--stream-idle-timeout",
        dest="stream_idle_timeout_seconds",
        type=float,
        help="Seconds without a stream chunk before retrying (default: 30, 0 = unbounded).",
    )
    parser.add_argument(
        "--skip-large-file-size-mb",
        type=int,
        help="Skip files larger than this many MB.",
    )
    parser.add_argument(
        "--skip-ext",
        dest="skip_exts",
        type=_parse_csv,
        help="Comma-separated extensions to skip, case-insensitive (e.g. '.png,.jpg').",
    )
    parser.add_argument(
        "--long-file-bytes-threshold",
        type=int,
        help="Files at or above this size use the long channel (default: 524288).",
    )
    parser.add_argument(
        "--long-file-lines-threshold",
        type=int,
        help="Files at or above this line count use the long channel (default: 4000).",
    )
    parser.add_argument(
        "--long-channel-enabled",
        type=_parse_bool,
        help="Enable the long channel (default: true).",
    )
    parser.add_argument(
        "--long-channel-timeout-multiplier",
        type=float,
        help="Timeout multiplier for long-channel jobs (default: 5.0).",
    )
    parser.add_argument(
        "--long-channel-request-timeout",
        dest="long_channel_request_timeout_seconds",
        type=float,
        help="Long-channel request timeout in seconds (0 = unbounded).",
    )
    parser.add_argument(
        "--long-channel-idle-timeout",
        dest="long_channel_idle_timeout_seconds",
        type=float,
        help="Long-channel idle timeout in seconds (0 = unbounded).",
    )
    parser.add_argument(
        "--long-channel-adaptive-idle-enabled",
        type=_parse_bool,
        help="Widen long-channel idle timeouts from observed p95 gaps (default: true).",
    )
    parser.add_argument(
        "--retry-max-attempts",
        type=int,
        help="Attempts per job before giving up (default: 5).",
    )
    parser.add_argument(
        "--retry-base-delay",
        dest="retry_base_delay_seconds",
        type=float,
        help="First backoff delay in seconds (default: 1.0).",
    )
    parser.add_argument(
        "--retry-backoff-factor",
        type=float,
        help="Backoff growth factor per attempt (default: 2.0).",
    )
    parser.add_argument(
        "--retry-max-delay",
        dest="retry_max_delay_seconds",
        type=float,
        help="Backoff delay cap in seconds (default: 30.0).",
    )
    parser.add_argument(
        "--inject-fault",
        choices=[kind.value for kind in FaultKind],
        help="Test-only fault injection on all but the last attempt.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Log waits, backoff, HTTP statuses, and idle timeouts.",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Overlay explicitly passed CLI options on environment settings."""

    overrides: dict[str, Any] = {
        name: value
        for name, value in vars(args).items()
        if name != "input" and value is not None
    }
    return Settings(**overrides)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=_LOG_FORMAT,
    )
    # Request-level httpx logs drown out job progress.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def _run_batch(settings: Settings, input_path: Path) -> int:
    service = build_batch_service(settings)
    try:
        report = await service.run(input_path)
    finally:
        await service.aclose()
    return EXIT_OK if report.all_succeeded else EXIT_JOB_FAILURES


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, run the batch, and return a process exit code."""

    args = build_parser().parse_args(argv)
    try:
        settings = settings_from_args(args)
    except ValidationError as exc:
        print(f"pretackler: invalid configuration:\n{exc}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR

    configure_logging(settings.verbose)
    logger.debug("PreTackler %s starting with %s", __version__, settings)

    try:
        return asyncio.run(_run_batch(settings, args.input))
    except PretacklerError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIGURATION_ERROR
    except KeyboardInterrupt:
        logger.warning("Interrupted; in-flight staging files were discarded.")
        return EXIT_INTERRUPTED


def run() -> None:
    """Console-script entrypoint."""

    sys.exit(main())


__all__ = ["build_parser", "configure_logging", "main", "run", "settings_from_args"]
