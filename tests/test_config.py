from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from pretackler.config import Settings
from pretackler.infrastructure.completion import DEFAULT_ENDPOINT
from pretackler.infrastructure.runtime import FaultKind


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("PRETACKLER_SKIP_EXTS", "PRETACKLER_CONCURRENCY_CEIL", "PRETACKLER_VERBOSE"):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = Settings()

    assert settings.endpoint == DEFAULT_ENDPOINT
    assert settings.model == "deepseek-chat"
    assert settings.temperature == 0.65
    assert settings.top_k == 1
    assert settings.version == "v1"
    assert settings.prompt_path == Path("prompt_template.md")
    assert settings.request_timeout_seconds == 45.0
    assert settings.stream_idle_timeout_seconds == 30.0
    assert settings.long_file_bytes_threshold == 524_288
    assert settings.long_file_lines_threshold == 4000
    assert settings.long_channel_enabled is True
    assert settings.long_channel_timeout_multiplier == 5.0
    assert settings.concurrency_ceil is None
    assert settings.skip_exts == []
    assert settings.skip_larger_than_bytes is None
    assert settings.inject_fault is None


def test_env_overrides_use_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRETACKLER_CONCURRENCY_CEIL", "6")
    monkeypatch.setenv("PRETACKLER_RATE_LIMIT_RPS", "2.5")
    monkeypatch.setenv("PRETACKLER_LONG_CHANNEL_ENABLED", "false")
    monkeypatch.setenv("PRETACKLER_INJECT_FAULT", "5xx")

    settings = Settings()

    assert settings.concurrency_ceil == 6
    assert settings.rate_limit_rps == 2.5
    assert settings.long_channel_enabled is False
    assert settings.inject_fault is FaultKind.SERVER_ERROR


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (".png, .JPG,,gif", [".png", ".JPG", "gif"]),
        ('[".lock", ".bin"]', [".lock", ".bin"]),
        ("", []),
    ],
)
def test_skip_exts_accepts_csv_and_json(
    monkeypatch: pytest.MonkeyPatch,
    raw: str,
    expected: list[str],
) -> None:
    monkeypatch.setenv("PRETACKLER_SKIP_EXTS", raw)

    assert Settings().skip_exts == expected


def test_skip_large_file_size_is_converted_to_bytes() -> None:
    assert Settings(skip_large_file_size_mb=2).skip_larger_than_bytes == 2 * 1024 * 1024


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"concurrency_ceil": 0}, "PRETACKLER_CONCURRENCY_CEIL"),
        ({"rate_limit_rps": 0}, "PRETACKLER_RATE_LIMIT_RPS"),
        ({"rate_limit_bytes_per_sec": 0}, "PRETACKLER_RATE_LIMIT_BYTES_PER_SEC"),
        ({"request_timeout_seconds": -1}, "PRETACKLER_REQUEST_TIMEOUT_SECONDS"),
        ({"long_channel_idle_timeout_seconds": -5}, "PRETACKLER_LONG_CHANNEL_IDLE_TIMEOUT"),
        ({"long_channel_timeout_multiplier": 0.5}, "PRETACKLER_LONG_CHANNEL_TIMEOUT_MULTIPLIER"),
        ({"top_k": 0}, "PRETACKLER_TOP_K"),
        ({"version": "  "}, "PRETACKLER_VERSION"),
        ({"retry_max_attempts": 0}, "PRETACKLER_RETRY_MAX_ATTEMPTS"),
    ],
)
def test_invalid_settings_are_rejected(overrides: dict[str, object], message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        Settings(**overrides)


def test_unknown_fault_kind_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(inject_fault="timeout")


def test_zero_timeouts_mean_unbounded() -> None:
    settings = Settings(request_timeout_seconds=0, stream_idle_timeout_seconds=0)

    assert settings.request_timeout_seconds == 0
    assert settings.stream_idle_timeout_seconds == 0
