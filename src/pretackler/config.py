"""Application settings."""

import json
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from pretackler.infrastructure.completion import DEFAULT_ENDPOINT
from pretackler.infrastructure.runtime.retry import FaultKind

DEFAULT_MODEL = "deepseek-chat"
DEFAULT_PROMPT_FILE = "prompt_template.md"


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables and CLI overrides."""

    endpoint: str = DEFAULT_ENDPOINT
    model: str = DEFAULT_MODEL
    temperature: float = 0.65
    top_k: int = 1
    version: str = "v1"
    prompt_path: Path = Path(DEFAULT_PROMPT_FILE)
    api_key_file: Path | None = None
    concurrency_ceil: int | None = None
    rate_limit_rps: float | None = None
    rate_limit_bytes_per_sec: int | None = None
    connect_timeout_seconds: float = 15.0
    request_timeout_seconds: float = 45.0
    stream_idle_timeout_seconds: float = 30.0
    skip_large_file_size_mb: int | None = None
    skip_exts: Annotated[list[str], NoDecode] = Field(default_factory=list)
    long_file_bytes_threshold: int = 524_288
    long_file_lines_threshold: int = 4000
    long_channel_enabled: bool = True
    long_channel_timeout_multiplier: float = 5.0
    long_channel_request_timeout_seconds: float | None = None
    long_channel_idle_timeout_seconds: float | None = None
    long_channel_adaptive_idle_enabled: bool = True
    inject_fault: FaultKind | None = None
    retry_max_attempts: int = 5
    retry_base_delay_seconds: float = 1.0
    retry_backoff_factor: float = 2.0
    retry_max_delay_seconds: float = 30.0
    verbose: bool = False

    @field_validator("skip_exts", mode="before")
    @classmethod
    def parse_csv_list(cls, value: object) -> object:
        """Support comma-separated env var values in addition to JSON arrays."""

        if not isinstance(value, str):
            return value
        if value.lstrip().startswith("["):
            return json.loads(value)
        return [item.strip() for item in value.split(",") if item.strip()]

    @model_validator(mode="after")
    def validate_runtime_settings(self) -> "Settings":
        """Reject values the job engine cannot honor."""

        if not self.version.strip():
            raise ValueError("PRETACKLER_VERSION cannot be empty.")
        if self.top_k < 1:
            raise ValueError("PRETACKLER_TOP_K must be >= 1.")
        if self.concurrency_ceil is not None and self.concurrency_ceil < 1:
            raise ValueError("PRETACKLER_CONCURRENCY_CEIL must be >= 1.")
        if self.rate_limit_rps is not None and self.rate_limit_rps <= 0:
            raise ValueError("PRETACKLER_RATE_LIMIT_RPS must be > 0.")
        if self.rate_limit_bytes_per_sec is not None and self.rate_limit_bytes_per_sec < 1:
            raise ValueError("PRETACKLER_RATE_LIMIT_BYTES_PER_SEC must be >= 1.")
        for name in (
            "connect_timeout_seconds",
            "request_timeout_seconds",
            "stream_idle_timeout_seconds",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"PRETACKLER_{name.upper()} must be >= 0 (0 means unbounded).")
        for name in (
            "long_channel_request_timeout_seconds",
            "long_channel_idle_timeout_seconds",
        ):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"PRETACKLER_{name.upper()} must be >= 0 (0 means unbounded).")
        if self.skip_large_file_size_mb is not None and self.skip_large_file_size_mb < 0:
            raise ValueError("PRETACKLER_SKIP_LARGE_FILE_SIZE_MB must be >= 0.")
        if self.long_file_bytes_threshold < 1:
            raise ValueError("PRETACKLER_LONG_FILE_BYTES_THRESHOLD must be >= 1.")
        if self.long_file_lines_threshold < 1:
            raise ValueError("PRETACKLER_LONG_FILE_LINES_THRESHOLD must be >= 1.")
        if self.long_channel_timeout_multiplier < 1:
            raise ValueError("PRETACKLER_LONG_CHANNEL_TIMEOUT_MULTIPLIER must be >= 1.")
        if self.retry_max_attempts < 1:
            raise ValueError("PRETACKLER_RETRY_MAX_ATTEMPTS must be >= 1.")
        if self.retry_base_delay_seconds < 0:
            raise ValueError("PRETACKLER_RETRY_BASE_DELAY_SECONDS must be >= 0.")
        if self.retry_backoff_factor < 1:
            raise ValueError("PRETACKLER_RETRY_BACKOFF_FACTOR must be >= 1.")
        if self.retry_max_delay_seconds < self.retry_base_delay_seconds:
            raise ValueError(
                "PRETACKLER_RETRY_MAX_DELAY_SECONDS must be >= "
                "PRETACKLER_RETRY_BASE_DELAY_SECONDS."
            )
        return self

    @property
    def skip_larger_than_bytes(self) -> int | None:
        if self.skip_large_file_size_mb is None:
            return None
        return self.skip_large_file_size_mb * 1024 * 1024

    model_config = SettingsConfigDict(env_prefix="PRETACKLER_", extra="ignore")


__all__ = ["DEFAULT_MODEL", "DEFAULT_PROMPT_FILE", "Settings"]
