"""Application bootstrap/wiring."""

import logging

import httpx

from pretackler.application.services import BatchService, JobExecutor, TimeoutPolicy
from pretackler.config import Settings
from pretackler.infrastructure.completion import CompletionClient
from pretackler.infrastructure.inputs import CollectionOptions, load_api_key, load_prompt
from pretackler.infrastructure.runtime import (
    FaultInjection,
    IdleLatencyEstimator,
    RateLimiter,
    ResourceProbe,
    RetryPolicy,
)

logger = logging.getLogger(__name__)


def _build_fault_injection(settings: Settings) -> FaultInjection | None:
    if settings.inject_fault is None:
        return None
    logger.warning(
        "Fault injection enabled: forcing '%s' failures on all but the last attempt.",
        settings.inject_fault,
    )
    return FaultInjection(kind=settings.inject_fault)


def _build_collection_options(settings: Settings) -> CollectionOptions:
    return CollectionOptions(
        version=settings.version,
        request_timeout_seconds=settings.request_timeout_seconds,
        idle_timeout_seconds=settings.stream_idle_timeout_seconds,
        skip_exts=tuple(settings.skip_exts),
        skip_larger_than_bytes=settings.skip_larger_than_bytes,
        long_file_bytes_threshold=settings.long_file_bytes_threshold,
        long_file_lines_threshold=settings.long_file_lines_threshold,
        long_channel_enabled=settings.long_channel_enabled,
    )


def _build_timeout_policy(settings: Settings) -> TimeoutPolicy:
    return TimeoutPolicy(
        long_multiplier=settings.long_channel_timeout_multiplier,
        long_request_timeout_seconds=settings.long_channel_request_timeout_seconds,
        long_idle_timeout_seconds=settings.long_channel_idle_timeout_seconds,
        adaptive_idle_enabled=settings.long_channel_adaptive_idle_enabled,
    )


def build_batch_service(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    resource_probe: ResourceProbe | None = None,
) -> BatchService:
    """Compose service graph.

    Raises `ConfigurationError` when the prompt or API key cannot be loaded.
    """

    system_prompt = load_prompt(settings.prompt_path)
    api_key = load_api_key(settings.api_key_file)

    client = CompletionClient(
        api_key=api_key,
        endpoint=settings.endpoint,
        connect_timeout_seconds=settings.connect_timeout_seconds,
        transport=transport,
    )
    executor = JobExecutor(
        client,
        system_prompt,
        model=settings.model,
        temperature=settings.temperature,
        top_k=settings.top_k,
        rate_limiter=RateLimiter(
            requests_per_second=settings.rate_limit_rps,
            bytes_per_second=settings.rate_limit_bytes_per_sec,
        ),
        retry_policy=RetryPolicy(
            max_attempts=settings.retry_max_attempts,
            base_delay_seconds=settings.retry_base_delay_seconds,
            backoff_factor=settings.retry_backoff_factor,
            max_delay_seconds=settings.retry_max_delay_seconds,
        ),
        timeout_policy=_build_timeout_policy(settings),
        idle_estimator=IdleLatencyEstimator(),
        fault_injection=_build_fault_injection(settings),
    )

    return BatchService(
        handler=executor.execute,
        collection_options=_build_collection_options(settings),
        resource_probe=resource_probe,
        concurrency_ceil=settings.concurrency_ceil,
        client=client,
    )


__all__ = ["build_batch_service"]
