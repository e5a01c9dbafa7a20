"""Ports for completion streaming and job handling."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from typing import Protocol

from pretackler.domain.completion_models import ChatCompletionRequest
from pretackler.domain.jobs import Job, JobReport


class CompletionStreamClient(Protocol):
    """Streaming chat-completion transport."""

    def stream_chat(
        self,
        request: ChatCompletionRequest,
        *,
        request_timeout_seconds: float,
    ) -> AbstractAsyncContextManager[AsyncIterator[bytes]]:
        """Open a completion stream and yield its raw body chunks.

        Entering the context raises `CompletionStatusError` for non-2xx
        responses and `CompletionTransportError` for transport failures.
        """

    async def aclose(self) -> None:
        """Release underlying HTTP resources."""


JobHandler = Callable[[Job], Awaitable[JobReport]]


__all__ = ["CompletionStreamClient", "JobHandler"]
