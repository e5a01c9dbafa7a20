"""Streaming HTTP client for the chat-completion endpoint."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from pretackler.domain.completion_models import ChatCompletionRequest
from pretackler.domain.errors import (
    CompletionStatusError,
    CompletionTransportError,
    ConfigurationError,
)

DEFAULT_ENDPOINT = "https://api.deepseek.com/chat/completions"
_MAX_ERROR_BODY_LENGTH = 2000
_ERROR_BODY_READ_SECONDS = 10.0
_UNREADABLE_ERROR_BODY = "<unable to read error response>"


class CompletionClient:
    """Wrapper around one pooled `httpx.AsyncClient` issuing streaming POSTs."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        connect_timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = self._normalize_endpoint(endpoint)
        connect_timeout = connect_timeout_seconds if connect_timeout_seconds > 0 else None
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(None, connect=connect_timeout),
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def aclose(self) -> None:
        """Release underlying HTTP resources."""

        await self._http.aclose()

    @asynccontextmanager
    async def stream_chat(
        self,
        request: ChatCompletionRequest,
        *,
        request_timeout_seconds: float,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """POST `request` and yield an iterator over raw response body chunks.

        `request_timeout_seconds` bounds the wait for response headers; 0 means
        unbounded. Reading the body is bounded by the caller's idle guard.
        """

        try:
            http_request = self._http.build_request(
                "POST",
                self._endpoint,
                json=request.model_dump(),
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise CompletionTransportError(f"Cannot build completion request: {exc}") from exc

        timeout = request_timeout_seconds if request_timeout_seconds > 0 else None
        try:
            async with asyncio.timeout(timeout):
                response = await self._http.send(http_request, stream=True)
        except TimeoutError as exc:
            raise CompletionTransportError(
                f"POST {self._endpoint} timed out after {request_timeout_seconds:.1f}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise CompletionTransportError(f"POST {self._endpoint} failed: {exc}") from exc

        try:
            if not response.is_success:
                detail = await self._detail_from_response(response, timeout)
                raise CompletionStatusError(response.status_code, detail)
            yield self._iter_body(response)
        finally:
            await response.aclose()

    async def _iter_body(self, response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                if chunk:
                    yield chunk
        except httpx.HTTPError as exc:
            raise CompletionTransportError(f"Reading completion stream failed: {exc}") from exc

    async def _detail_from_response(
        self,
        response: httpx.Response,
        timeout_seconds: float | None,
    ) -> str:
        # The body of an error response may stall like any other stream.
        try:
            async with asyncio.timeout(timeout_seconds or _ERROR_BODY_READ_SECONDS):
                await response.aread()
        except (TimeoutError, httpx.HTTPError):
            return _UNREADABLE_ERROR_BODY

        try:
            payload = response.json()
        except ValueError:
            text = response.text.strip()
            return (text or "<no response body>")[:_MAX_ERROR_BODY_LENGTH]

        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict) and isinstance(error.get("message"), str):
                return error["message"]
            detail = payload.get("detail")
            if isinstance(detail, str):
                return detail
        return str(payload)[:_MAX_ERROR_BODY_LENGTH]

    def _normalize_endpoint(self, endpoint: str) -> str:
        normalized = endpoint.strip().rstrip("/")
        if not normalized:
            raise ConfigurationError("Completion endpoint cannot be empty.")
        return normalized


__all__ = ["CompletionClient", "DEFAULT_ENDPOINT"]
