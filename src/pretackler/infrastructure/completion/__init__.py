"""Chat-completion transport adapters."""

from pretackler.infrastructure.completion.client import DEFAULT_ENDPOINT, CompletionClient

__all__ = ["CompletionClient", "DEFAULT_ENDPOINT"]
