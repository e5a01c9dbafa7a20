"""Pydantic models for chat-completion requests and stream frames."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """One chat message sent to the completion endpoint."""

    model_config = ConfigDict(extra="forbid")

    role: Literal["system", "user", "assistant"]
    content: str


class ChatCompletionRequest(BaseModel):
    """Streaming chat-completion request body."""

    model_config = ConfigDict(extra="forbid")

    model: str
    stream: bool = True
    temperature: float
    top_k: int
    messages: list[ChatMessage]

    @classmethod
    def for_prompt(
        cls,
        *,
        model: str,
        temperature: float,
        top_k: int,
        system_prompt: str,
        user_content: str,
    ) -> "ChatCompletionRequest":
        """Build the two-message request used for every job."""

        return cls(
            model=model,
            temperature=temperature,
            top_k=top_k,
            messages=[
                ChatMessage(role="system", content=system_prompt),
                ChatMessage(role="user", content=user_content),
            ],
        )


class StreamFrameModel(BaseModel):
    """Base model for server-sent stream payloads; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")


class StreamDelta(StreamFrameModel):
    content: str | None = None


class StreamChoice(StreamFrameModel):
    delta: StreamDelta | None = None


class StreamChunk(StreamFrameModel):
    """One `data:` payload of a streaming completion response."""

    choices: list[StreamChoice] = Field(default_factory=list)

    def contents(self) -> list[str]:
        """Return the non-empty text deltas in choice order."""

        return [
            choice.delta.content
            for choice in self.choices
            if choice.delta is not None and choice.delta.content
        ]


__all__ = [
    "ChatCompletionRequest",
    "ChatMessage",
    "StreamChoice",
    "StreamChunk",
    "StreamDelta",
]
