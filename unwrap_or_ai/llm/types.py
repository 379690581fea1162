"""Primitive types exchanged with the generative backend.

All types are frozen Pydantic models for immutability and JSON serialization.
CompiledPrompt is what the Prompt Compiler produces and the Model Client
accepts; RawModelResponse is what one network round trip returns.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    """Message role in conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class CoreMessage(BaseModel):
    """A single text message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class TokenUsage(BaseModel):
    """Token usage statistics from an LLM call."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cached_tokens: int = 0
    reasoning_tokens: int = 0


class CompiledPrompt(BaseModel):
    """Request payload for one synthesis attempt.

    Attributes:
        messages: Conversation sent to the backend, system message first.
        schema_name: Identifier of the output contract, used as the
            json_schema name of structured-output requests.
        json_schema: Machine-readable output contract.
        attempt: Attempt number this prompt was compiled for.
    """

    model_config = ConfigDict(frozen=True)

    messages: tuple[CoreMessage, ...]
    schema_name: str
    json_schema: dict[str, Any]
    attempt: int = 1


class RawModelResponse(BaseModel):
    """Unvalidated backend answer of one network round trip."""

    model_config = ConfigDict(frozen=True)

    text: str
    latency_seconds: float
    status_code: int
    model: str = ""
    finish_reason: str | None = None
    usage: TokenUsage = Field(default_factory=TokenUsage)


__all__ = ["CompiledPrompt", "CoreMessage", "RawModelResponse", "Role", "TokenUsage"]
