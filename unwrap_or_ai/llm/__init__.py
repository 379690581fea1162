"""Generative backend access.

Exports:
    Types: Role, CoreMessage, TokenUsage, CompiledPrompt, RawModelResponse
    Client: ModelClient (protocol), OpenAIModelClient, ModelClientOptions
    Deadlines: deadline_after, remaining_seconds
"""

from .client import (
    ModelClient,
    ModelClientOptions,
    OpenAIModelClient,
    classify_transport_error,
    deadline_after,
    remaining_seconds,
)
from .types import CompiledPrompt, CoreMessage, RawModelResponse, Role, TokenUsage

__all__ = [
    "CompiledPrompt",
    "CoreMessage",
    "ModelClient",
    "ModelClientOptions",
    "OpenAIModelClient",
    "RawModelResponse",
    "Role",
    "TokenUsage",
    "classify_transport_error",
    "deadline_after",
    "remaining_seconds",
]
