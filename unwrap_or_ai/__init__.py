"""unwrap-or-ai - Recover failed operations with validated, AI-synthesized values.

@public

When a wrapped operation fails (raises, returns ``Err``, or returns None),
unwrap-or-ai describes the operation's declared return type as a structural
schema, asks an OpenAI-compatible model for the value the operation would most
plausibly have returned, validates the answer against the schema and
materializes it as an instance of the return type. When the model cannot be
reached or keeps producing invalid output, a deterministic default instance is
returned instead. The caller always gets a value of the declared type.

Quick Start:
    >>> from pydantic import BaseModel
    >>> from unwrap_or_ai import unwrap_or_ai
    >>>
    >>> class User(BaseModel):
    ...     id: int
    ...     name: str
    >>>
    >>> @unwrap_or_ai
    ... async def fetch_user(user_id: int) -> User:
    ...     '''Load a user from the database.'''
    ...     raise ConnectionError("database temporarily unavailable")
    >>>
    >>> user = await fetch_user(12345)

Environment Variables:
    - OPENAI_BASE_URL: OpenAI-compatible endpoint (default: Groq)
    - OPENAI_API_KEY: API key for the endpoint
    - FALLBACK_MODEL: Model used for synthesis

Optional Environment Variables:
    - LMNR_PROJECT_API_KEY: Laminar (LMNR) API key for tracing
    - UNWRAP_OR_AI_LOG_LEVEL: Log level of the engine loggers
"""

from .decorators import resolve_target_type, unwrap_or_ai
from .exceptions import (
    BackendRejectedError,
    MaterializationError,
    ModelClientError,
    ModelTimeoutError,
    ModelUnreachableError,
    UnsupportedTypeError,
    UnwrapOrAiError,
)
from .llm import ModelClient, ModelClientOptions, OpenAIModelClient, deadline_after
from .logging import LoggingConfig, get_pipeline_logger, setup_logging
from .materialize import materialize, materialize_default
from .observability import initialize_observability
from .orchestrator import (
    FallbackOrchestrator,
    OperationContext,
    OutcomeSource,
    SynthesisOutcome,
    SynthesisPolicy,
    SynthesisState,
    synthesize,
)
from .prompt import SynthesisRequest, compile_prompt
from .result import Err, Ok, Result
from .schema import SchemaDescriptor, build_schema
from .settings import settings
from .validation import RejectionKind, RejectionReason, ValidatedValue, validate_response

__version__ = "0.1.0"

__all__ = [
    # Config/Settings
    "settings",
    # Logging
    "get_pipeline_logger",
    "LoggingConfig",
    "setup_logging",
    # Tracing
    "initialize_observability",
    # Entry points
    "unwrap_or_ai",
    "resolve_target_type",
    "synthesize",
    "Ok",
    "Err",
    "Result",
    # Orchestration
    "FallbackOrchestrator",
    "OperationContext",
    "OutcomeSource",
    "SynthesisOutcome",
    "SynthesisPolicy",
    "SynthesisState",
    # Pipeline stages
    "SchemaDescriptor",
    "build_schema",
    "SynthesisRequest",
    "compile_prompt",
    "ModelClient",
    "ModelClientOptions",
    "OpenAIModelClient",
    "deadline_after",
    "RejectionKind",
    "RejectionReason",
    "ValidatedValue",
    "validate_response",
    "materialize",
    "materialize_default",
    # Exceptions
    "UnwrapOrAiError",
    "UnsupportedTypeError",
    "ModelClientError",
    "ModelTimeoutError",
    "ModelUnreachableError",
    "BackendRejectedError",
    "MaterializationError",
]
