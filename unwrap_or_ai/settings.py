"""Core configuration settings for fallback synthesis.

@public

This module provides centralized configuration for unwrap-or-ai: the
generative backend's endpoint and credentials plus the retry and deadline
policy of the synthesis engine. Settings are loaded from environment
variables with .env file support via pydantic-settings.

Environment variables:
    OPENAI_BASE_URL: OpenAI-compatible endpoint (defaults to Groq)
    OPENAI_API_KEY: API key for the endpoint
    FALLBACK_MODEL: Model identifier used for synthesis
    FALLBACK_MAX_ATTEMPTS: Validation-level attempts per synthesis
    FALLBACK_TRANSPORT_ATTEMPTS: Transport-level attempts per model call
    FALLBACK_RETRY_DELAY_SECONDS: Base delay of the exponential backoff
    FALLBACK_RETRY_MAX_DELAY_SECONDS: Cap of the exponential backoff
    FALLBACK_REQUEST_TIMEOUT_SECONDS: Per-request HTTP timeout
    FALLBACK_DEADLINE_SECONDS: Default overall deadline of one synthesis
    FALLBACK_STRUCTURED_OUTPUT: Send a json_schema response_format
    LMNR_PROJECT_API_KEY: Laminar project key for tracing

Example:
    >>> from unwrap_or_ai.settings import settings
    >>> print(settings.fallback_model)
    moonshotai/kimi-k2-instruct

Note:
    Settings are loaded once at module import and frozen. The process must be
    restarted to pick up changes to environment variables or the .env file.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL = "moonshotai/kimi-k2-instruct"


class Settings(BaseSettings):
    """Configuration for the backend connection and the synthesis policy.

    @public

    Attributes:
        openai_base_url: OpenAI-compatible chat-completions endpoint.
        openai_api_key: Bearer key for the endpoint. Synthesis falls back to
                        the deterministic default when it is empty.
        fallback_model: Model used to synthesize substitute values. Must
                        support JSON output; json_schema support is optional.
        fallback_max_attempts: Maximum number of prompt/validate rounds.
        fallback_transport_attempts: Attempts per model call for transport
                                    faults before giving up.
        fallback_retry_delay_seconds: First backoff delay, doubled per retry.
        fallback_retry_max_delay_seconds: Upper bound of one backoff delay.
        fallback_request_timeout_seconds: Timeout of a single HTTP request.
        fallback_deadline_seconds: Deadline of a whole synthesis when the
                                   caller passes none.
        fallback_structured_output: Request json_schema structured output.
        lmnr_project_api_key: Laminar (LMNR) key; tracing is disabled if empty.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Backend
    openai_base_url: str = DEFAULT_BASE_URL
    openai_api_key: str = ""
    fallback_model: str = DEFAULT_MODEL

    # Synthesis policy
    fallback_max_attempts: int = Field(default=3, ge=1)
    fallback_transport_attempts: int = Field(default=3, ge=1)
    fallback_retry_delay_seconds: float = Field(default=0.5, ge=0)
    fallback_retry_max_delay_seconds: float = Field(default=8.0, ge=0)
    fallback_request_timeout_seconds: float = Field(default=30.0, gt=0)
    fallback_deadline_seconds: float = Field(default=120.0, gt=0)
    fallback_structured_output: bool = True

    # Observability
    lmnr_project_api_key: str = ""


settings = Settings()
"""Global settings instance, created at import time."""
