"""Model Client: network access to the generative backend.

Sends a CompiledPrompt to an OpenAI-compatible chat-completions endpoint and
returns the raw answer. Owns the per-request timeout, the caller's deadline,
transport-level retries with exponential backoff, and the classification of
transport errors:

- ModelTimeoutError: the caller's deadline elapsed (also during backoff), or
  every attempt hit the per-request timeout
- ModelUnreachableError: connection failures outlived all retries
- BackendRejectedError: the backend answered with an error status

Validation-level retries are not handled here; the orchestrator drives them
by calling invoke() again with a new prompt.
"""

import asyncio
import time
from typing import Any, Protocol, runtime_checkable

import openai
from lmnr import Laminar
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletionMessageParam
from pydantic import BaseModel, ConfigDict, Field

from unwrap_or_ai.exceptions import BackendRejectedError, ModelClientError, ModelTimeoutError, ModelUnreachableError
from unwrap_or_ai.logging import get_pipeline_logger
from unwrap_or_ai.settings import DEFAULT_BASE_URL, DEFAULT_MODEL, settings

from .types import CompiledPrompt, RawModelResponse, TokenUsage

logger = get_pipeline_logger(__name__)

# Statuses worth another transport attempt: request timeout, conflict, rate limit, server errors
_RETRYABLE_STATUS = frozenset({408, 409, 429})


def deadline_after(seconds: float) -> float:
    """Return an absolute deadline ``seconds`` from now on the monotonic clock."""
    return time.monotonic() + seconds


def remaining_seconds(deadline: float | None) -> float | None:
    """Seconds left until ``deadline``, or None when there is no deadline."""
    if deadline is None:
        return None
    return deadline - time.monotonic()


@runtime_checkable
class ModelClient(Protocol):
    """Anything that can turn a compiled prompt into a raw backend answer."""

    async def invoke(self, prompt: CompiledPrompt, deadline: float | None = None) -> RawModelResponse:
        """Perform one logical model call, bounded by ``deadline``."""
        ...


class ModelClientOptions(BaseModel):
    """Connection and retry configuration of OpenAIModelClient.

    Use from_settings() to build options from the environment.
    """

    model_config = ConfigDict(frozen=True)

    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    api_key: str = Field(default="", repr=False)
    transport_attempts: int = Field(default=3, ge=1)  # total attempts, not retries
    retry_delay_seconds: float = Field(default=0.5, ge=0)
    retry_max_delay_seconds: float = Field(default=8.0, ge=0)
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    structured_output: bool = True
    temperature: float | None = None

    @classmethod
    def from_settings(cls) -> "ModelClientOptions":
        return cls(
            model=settings.fallback_model,
            base_url=settings.openai_base_url,
            api_key=settings.openai_api_key,
            transport_attempts=settings.fallback_transport_attempts,
            retry_delay_seconds=settings.fallback_retry_delay_seconds,
            retry_max_delay_seconds=settings.fallback_retry_max_delay_seconds,
            request_timeout_seconds=settings.fallback_request_timeout_seconds,
            structured_output=settings.fallback_structured_output,
        )

    def backoff_delay(self, retry_index: int) -> float:
        """Delay before retry number ``retry_index`` (0-based), doubling each time."""
        return min(self.retry_delay_seconds * 2**retry_index, self.retry_max_delay_seconds)


def _extract_usage(response: Any) -> TokenUsage:
    """Extract token usage from API response."""
    usage = getattr(response, "usage", None)
    if not usage:
        return TokenUsage()

    cached = 0
    reasoning = 0

    if prompt_details := getattr(usage, "prompt_tokens_details", None):
        cached = getattr(prompt_details, "cached_tokens", 0) or 0

    if completion_details := getattr(usage, "completion_tokens_details", None):
        reasoning = getattr(completion_details, "reasoning_tokens", 0) or 0

    return TokenUsage(
        prompt_tokens=usage.prompt_tokens or 0,
        completion_tokens=usage.completion_tokens or 0,
        total_tokens=usage.total_tokens or 0,
        cached_tokens=cached,
        reasoning_tokens=reasoning,
    )


def _strip_reasoning(content: str) -> str:
    """Drop a leading <think>...</think> block some models emit."""
    if "</think>" in content:
        return content.split("</think>")[-1].strip()
    return content


def classify_transport_error(error: openai.APIError) -> ModelClientError:
    """Map an OpenAI SDK error onto the engine's transport taxonomy."""
    if isinstance(error, openai.APITimeoutError):
        return ModelTimeoutError(f"backend did not answer within the request timeout: {error}")
    if isinstance(error, openai.APIStatusError):
        return BackendRejectedError(f"backend answered {error.status_code}: {error.message}", status_code=error.status_code)
    return ModelUnreachableError(f"backend unreachable: {error}")


def _is_retryable(error: openai.APIError) -> bool:
    if isinstance(error, openai.APIStatusError):
        return error.status_code in _RETRYABLE_STATUS or error.status_code >= 500
    return isinstance(error, openai.APIConnectionError)


class OpenAIModelClient:
    """ModelClient over an OpenAI-compatible chat-completions API.

    @public

    A fresh AsyncOpenAI client is opened per round trip and closed on exit, so
    a cancelled or timed-out request always releases its connection. The SDK's
    own retries are disabled; retries happen here with exponential backoff.

    Example:
        >>> client = OpenAIModelClient(ModelClientOptions.from_settings())
        >>> raw = await client.invoke(prompt, deadline=deadline_after(30))
        >>> print(raw.text)
    """

    def __init__(self, options: ModelClientOptions | None = None):
        self.options = options or ModelClientOptions.from_settings()

    def _completion_kwargs(self, prompt: CompiledPrompt) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if self.options.structured_output:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": prompt.schema_name, "schema": prompt.json_schema},
            }
        if self.options.temperature is not None:
            kwargs["temperature"] = self.options.temperature
        return kwargs

    async def invoke(self, prompt: CompiledPrompt, deadline: float | None = None) -> RawModelResponse:
        """Send ``prompt`` and return the backend's raw answer.

        Args:
            prompt: Compiled request payload.
            deadline: Absolute time.monotonic() deadline, or None.

        Raises:
            ModelTimeoutError: The deadline elapsed.
            ModelUnreachableError: No API key, or transport failures exhausted retries.
            BackendRejectedError: The backend answered with an error status.
        """
        if not self.options.api_key:
            raise ModelUnreachableError("no API key configured for the model backend (set OPENAI_API_KEY)")

        api_messages: list[ChatCompletionMessageParam] = [
            {"role": message.role.value, "content": message.content}  # type: ignore[misc]
            for message in prompt.messages
        ]
        completion_kwargs = self._completion_kwargs(prompt)
        attempts = self.options.transport_attempts

        for attempt in range(attempts):
            remaining = remaining_seconds(deadline)
            if remaining is not None and remaining <= 0:
                raise ModelTimeoutError("deadline elapsed before the backend answered")
            request_timeout = self.options.request_timeout_seconds
            if remaining is not None:
                request_timeout = min(request_timeout, remaining)

            try:
                async with asyncio.timeout(remaining):
                    return await self._round_trip(prompt, api_messages, completion_kwargs, request_timeout)
            except TimeoutError:
                logger.warning(f"Model call cancelled at deadline (attempt {attempt + 1}/{attempts})")
                raise ModelTimeoutError("deadline elapsed while awaiting the backend") from None
            except openai.APIError as e:
                error = classify_transport_error(e)
                if not _is_retryable(e):
                    raise error from e
                logger.warning(f"Model call failed (attempt {attempt + 1}/{attempts}): {error}")
                if attempt == attempts - 1:
                    raise error from e

            await self._backoff(attempt, deadline)

        raise ModelUnreachableError("Unknown error occurred during model call.")

    async def _backoff(self, retry_index: int, deadline: float | None) -> None:
        delay = self.options.backoff_delay(retry_index)
        remaining = remaining_seconds(deadline)
        if remaining is not None and delay >= remaining:
            raise ModelTimeoutError(f"deadline would elapse during {delay:.2f}s backoff")
        await asyncio.sleep(delay)

    async def _round_trip(
        self,
        prompt: CompiledPrompt,
        api_messages: list[ChatCompletionMessageParam],
        completion_kwargs: dict[str, Any],
        request_timeout: float,
    ) -> RawModelResponse:
        start_time = time.monotonic()
        async with AsyncOpenAI(
            api_key=self.options.api_key,
            base_url=self.options.base_url,
            max_retries=0,
            timeout=request_timeout,
        ) as client:
            with Laminar.start_as_current_span(f"synthesize {prompt.schema_name}", span_type="LLM", input=api_messages) as span:
                raw = await client.chat.completions.with_raw_response.create(
                    model=self.options.model,
                    messages=api_messages,
                    **completion_kwargs,
                )
                response = raw.parse()

                text = ""
                finish_reason = None
                if response.choices:
                    choice = response.choices[0]
                    text = _strip_reasoning(choice.message.content or "")
                    finish_reason = choice.finish_reason

                usage = _extract_usage(response)
                latency = round(time.monotonic() - start_time, 3)
                span.set_attributes({
                    "time_taken": latency,
                    "attempt": prompt.attempt,
                    "gen_ai.usage.prompt_tokens": usage.prompt_tokens,
                    "gen_ai.usage.completion_tokens": usage.completion_tokens,
                    "gen_ai.usage.total_tokens": usage.total_tokens,
                })
                Laminar.set_span_output(text)

        logger.debug(f"Model answered {raw.status_code} in {latency}s ({usage.total_tokens} tokens)")
        return RawModelResponse(
            text=text,
            latency_seconds=latency,
            status_code=raw.status_code,
            model=response.model or self.options.model,
            finish_reason=finish_reason,
            usage=usage,
        )


__all__ = [
    "ModelClient",
    "ModelClientOptions",
    "OpenAIModelClient",
    "classify_transport_error",
    "deadline_after",
    "remaining_seconds",
]
