"""Fallback Orchestrator: drives one synthesis from failure to value.

State machine per synthesis:

    idle -> prompting -> awaiting_response -> validating -> materializing -> succeeded
                 ^                                 |               |
                 +------------- retrying <---------+---------------+
    awaiting_response --(timeout / unreachable / rejected)--> exhausted_fallback
    retrying --(attempts exhausted)--> exhausted_fallback

Validation-class failures (unparseable output, schema rejection,
materialization error) are retried with the rejection carried into the next
prompt. Transport-class failures were already retried by the Model Client and
end the synthesis immediately. Both terminal states return a value; the
outcome's ``source`` tells them apart.
"""

import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from unwrap_or_ai.exceptions import MaterializationError, ModelClientError
from unwrap_or_ai.llm import ModelClient, OpenAIModelClient, deadline_after
from unwrap_or_ai.logging import get_pipeline_logger
from unwrap_or_ai.materialize import materialize, materialize_default
from unwrap_or_ai.prompt import SynthesisRequest, compile_prompt
from unwrap_or_ai.result import Err, Ok
from unwrap_or_ai.schema import SchemaDescriptor, build_schema
from unwrap_or_ai.settings import settings
from unwrap_or_ai.validation import RejectionKind, RejectionReason, validate_response

logger = get_pipeline_logger(__name__)

T = TypeVar("T")


class SynthesisState(StrEnum):
    """States of one synthesis."""

    IDLE = "idle"
    PROMPTING = "prompting"
    AWAITING_RESPONSE = "awaiting_response"
    VALIDATING = "validating"
    MATERIALIZING = "materializing"
    SUCCEEDED = "succeeded"
    RETRYING = "retrying"
    EXHAUSTED_FALLBACK = "exhausted_fallback"


class OutcomeSource(StrEnum):
    """Where the returned value came from."""

    ORIGINAL = "original"
    MODEL = "model"
    DEFAULT = "default"


class OperationContext(BaseModel):
    """Identity of the failed operation, rendered into the prompt."""

    model_config = ConfigDict(frozen=True)

    operation_name: str
    arguments: tuple[tuple[str, str], ...] = ()
    doc: str | None = None
    source: str | None = None

    @classmethod
    def from_call(
        cls,
        func: Callable[..., Any],
        args: tuple[Any, ...] = (),
        kwargs: Mapping[str, Any] | None = None,
        *,
        include_source: bool = True,
    ) -> "OperationContext":
        """Describe a call of ``func``: bound arguments as reprs, docstring, source."""
        kwargs = dict(kwargs or {})
        try:
            bound = inspect.signature(func).bind_partial(*args, **kwargs)
            arguments = tuple((name, repr(value)) for name, value in bound.arguments.items())
        except (TypeError, ValueError):
            arguments = tuple((f"arg{i}", repr(value)) for i, value in enumerate(args))
            arguments += tuple((name, repr(value)) for name, value in kwargs.items())

        source = None
        if include_source:
            try:
                source = inspect.getsource(func)
            except (OSError, TypeError):
                source = None

        return cls(
            operation_name=getattr(func, "__qualname__", None) or getattr(func, "__name__", repr(func)),
            arguments=arguments,
            doc=inspect.getdoc(func),
            source=source,
        )


class SynthesisPolicy(BaseModel):
    """Retry bound and default deadline of the orchestrator."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1)
    deadline_seconds: float | None = Field(default=120.0, gt=0)

    @classmethod
    def from_settings(cls) -> "SynthesisPolicy":
        return cls(max_attempts=settings.fallback_max_attempts, deadline_seconds=settings.fallback_deadline_seconds)


@dataclass(frozen=True, slots=True)
class SynthesisOutcome(Generic[T]):
    """Terminal result of a synthesis.

    Attributes:
        value: The value handed to the caller.
        source: ORIGINAL (no failure), MODEL (validated model output) or
            DEFAULT (deterministic fallback).
        attempts: Prompt/validate rounds performed.
        last_rejection: Most recent rejection, if any attempt was rejected.
        terminal_error: Transport error that ended the synthesis, if any.
        states: Visited states, in order.
    """

    value: T
    source: OutcomeSource
    attempts: int = 0
    last_rejection: RejectionReason | None = None
    terminal_error: str | None = None
    states: tuple[SynthesisState, ...] = ()

    @property
    def from_model(self) -> bool:
        return self.source is OutcomeSource.MODEL

    @property
    def from_default(self) -> bool:
        return self.source is OutcomeSource.DEFAULT


class FallbackOrchestrator:
    """Coordinates Prompt Compiler, Model Client, Validator and Materializer.

    @public

    Instances hold no per-synthesis state and can serve concurrent syntheses.

    Example:
        >>> orchestrator = FallbackOrchestrator()
        >>> user = await orchestrator.synthesize(
        ...     Err("user 42 not found"),
        ...     OperationContext(operation_name="get_user", arguments=(("id", "42"),)),
        ...     User,
        ... )
    """

    def __init__(self, client: ModelClient | None = None, policy: SynthesisPolicy | None = None):
        self.client = client or OpenAIModelClient()
        self.policy = policy or SynthesisPolicy.from_settings()

    async def recover(
        self,
        target_type: type[T] | Any,
        context: OperationContext,
        failure_reason: str,
        *,
        deadline: float | None = None,
    ) -> SynthesisOutcome[T]:
        """Synthesize a substitute value for a failed operation.

        Args:
            target_type: Type the caller expects.
            context: Identity and arguments of the failed operation.
            failure_reason: Text of the failure.
            deadline: Absolute time.monotonic() deadline; defaults to
                ``policy.deadline_seconds`` from now.

        Returns:
            Outcome from the model, or the deterministic default.

        Raises:
            UnsupportedTypeError: ``target_type`` cannot be described.
        """
        states = [SynthesisState.IDLE]
        schema = build_schema(target_type)
        if deadline is None and self.policy.deadline_seconds is not None:
            deadline = deadline_after(self.policy.deadline_seconds)

        name = context.operation_name
        max_attempts = self.policy.max_attempts
        rejection: RejectionReason | None = None

        for attempt in range(1, max_attempts + 1):
            states.append(SynthesisState.PROMPTING)
            prompt = compile_prompt(
                SynthesisRequest(
                    output_schema=schema,
                    operation_name=name,
                    arguments=context.arguments,
                    failure_reason=failure_reason,
                    attempt=attempt,
                    prior_rejection=rejection.describe() if rejection else None,
                    operation_doc=context.doc,
                    operation_source=context.source,
                )
            )

            states.append(SynthesisState.AWAITING_RESPONSE)
            try:
                raw = await self.client.invoke(prompt, deadline)
            except ModelClientError as e:
                logger.warning(f"{name}: model call failed on attempt {attempt}/{max_attempts} ({type(e).__name__}: {e}), using default")
                return self._fallback(schema, target_type, attempt, rejection, states, terminal_error=f"{type(e).__name__}: {e}")

            states.append(SynthesisState.VALIDATING)
            checked = validate_response(raw, schema)
            if isinstance(checked, RejectionReason):
                rejection = checked
            else:
                states.append(SynthesisState.MATERIALIZING)
                try:
                    value = materialize(checked, target_type)
                except MaterializationError as e:
                    rejection = RejectionReason(kind=RejectionKind.CONSTRAINT_VIOLATION, path=e.path, detail=str(e))
                else:
                    states.append(SynthesisState.SUCCEEDED)
                    logger.info(f"{name}: synthesized {schema.describe()} on attempt {attempt}/{max_attempts}")
                    return SynthesisOutcome(
                        value=value,
                        source=OutcomeSource.MODEL,
                        attempts=attempt,
                        last_rejection=rejection,
                        states=tuple(states),
                    )

            logger.warning(f"{name}: attempt {attempt}/{max_attempts} rejected ({rejection.kind}) at `{rejection.path}`: {rejection.describe()}")
            if attempt < max_attempts:
                states.append(SynthesisState.RETRYING)

        return self._fallback(schema, target_type, max_attempts, rejection, states)

    def _fallback(
        self,
        schema: SchemaDescriptor,
        target_type: Any,
        attempts: int,
        rejection: RejectionReason | None,
        states: list[SynthesisState],
        terminal_error: str | None = None,
    ) -> SynthesisOutcome[Any]:
        states.append(SynthesisState.EXHAUSTED_FALLBACK)
        logger.info(f"Returning deterministic default for {schema.describe()} after {attempts} attempt(s)")
        return SynthesisOutcome(
            value=materialize_default(schema, target_type),
            source=OutcomeSource.DEFAULT,
            attempts=attempts,
            last_rejection=rejection,
            terminal_error=terminal_error,
            states=tuple(states),
        )

    async def synthesize_outcome(
        self,
        result: Any,
        context: OperationContext,
        target_type: type[T] | Any,
        *,
        deadline: float | None = None,
    ) -> SynthesisOutcome[T]:
        """Like synthesize(), but returns the tagged outcome.

        Successful results (``Ok(value)`` or any value other than None, an
        ``Err`` or an exception) are returned untouched: no schema is built
        and no network call is made.
        """
        if isinstance(result, Ok):
            return SynthesisOutcome(value=result.value, source=OutcomeSource.ORIGINAL)
        if isinstance(result, Err):
            failure_reason = result.describe()
        elif isinstance(result, BaseException):
            failure_reason = Err(result).describe()
        elif result is None:
            failure_reason = "the operation returned no value"
        else:
            return SynthesisOutcome(value=result, source=OutcomeSource.ORIGINAL)
        return await self.recover(target_type, context, failure_reason, deadline=deadline)

    async def synthesize(
        self,
        result: Any,
        context: OperationContext,
        target_type: type[T] | Any,
        *,
        deadline: float | None = None,
    ) -> T:
        """Return the operation's value, or a synthesized substitute on failure.

        Never returns or raises the operation's error.

        Raises:
            UnsupportedTypeError: ``target_type`` cannot be described.
        """
        outcome = await self.synthesize_outcome(result, context, target_type, deadline=deadline)
        return outcome.value


_default_orchestrator: FallbackOrchestrator | None = None


def get_default_orchestrator() -> FallbackOrchestrator:
    """Process-wide orchestrator built from settings on first use."""
    global _default_orchestrator
    if _default_orchestrator is None:
        _default_orchestrator = FallbackOrchestrator()
    return _default_orchestrator


async def synthesize(
    result: Any,
    context: OperationContext,
    target_type: type[T] | Any,
    *,
    deadline: float | None = None,
) -> T:
    """Module-level synthesize() on the default orchestrator.

    @public
    """
    return await get_default_orchestrator().synthesize(result, context, target_type, deadline=deadline)


__all__ = [
    "FallbackOrchestrator",
    "OperationContext",
    "OutcomeSource",
    "SynthesisOutcome",
    "SynthesisPolicy",
    "SynthesisState",
    "get_default_orchestrator",
    "synthesize",
]
