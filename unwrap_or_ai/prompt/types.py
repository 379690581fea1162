"""Types for synthesis requests."""

from pydantic import BaseModel, ConfigDict, Field

from unwrap_or_ai.schema import SchemaDescriptor


class SynthesisRequest(BaseModel):
    """Everything the Prompt Compiler needs for one attempt.

    Created fresh per attempt and never mutated.

    Attributes:
        output_schema: Output contract the synthesized value must satisfy.
        operation_name: Qualified name of the failed operation.
        arguments: Ordered (name, textual value) pairs of the failed call.
        failure_reason: Text of the error the operation produced.
        attempt: 1-based attempt number.
        prior_rejection: Corrective description of the previous attempt's
            violation; only set when attempt > 1.
        operation_doc: Docstring of the failed operation, if any.
        operation_source: Source code of the failed operation, if available.
    """

    model_config = ConfigDict(frozen=True)

    output_schema: SchemaDescriptor
    operation_name: str
    arguments: tuple[tuple[str, str], ...] = ()
    failure_reason: str
    attempt: int = Field(default=1, ge=1)
    prior_rejection: str | None = None
    operation_doc: str | None = None
    operation_source: str | None = None


__all__ = ["SynthesisRequest"]
