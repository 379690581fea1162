"""Validation results: accepted values and structured rejections."""

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from unwrap_or_ai.schema import JsonValue, SchemaDescriptor


class RejectionKind(StrEnum):
    """Why an answer was rejected."""

    UNPARSEABLE = "unparseable"
    KIND_MISMATCH = "kind_mismatch"
    MISSING_FIELD = "missing_field"
    UNKNOWN_FIELD = "unknown_field"
    CONSTRAINT_VIOLATION = "constraint_violation"


class RejectionReason(BaseModel):
    """First violation found in an answer, precise enough to re-prompt with.

    Paths use ``$`` for the root value, ``a.b`` for record fields,
    ``a[2]`` for sequence elements and ``a["k"]`` for mapping entries.
    """

    model_config = ConfigDict(frozen=True)

    kind: RejectionKind
    path: str = "$"
    expected: str | None = None
    observed: str | None = None
    detail: str | None = None

    def describe(self) -> str:
        """Render the rejection as a corrective instruction."""
        match self.kind:
            case RejectionKind.UNPARSEABLE:
                return f"the answer was not valid JSON ({self.detail})"
            case RejectionKind.MISSING_FIELD:
                return f"required field `{self.path}` is missing; it must be {self.expected}"
            case RejectionKind.KIND_MISMATCH:
                return f"field `{self.path}` must be {self.expected} but was {self.observed}"
            case RejectionKind.UNKNOWN_FIELD:
                return f"field `{self.path}` is not part of the schema and must be removed"
            case RejectionKind.CONSTRAINT_VIOLATION:
                return f"field `{self.path}` violates a constraint: {self.detail}"
        return f"field `{self.path}` was rejected"


@dataclass(frozen=True, slots=True)
class ValidatedValue:
    """Structural value known to conform to ``schema``.

    Unknown fields of open records are already removed and integral floats of
    integer fields are normalised to int.
    """

    value: JsonValue
    schema: SchemaDescriptor


__all__ = ["RejectionKind", "RejectionReason", "ValidatedValue"]
