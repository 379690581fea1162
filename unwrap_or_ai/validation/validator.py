"""Response Validator: checks raw model output against a SchemaDescriptor.

Two gates:
    (a) syntactic parse of the raw text into a generic JSON value
    (b) structural conformance of that value against the schema

The first failing path is reported as a RejectionReason so the next prompt
can ask the model to correct exactly that violation. Both gates are pure.
"""

import json
import math
from typing import Any

from unwrap_or_ai.llm.types import RawModelResponse
from unwrap_or_ai.logging import get_pipeline_logger
from unwrap_or_ai.schema import (
    JsonValue,
    MappingSchema,
    NullableSchema,
    PrimitiveKind,
    PrimitiveSchema,
    RecordSchema,
    SchemaDescriptor,
    SequenceSchema,
)

from .parsing import parse_json_text
from .types import RejectionKind, RejectionReason, ValidatedValue

logger = get_pipeline_logger(__name__)


class _Rejected(Exception):
    """Internal unwinding signal carrying the first violation."""

    def __init__(self, reason: RejectionReason):
        super().__init__(reason.describe())
        self.reason = reason


def observed_kind(value: Any) -> str:
    """Name the JSON kind of a parsed value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _field_path(parent: str, name: str) -> str:
    return name if parent == "$" else f"{parent}.{name}"


def _mismatch(path: str, schema: SchemaDescriptor, value: Any) -> _Rejected:
    return _Rejected(
        RejectionReason(
            kind=RejectionKind.KIND_MISMATCH,
            path=path,
            expected=schema.describe(),
            observed=observed_kind(value),
        )
    )


def _check_primitive(value: Any, schema: PrimitiveSchema, path: str) -> JsonValue:
    match schema.kind:
        case PrimitiveKind.BOOLEAN:
            if isinstance(value, bool):
                return value
        case PrimitiveKind.INTEGER:
            if isinstance(value, int) and not isinstance(value, bool):
                return value
            if isinstance(value, float) and value.is_integer():
                return int(value)
        case PrimitiveKind.NUMBER:
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                if not math.isfinite(value):
                    raise _Rejected(
                        RejectionReason(
                            kind=RejectionKind.CONSTRAINT_VIOLATION,
                            path=path,
                            detail=f"non-finite number {value!r}",
                        )
                    )
                return value
        case PrimitiveKind.STRING:
            if isinstance(value, str):
                return value
    raise _mismatch(path, schema, value)


def _check_record(value: Any, schema: RecordSchema, path: str) -> JsonValue:
    if not isinstance(value, dict):
        raise _mismatch(path, schema, value)

    result: dict[str, Any] = {}
    for field in schema.fields:
        child_path = _field_path(path, field.name)
        if field.name not in value:
            if field.required:
                raise _Rejected(
                    RejectionReason(
                        kind=RejectionKind.MISSING_FIELD,
                        path=child_path,
                        expected=field.descriptor.describe(),
                    )
                )
            continue
        result[field.name] = _check(value[field.name], field.descriptor, child_path)

    if schema.closed:
        known = {field.name for field in schema.fields}
        for key in value:
            if key not in known:
                raise _Rejected(
                    RejectionReason(
                        kind=RejectionKind.UNKNOWN_FIELD,
                        path=_field_path(path, key),
                        observed=observed_kind(value[key]),
                    )
                )
    return result


def _check_mapping(value: Any, schema: MappingSchema, path: str) -> JsonValue:
    if not isinstance(value, dict):
        raise _mismatch(path, schema, value)
    result: dict[str, Any] = {}
    for key, item in value.items():
        child_path = f"{path}[{json.dumps(key)}]"
        if schema.key_kind == PrimitiveKind.INTEGER:
            try:
                int(key)
            except ValueError:
                raise _Rejected(
                    RejectionReason(
                        kind=RejectionKind.KIND_MISMATCH,
                        path=child_path,
                        expected="integer key",
                        observed="string key",
                    )
                ) from None
        result[key] = _check(item, schema.value, child_path)
    return result


def _check(value: Any, schema: SchemaDescriptor, path: str) -> JsonValue:
    if isinstance(schema, NullableSchema):
        if value is None:
            return None
        return _check(value, schema.inner, path)
    if isinstance(schema, PrimitiveSchema):
        return _check_primitive(value, schema, path)
    if isinstance(schema, SequenceSchema):
        if not isinstance(value, list):
            raise _mismatch(path, schema, value)
        return [_check(item, schema.element, f"{path}[{index}]") for index, item in enumerate(value)]
    if isinstance(schema, MappingSchema):
        return _check_mapping(value, schema, path)
    return _check_record(value, schema, path)


def check_conformance(value: JsonValue, schema: SchemaDescriptor) -> ValidatedValue | RejectionReason:
    """Structural gate: check an already-parsed value against ``schema``.

    Returns:
        ValidatedValue with unknown open-record fields dropped, or the
        RejectionReason of the first violation in schema field order.
    """
    try:
        return ValidatedValue(value=_check(value, schema, "$"), schema=schema)
    except _Rejected as rejected:
        return rejected.reason


def validate_response(raw: RawModelResponse, schema: SchemaDescriptor) -> ValidatedValue | RejectionReason:
    """Parse and check a raw model answer.

    @public

    Args:
        raw: Backend answer of one round trip.
        schema: Contract the answer must satisfy.

    Returns:
        ValidatedValue on success, otherwise a RejectionReason
        (``unparseable`` for gate (a), structural kinds for gate (b)).

    Example:
        >>> result = validate_response(raw, build_schema(User))
        >>> if isinstance(result, RejectionReason):
        ...     print(result.describe())
    """
    try:
        parsed = parse_json_text(raw.text)
    except ValueError as e:
        logger.debug(f"Unparseable model output ({len(raw.text)} chars): {e}")
        return RejectionReason(kind=RejectionKind.UNPARSEABLE, detail=str(e))
    return check_conformance(parsed, schema)


__all__ = ["check_conformance", "observed_kind", "validate_response"]
