"""Structural schema descriptors.

A SchemaDescriptor is a recursive, immutable description of a target type:
primitive, sequence, mapping, record or nullable. Descriptors are frozen
Pydantic models so they hash, compare structurally and serialize to JSON.
"""

from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

JsonValue = None | bool | int | float | str | list[Any] | dict[str, Any]
"""Generic structural value as produced by a JSON parser."""

ConstraintValue = int | float | str


class PrimitiveKind(StrEnum):
    """Kind of a primitive leaf, named after its JSON-Schema type."""

    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    STRING = "string"


# Constraint name -> JSON-Schema keyword
_CONSTRAINT_KEYWORDS = {
    "ge": "minimum",
    "le": "maximum",
    "gt": "exclusiveMinimum",
    "lt": "exclusiveMaximum",
    "multiple_of": "multipleOf",
    "min_length": "minLength",
    "max_length": "maxLength",
    "pattern": "pattern",
}


class PrimitiveSchema(BaseModel):
    """Leaf value: boolean, integer, number or string.

    ``choices`` and ``constraints`` are advisory: they are shown to the model
    but enforced only when the value is materialized.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["primitive"] = "primitive"
    kind: PrimitiveKind
    choices: tuple[bool | int | float | str, ...] | None = None
    constraints: tuple[tuple[str, ConstraintValue], ...] = ()

    def constraint(self, name: str) -> ConstraintValue | None:
        """Return the value of a named constraint, or None."""
        for key, value in self.constraints:
            if key == name:
                return value
        return None

    def describe(self) -> str:
        if self.choices is not None:
            return f"{self.kind.value} (one of {list(self.choices)!r})"
        return self.kind.value

    def to_json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.kind.value}
        if self.choices is not None:
            schema["enum"] = list(self.choices)
        for key, value in self.constraints:
            schema[_CONSTRAINT_KEYWORDS[key]] = value
        return schema

    def default_instance(self) -> JsonValue:
        if self.choices:
            return self.choices[0]
        if self.kind is PrimitiveKind.BOOLEAN:
            return False
        if self.kind is PrimitiveKind.STRING:
            min_length = self.constraint("min_length")
            return "x" * int(min_length) if isinstance(min_length, int) else ""
        return self._numeric_default()

    def _numeric_default(self) -> int | float:
        """Zero, moved to the nearest bound when zero is out of range."""
        step: int | float = 1 if self.kind is PrimitiveKind.INTEGER else 1.0
        value: int | float = 0 if self.kind is PrimitiveKind.INTEGER else 0.0
        ge, gt, le, lt = (self.constraint(name) for name in ("ge", "gt", "le", "lt"))
        if isinstance(ge, (int, float)) and value < ge:
            value = ge
        if isinstance(gt, (int, float)) and value <= gt:
            value = gt + step
        if isinstance(le, (int, float)) and value > le:
            value = le
        if isinstance(lt, (int, float)) and value >= lt:
            value = lt - step
        return int(value) if self.kind is PrimitiveKind.INTEGER else float(value)


class SequenceSchema(BaseModel):
    """Homogeneous ordered collection."""

    model_config = ConfigDict(frozen=True)

    type: Literal["sequence"] = "sequence"
    element: "SchemaDescriptor"

    def describe(self) -> str:
        return "array"

    def to_json_schema(self) -> dict[str, Any]:
        return {"type": "array", "items": self.element.to_json_schema()}

    def default_instance(self) -> JsonValue:
        return []


class MappingSchema(BaseModel):
    """String- or integer-keyed mapping with homogeneous values.

    JSON objects only have string keys; integer keys travel as decimal strings.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["mapping"] = "mapping"
    key_kind: Literal[PrimitiveKind.STRING, PrimitiveKind.INTEGER] = PrimitiveKind.STRING
    value: "SchemaDescriptor"

    def describe(self) -> str:
        return "object"

    def to_json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": "object", "additionalProperties": self.value.to_json_schema()}
        if self.key_kind == PrimitiveKind.INTEGER:
            schema["propertyNames"] = {"pattern": r"^-?[0-9]+$"}
        return schema

    def default_instance(self) -> JsonValue:
        return {}


class FieldSchema(BaseModel):
    """One named field of a record."""

    model_config = ConfigDict(frozen=True)

    name: str
    descriptor: "SchemaDescriptor"
    required: bool = True
    description: str | None = None


class RecordSchema(BaseModel):
    """Object with a fixed, ordered set of named fields.

    Unknown fields are tolerated unless ``closed`` is set.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["record"] = "record"
    name: str
    fields: tuple[FieldSchema, ...] = ()
    closed: bool = False
    description: str | None = None

    @model_validator(mode="after")
    def _unique_field_names(self) -> "RecordSchema":
        seen: set[str] = set()
        for field in self.fields:
            if field.name in seen:
                raise ValueError(f"record '{self.name}' declares field '{field.name}' twice")
            seen.add(field.name)
        return self

    def describe(self) -> str:
        return f"object ({self.name})"

    def to_json_schema(self) -> dict[str, Any]:
        properties: dict[str, Any] = {}
        for field in self.fields:
            prop = field.descriptor.to_json_schema()
            if field.description:
                prop["description"] = field.description
            properties[field.name] = prop
        schema: dict[str, Any] = {
            "type": "object",
            "title": self.name,
            "properties": properties,
            "required": [field.name for field in self.fields if field.required],
        }
        if self.description:
            schema["description"] = self.description
        if self.closed:
            schema["additionalProperties"] = False
        return schema

    def default_instance(self) -> JsonValue:
        return {field.name: field.descriptor.default_instance() for field in self.fields if field.required}


class NullableSchema(BaseModel):
    """Value that is either null or conforms to ``inner``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["nullable"] = "nullable"
    inner: "SchemaDescriptor"

    def describe(self) -> str:
        return f"{self.inner.describe()} or null"

    def to_json_schema(self) -> dict[str, Any]:
        return {"anyOf": [self.inner.to_json_schema(), {"type": "null"}]}

    def default_instance(self) -> JsonValue:
        return None


SchemaDescriptor = Annotated[
    Union[PrimitiveSchema, SequenceSchema, MappingSchema, RecordSchema, NullableSchema],
    Field(discriminator="type"),
]
"""Tagged union over all descriptor variants."""

for _model in (SequenceSchema, MappingSchema, FieldSchema, RecordSchema, NullableSchema):
    _model.model_rebuild()

__all__ = [
    "FieldSchema",
    "JsonValue",
    "MappingSchema",
    "NullableSchema",
    "PrimitiveKind",
    "PrimitiveSchema",
    "RecordSchema",
    "SchemaDescriptor",
    "SequenceSchema",
]
