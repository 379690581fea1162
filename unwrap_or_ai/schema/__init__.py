"""Structural schemas of synthesis target types.

Exports:
    Descriptors: SchemaDescriptor and its variants (PrimitiveSchema,
        SequenceSchema, MappingSchema, RecordSchema, NullableSchema), FieldSchema
    Builder: build_schema, clear_schema_cache
"""

from .builder import MATERIALIZE_HOOK, MAX_SCHEMA_DEPTH, SCHEMA_HOOK, build_schema, clear_schema_cache
from .descriptor import (
    FieldSchema,
    JsonValue,
    MappingSchema,
    NullableSchema,
    PrimitiveKind,
    PrimitiveSchema,
    RecordSchema,
    SchemaDescriptor,
    SequenceSchema,
)

__all__ = [
    "MATERIALIZE_HOOK",
    "MAX_SCHEMA_DEPTH",
    "SCHEMA_HOOK",
    "FieldSchema",
    "JsonValue",
    "MappingSchema",
    "NullableSchema",
    "PrimitiveKind",
    "PrimitiveSchema",
    "RecordSchema",
    "SchemaDescriptor",
    "SequenceSchema",
    "build_schema",
    "clear_schema_cache",
]
