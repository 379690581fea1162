"""Schema Descriptor Builder.

Converts a Python type annotation into a SchemaDescriptor. Supported
compositions: primitives (bool, int, float, str), Enum and Literal, list /
tuple[T, ...] / set / frozenset / Sequence, dict / Mapping with str or int
keys, ``T | None``, ``Annotated`` constraints, Pydantic models, dataclasses,
TypedDicts, and classes exposing ``__synthesis_schema__()``. A hook class that
Pydantic cannot validate must also expose ``__synthesis_materialize__(value)``
so the validated structure can be turned back into an instance.

Descriptors are memoized process-wide. The cache is read-mostly and written
with ``dict.setdefault``: concurrent first builds of the same type may both
run, the first insert wins, and every caller gets that instance.
"""

import collections.abc
import dataclasses
import enum
import types
import typing
from typing import Any, Literal, Union, get_args, get_origin, get_type_hints

import annotated_types
from pydantic import BaseModel, PydanticSchemaGenerationError, TypeAdapter
from pydantic.fields import FieldInfo
from typing_extensions import is_typeddict

from unwrap_or_ai.exceptions import UnsupportedTypeError

from .descriptor import (
    FieldSchema,
    MappingSchema,
    NullableSchema,
    PrimitiveKind,
    PrimitiveSchema,
    RecordSchema,
    SchemaDescriptor,
    SequenceSchema,
)

MAX_SCHEMA_DEPTH = 32

SCHEMA_HOOK = "__synthesis_schema__"
MATERIALIZE_HOOK = "__synthesis_materialize__"

_SCHEMA_CACHE: dict[Any, SchemaDescriptor] = {}

_PRIMITIVES: dict[type, PrimitiveKind] = {
    bool: PrimitiveKind.BOOLEAN,
    int: PrimitiveKind.INTEGER,
    float: PrimitiveKind.NUMBER,
    str: PrimitiveKind.STRING,
}

_SEQUENCE_ORIGINS = frozenset({
    list,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Collection,
    collections.abc.Iterable,
})
_MAPPING_ORIGINS = frozenset({dict, collections.abc.Mapping, collections.abc.MutableMapping})

# annotated_types metadata -> constraint name
_ANNOTATED_CONSTRAINTS: tuple[tuple[type, str], ...] = (
    (annotated_types.Ge, "ge"),
    (annotated_types.Gt, "gt"),
    (annotated_types.Le, "le"),
    (annotated_types.Lt, "lt"),
    (annotated_types.MultipleOf, "multiple_of"),
    (annotated_types.MinLen, "min_length"),
    (annotated_types.MaxLen, "max_length"),
)


def _cache_key(tp: Any) -> Any | None:
    """Return the cache key for a type, or None when it is unhashable."""
    try:
        hash(tp)
    except TypeError:
        return None
    return tp


def build_schema(tp: Any) -> SchemaDescriptor:
    """Build (or fetch from cache) the SchemaDescriptor of a type.

    @public

    Args:
        tp: The target type, e.g. a Pydantic model class or ``list[int]``.

    Returns:
        The descriptor. Repeated calls with the same type return the same
        (structurally equal) descriptor.

    Raises:
        UnsupportedTypeError: If the type contains a construct without a
            structural representation, or refers to itself.

    Example:
        >>> build_schema(list[int]).to_json_schema()
        {'type': 'array', 'items': {'type': 'integer'}}
    """
    key = _cache_key(tp)
    if key is not None and (cached := _SCHEMA_CACHE.get(key)) is not None:
        return cached
    descriptor = _build(tp, ())
    if key is None:
        return descriptor
    return _SCHEMA_CACHE.setdefault(key, descriptor)


def clear_schema_cache() -> None:
    """Drop all memoized descriptors (tests and hot-reload only)."""
    _SCHEMA_CACHE.clear()


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


def _build(tp: Any, stack: tuple[Any, ...]) -> SchemaDescriptor:  # noqa: C901, PLR0911, PLR0912
    if len(stack) >= MAX_SCHEMA_DEPTH:
        raise UnsupportedTypeError(f"type nesting exceeds {MAX_SCHEMA_DEPTH} levels at {_type_name(tp)}")

    if isinstance(tp, str) or isinstance(tp, typing.ForwardRef):
        raise UnsupportedTypeError(f"unresolved forward reference {tp!r}")
    if tp is Any or tp is object:
        raise UnsupportedTypeError("'Any' has no structural representation")

    origin = get_origin(tp)

    if origin is typing.Annotated:
        inner, *metadata = get_args(tp)
        return _apply_constraints(_build(inner, stack), metadata, tp)

    if origin is Literal:
        return _literal_schema(tp)

    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(tp) if arg is not type(None)]
        if len(members) != 1:
            raise UnsupportedTypeError(f"union {tp!r} has no structural representation (only 'T | None' is supported)")
        return NullableSchema(inner=_build(members[0], stack))

    if origin is tuple:
        args = get_args(tp)
        if len(args) == 2 and args[1] is Ellipsis:
            return SequenceSchema(element=_build(args[0], stack))
        raise UnsupportedTypeError(f"fixed-length tuple {tp!r} is not supported, use tuple[T, ...]")

    if origin in _SEQUENCE_ORIGINS:
        (element,) = get_args(tp) or (Any,)
        return SequenceSchema(element=_build(element, stack))

    if origin in _MAPPING_ORIGINS:
        key_type, value_type = get_args(tp) or (Any, Any)
        key_type = _strip_annotated(key_type)
        if key_type is str:
            key_kind = PrimitiveKind.STRING
        elif key_type is int:
            key_kind = PrimitiveKind.INTEGER
        else:
            raise UnsupportedTypeError(f"mapping key type {_type_name(key_type)} is not supported (use str or int)")
        return MappingSchema(key_kind=key_kind, value=_build(value_type, stack))

    if origin is not None:
        raise UnsupportedTypeError(f"generic {tp!r} has no structural representation")

    if not isinstance(tp, type):
        raise UnsupportedTypeError(f"{tp!r} is not a type")

    if tp in stack:
        raise UnsupportedTypeError(f"recursive type {_type_name(tp)} cannot be described")

    if hook := getattr(tp, SCHEMA_HOOK, None):
        _require_materializable(tp)
        return hook()

    if issubclass(tp, enum.Enum):
        return _enum_schema(tp)

    for primitive, kind in _PRIMITIVES.items():
        if tp is primitive:
            return PrimitiveSchema(kind=kind)

    if tp in (list, set, frozenset, tuple, dict):
        raise UnsupportedTypeError(f"bare {tp.__name__} needs an element type, e.g. {tp.__name__}[int]")

    if issubclass(tp, BaseModel):
        return _pydantic_record(tp, (*stack, tp))
    if dataclasses.is_dataclass(tp):
        return _dataclass_record(tp, (*stack, tp))
    if is_typeddict(tp):
        return _typeddict_record(tp, (*stack, tp))

    raise UnsupportedTypeError(f"type {_type_name(tp)} has no structural representation")


def _require_materializable(tp: type) -> None:
    """Reject a hook class whose instances could never be built from a validated value."""
    if getattr(tp, MATERIALIZE_HOOK, None) is not None:
        return
    try:
        TypeAdapter(tp)
    except PydanticSchemaGenerationError as e:
        raise UnsupportedTypeError(
            f"type {_type_name(tp)} defines {SCHEMA_HOOK}() but neither {MATERIALIZE_HOOK}() nor a Pydantic schema"
        ) from e


def _strip_annotated(tp: Any) -> Any:
    while get_origin(tp) is typing.Annotated:
        tp = get_args(tp)[0]
    return tp


def _apply_constraints(descriptor: SchemaDescriptor, metadata: list[Any], tp: Any) -> SchemaDescriptor:
    """Fold Field(...) / annotated_types metadata into a primitive's constraints."""
    found: list[tuple[str, Any]] = []
    for item in metadata:
        entries = item.metadata if isinstance(item, FieldInfo) else [item]
        for entry in entries:
            found.extend(_constraint_entries(entry))
    if not found:
        return descriptor
    if isinstance(descriptor, NullableSchema):
        return NullableSchema(inner=_apply_constraints(descriptor.inner, metadata, tp))
    if not isinstance(descriptor, PrimitiveSchema):
        # Constraints on containers are enforced at materialization only
        return descriptor
    merged = dict(descriptor.constraints)
    merged.update(found)
    return descriptor.model_copy(update={"constraints": tuple(merged.items())})


def _constraint_entries(entry: Any) -> list[tuple[str, Any]]:
    for cls, name in _ANNOTATED_CONSTRAINTS:
        if isinstance(entry, cls):
            return [(name, getattr(entry, name))]
    if isinstance(entry, annotated_types.Interval):
        return [(name, value) for name in ("ge", "gt", "le", "lt") if (value := getattr(entry, name)) is not None]
    if (pattern := getattr(entry, "pattern", None)) is not None:
        return [("pattern", str(pattern))]
    return []


def _kind_of_value(value: Any, tp: Any) -> PrimitiveKind:
    for primitive, kind in _PRIMITIVES.items():
        if type(value) is primitive:
            return kind
    raise UnsupportedTypeError(f"choice {value!r} of {tp!r} is not a primitive value")


def _literal_schema(tp: Any) -> SchemaDescriptor:
    values = get_args(tp)
    nullable = None in values
    values = tuple(v for v in values if v is not None)
    if not values:
        raise UnsupportedTypeError(f"{tp!r} admits only None")
    kinds = {_kind_of_value(v, tp) for v in values}
    if len(kinds) != 1:
        raise UnsupportedTypeError(f"{tp!r} mixes value kinds {sorted(kinds)}")
    schema = PrimitiveSchema(kind=kinds.pop(), choices=values)
    return NullableSchema(inner=schema) if nullable else schema


def _enum_schema(tp: type[enum.Enum]) -> PrimitiveSchema:
    values = tuple(member.value for member in tp)
    if not values:
        raise UnsupportedTypeError(f"enum {tp.__name__} has no members")
    kinds = {_kind_of_value(v, tp) for v in values}
    if len(kinds) != 1:
        raise UnsupportedTypeError(f"enum {tp.__name__} mixes value kinds {sorted(kinds)}")
    return PrimitiveSchema(kind=kinds.pop(), choices=values)


def _doc_summary(tp: type) -> str | None:
    doc = (tp.__doc__ or "").strip()
    return doc.splitlines()[0] if doc else None


def _field_key(name: str, info: FieldInfo) -> str:
    """Key the model must produce: the key Pydantic validates the field from."""
    if isinstance(info.validation_alias, str):
        return info.validation_alias
    return info.alias or name


def _pydantic_record(tp: type[BaseModel], stack: tuple[Any, ...]) -> RecordSchema:
    fields: list[FieldSchema] = []
    for name, info in tp.model_fields.items():
        annotation = info.rebuild_annotation() if info.metadata else info.annotation
        fields.append(
            FieldSchema(
                name=_field_key(name, info),
                descriptor=_build(annotation, stack),
                required=info.is_required(),
                description=info.description,
            )
        )
    return RecordSchema(
        name=tp.__name__,
        fields=tuple(fields),
        closed=tp.model_config.get("extra") == "forbid",
        description=_doc_summary(tp) if tp.__doc__ != BaseModel.__doc__ else None,
    )


def _dataclass_record(tp: type, stack: tuple[Any, ...]) -> RecordSchema:
    hints = get_type_hints(tp, include_extras=True)
    fields = [
        FieldSchema(
            name=field.name,
            descriptor=_build(hints[field.name], stack),
            required=field.default is dataclasses.MISSING and field.default_factory is dataclasses.MISSING,
        )
        for field in dataclasses.fields(tp)
        if field.init
    ]
    return RecordSchema(name=tp.__name__, fields=tuple(fields), closed=True, description=_doc_summary(tp))


def _typeddict_record(tp: type, stack: tuple[Any, ...]) -> RecordSchema:
    hints = get_type_hints(tp, include_extras=True)
    required_keys: frozenset[str] = getattr(tp, "__required_keys__", frozenset(hints))
    fields = []
    for name, hint in hints.items():
        # NotRequired[...] / Required[...] wrappers are already reflected in __required_keys__
        if get_origin(hint) in (typing.NotRequired, typing.Required):
            hint = get_args(hint)[0]
        fields.append(FieldSchema(name=name, descriptor=_build(hint, stack), required=name in required_keys))
    return RecordSchema(name=tp.__name__, fields=tuple(fields), description=_doc_summary(tp))


__all__ = ["MATERIALIZE_HOOK", "MAX_SCHEMA_DEPTH", "SCHEMA_HOOK", "build_schema", "clear_schema_cache"]
