"""Value Materializer: converts validated structures into typed values.

This is the final type-safety gate. The Response Validator only checks
structural kinds; here Pydantic enforces everything else the target type
declares: numeric ranges, string lengths and patterns, Enum and Literal
membership, and model validators.
"""

import dataclasses
from typing import Any, TypeVar, cast

from pydantic import BaseModel, TypeAdapter, ValidationError

from unwrap_or_ai.exceptions import MaterializationError
from unwrap_or_ai.logging import get_pipeline_logger
from unwrap_or_ai.schema import MATERIALIZE_HOOK, JsonValue, SchemaDescriptor
from unwrap_or_ai.validation import ValidatedValue

logger = get_pipeline_logger(__name__)

T = TypeVar("T")

_ADAPTERS: dict[Any, TypeAdapter[Any]] = {}


def _adapter(target_type: Any) -> TypeAdapter[Any]:
    """Return a (memoized when hashable) TypeAdapter for ``target_type``."""
    try:
        cached = _ADAPTERS.get(target_type)
    except TypeError:
        return TypeAdapter(target_type)
    if cached is None:
        cached = _ADAPTERS.setdefault(target_type, TypeAdapter(target_type))
    return cached


def _error_path(loc: tuple[int | str, ...]) -> str:
    path = "$"
    for part in loc:
        if isinstance(part, int):
            path = f"{path}[{part}]"
        else:
            path = part if path == "$" else f"{path}.{part}"
    return path


def materialize(validated: ValidatedValue, target_type: type[T] | Any) -> T:
    """Convert a validated structural value into ``target_type``.

    @public

    Classes exposing ``__synthesis_materialize__(value)`` build their own
    instances; every other type goes through a Pydantic TypeAdapter.

    Raises:
        MaterializationError: The value conforms to the schema but violates
            a finer-grained invariant of the target type. ``path`` names the
            first offending location.

    Example:
        >>> user = materialize(validated, User)
        >>> user.id
        7
    """
    if (hook := getattr(target_type, MATERIALIZE_HOOK, None)) is not None:
        try:
            return cast(T, hook(validated.value))
        except MaterializationError:
            raise
        except (ValueError, TypeError) as e:
            raise MaterializationError(f"$: {e}") from e
    try:
        return cast(T, _adapter(target_type).validate_python(validated.value))
    except ValidationError as e:
        first = e.errors()[0]
        path = _error_path(tuple(first["loc"]))
        raise MaterializationError(f"{path}: {first['msg']}", path=path) from e


def to_structural(value: Any, target_type: Any) -> JsonValue:
    """Serialize a typed value into its JSON-like structural form."""
    return _adapter(target_type).dump_python(value, mode="json", by_alias=True)


def _dataclass_unchecked(target_type: type, value: dict[str, Any]) -> Any:
    """Build a dataclass instance without running __init__ or __post_init__."""
    instance = object.__new__(target_type)
    for field in dataclasses.fields(target_type):
        if field.name in value:
            field_value = value[field.name]
        elif field.default is not dataclasses.MISSING:
            field_value = field.default
        elif field.default_factory is not dataclasses.MISSING:
            field_value = field.default_factory()
        else:
            continue
        object.__setattr__(instance, field.name, field_value)
    return instance


def _construct_unchecked(target_type: Any, value: JsonValue) -> Any:
    if isinstance(target_type, type) and isinstance(value, dict):
        if issubclass(target_type, BaseModel):
            return target_type.model_construct(**value)
        if dataclasses.is_dataclass(target_type):
            return _dataclass_unchecked(target_type, value)
    return value


def materialize_default(schema: SchemaDescriptor, target_type: type[T] | Any) -> T:
    """Materialize the schema's deterministic default instance.

    When the target type rejects even the minimal default (e.g. a custom
    model validator or ``__post_init__``), records are constructed without
    validation so the fallback still yields an instance of ``target_type``.
    Never raises: as a last resort the structural default itself is returned.
    """
    default = schema.default_instance()
    type_name = getattr(target_type, "__name__", target_type)
    try:
        return materialize(ValidatedValue(value=default, schema=schema), target_type)
    except Exception as e:
        logger.warning(f"Default instance violates {type_name} ({e}); constructing without validation")
    try:
        return cast(T, _construct_unchecked(target_type, default))
    except Exception as e:
        logger.error(f"Cannot construct {type_name} without validation ({type(e).__name__}: {e}); returning structural default")
        return cast(T, default)


__all__ = ["materialize", "materialize_default", "to_structural"]
