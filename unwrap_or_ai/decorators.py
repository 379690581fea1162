"""The ``unwrap_or_ai`` decorator: wrap a fallible operation with AI fallback.

Wrapping is explicit and higher-order: the decorator takes the operation and
returns an async callable that runs it and, when it fails, asks the
orchestrator for a substitute of the declared return type.

A call counts as failed when the operation

- raises one of the ``catch`` exception types,
- returns an ``Err``,
- returns None (absence, like an empty Option).

``Ok(value)`` results are unwrapped; any other return value passes through
untouched without building a schema or touching the network.
"""

import functools
import inspect
import types
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec, Union, get_args, get_origin, get_type_hints, overload

from unwrap_or_ai.llm import deadline_after
from unwrap_or_ai.logging import get_pipeline_logger
from unwrap_or_ai.orchestrator import FallbackOrchestrator, OperationContext, get_default_orchestrator
from unwrap_or_ai.result import Err, Ok, ok_type

logger = get_pipeline_logger(__name__)

P = ParamSpec("P")


def resolve_target_type(func: Callable[..., Any], returns: Any = None) -> Any:
    """Infer the type to synthesize for ``func``.

    Uses ``returns`` when given; otherwise the return annotation, unwrapping
    ``Ok[T] | Err[E]`` and ``T | None`` to ``T``.

    Raises:
        TypeError: No explicit type and no usable return annotation.
    """
    if returns is not None:
        return returns
    annotation = get_type_hints(func, include_extras=True).get("return")
    if annotation is None or annotation is type(None):
        raise TypeError(f"{func.__qualname__} needs a return annotation or unwrap_or_ai(returns=...)")
    if (inner := ok_type(annotation)) is not None:
        return inner
    if get_origin(annotation) in (Union, types.UnionType):
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(members) == 1:
            return members[0]
    return annotation


@overload
def unwrap_or_ai(func: Callable[P, Any], /) -> Callable[P, Awaitable[Any]]: ...


@overload
def unwrap_or_ai(
    *,
    returns: Any = None,
    catch: tuple[type[BaseException], ...] = (Exception,),
    orchestrator: FallbackOrchestrator | None = None,
    deadline_seconds: float | None = None,
    include_source: bool = True,
) -> Callable[[Callable[P, Any]], Callable[P, Awaitable[Any]]]: ...


def unwrap_or_ai(
    func: Callable[P, Any] | None = None,
    /,
    *,
    returns: Any = None,
    catch: tuple[type[BaseException], ...] = (Exception,),
    orchestrator: FallbackOrchestrator | None = None,
    deadline_seconds: float | None = None,
    include_source: bool = True,
) -> Any:
    """Decorate a sync or async operation with AI fallback synthesis.

    @public

    The decorated callable is always async and always returns a value of the
    target type; only UnsupportedTypeError (target type cannot be described)
    escapes.

    Args:
        func: The operation (when used as bare ``@unwrap_or_ai``).
        returns: Explicit target type; defaults to the return annotation.
        catch: Exception types treated as failures.
        orchestrator: Orchestrator to use; defaults to the process-wide one.
        deadline_seconds: Per-call synthesis deadline; defaults to the policy.
        include_source: Send the operation's source code as prompt context.

    Example:
        >>> @unwrap_or_ai
        ... def fetch_user(user_id: int) -> User:
        ...     '''Load a user from the database.'''
        ...     raise ConnectionError("database temporarily unavailable")
        >>>
        >>> user = await fetch_user(12345)
    """

    def decorator(fn: Callable[P, Any]) -> Callable[P, Awaitable[Any]]:
        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
            try:
                result = fn(*args, **kwargs)
                if inspect.isawaitable(result):
                    result = await result
            except catch as e:
                logger.debug(f"{fn.__qualname__} raised {type(e).__name__}, synthesizing fallback")
                result = e

            if isinstance(result, Ok):
                return result.value
            if result is not None and not isinstance(result, (Err, BaseException)):
                return result

            context = OperationContext.from_call(fn, args, kwargs, include_source=include_source)
            deadline = deadline_after(deadline_seconds) if deadline_seconds is not None else None
            engine = orchestrator or get_default_orchestrator()
            return await engine.synthesize(result, context, resolve_target_type(fn, returns), deadline=deadline)

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


__all__ = ["resolve_target_type", "unwrap_or_ai"]
