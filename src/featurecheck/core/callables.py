from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar, cast

T = TypeVar("T")

_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
    inspect.Parameter.VAR_POSITIONAL,
)


def _is_async_callable(fn: Callable[..., Any]) -> bool:
    if inspect.iscoroutinefunction(fn):
        return True
    call = getattr(fn, "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)


def accepts_positional(fn: Callable[..., Any]) -> bool:
    """Whether ``fn`` can be called with one positional argument."""
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        # Builtins without introspectable signatures get the argument.
        return True
    return any(parameter.kind in _POSITIONAL_KINDS for parameter in signature.parameters.values())


def ensure_async(fn: Callable[..., T] | Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Wrap ``fn`` so every call site can simply ``await`` it.

    Coroutine functions are returned as is. Plain callables run in a worker
    thread, so a surrounding ``asyncio.wait_for`` can stop waiting on them.
    """
    if _is_async_callable(fn):
        return cast(Callable[..., Awaitable[T]], fn)

    @wraps(fn)
    async def async_wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(cast(Callable[..., T], fn), *args, **kwargs)

    return async_wrapper


def bind_test_body(fn: Callable[..., Any]) -> Callable[[str], Awaitable[Any]]:
    """Normalize a test body to ``await body(context_id)``.

    Bodies declaring no positional parameter are called without the context id.
    """
    body = ensure_async(fn)
    if accepts_positional(fn):
        return body

    async def without_context(context_id: str) -> Any:
        return await body()

    return without_context


__all__ = ["accepts_positional", "bind_test_body", "ensure_async"]
