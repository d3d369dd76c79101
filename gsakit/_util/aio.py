#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
import asyncio
import inspect
from collections.abc import Awaitable, Callable, Coroutine
from functools import wraps
from typing import TypeVar

_T = TypeVar("_T")


def run_async(func: Callable[..., Coroutine]) -> Callable:
    @wraps(func)
    def wrapper(*args: ..., **kwargs: ...) -> ...:
        return asyncio.run(func(*args, **kwargs))

    return wrapper


async def maybe_await(value: Awaitable[_T] | _T) -> _T:
    """
    Await `value` if it is awaitable, otherwise return it as-is.

    >>> async def _answer() -> int:
    ...     return 42
    >>> asyncio.run(maybe_await(_answer()))
    42
    >>> asyncio.run(maybe_await(7))
    7
    """
    if inspect.isawaitable(value):
        return await value

    return value
