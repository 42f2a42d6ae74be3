"""Small helpers shared by the engine modules."""

from __future__ import annotations

import copy
import inspect
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged.

    Plugin hooks, secret stores, loaders, prompts and status callbacks may be
    plain functions or coroutine functions; this lets the engine call both.
    """
    if inspect.isawaitable(value):
        return await value
    return value


def clone_structured(value: Any) -> Any:
    """Deep-copy dicts and lists, return anything else as is.

    >>> settings = {"token": {"scope": "repo"}}
    >>> clone_structured(settings) is settings
    False
    >>> clone_structured("plain")
    'plain'
    """
    if isinstance(value, (dict, list)):
        return copy.deepcopy(value)
    return value
