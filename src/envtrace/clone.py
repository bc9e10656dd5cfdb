"""
Structural cloning of a namespace graph.

``clone`` copies dicts, lists, sets, tuples, modules and
``SimpleNamespace`` objects recursively. Everything else (numbers,
strings, functions, classes, arbitrary instances) is a leaf and is shared
with the source graph.

Sharing and cycles are preserved through ``seen`` (``id(original) ->
copy``): a container is registered before its entries are visited, so a
container that refers to itself terminates and its copy refers to the
copy.
"""

from __future__ import annotations

import copy
from types import ModuleType, SimpleNamespace
from typing import Any, Optional

from .utils import rebuild_tuple


def _empty_like(value: Any) -> Any:
    if isinstance(value, dict):
        # copy.copy keeps the subclass and its state (e.g. default_factory)
        dup = copy.copy(value)
        dup.clear()
        return dup
    if isinstance(value, ModuleType):
        return type(value)(value.__name__)
    if isinstance(value, SimpleNamespace):
        return type(value).__new__(type(value))
    if isinstance(value, (list, set)):
        return type(value)()
    return None


def clone(value: Any, seen: Optional[dict[int, Any]] = None) -> Any:
    """Deep-copy ``value``, keeping shared sub-structure shared."""
    if seen is None:
        seen = {}
    if id(value) in seen:
        return seen[id(value)]

    if isinstance(value, tuple):
        items = [clone(item, seen) for item in value]
        # a cycle through the tuple may have produced it already
        if id(value) in seen:
            return seen[id(value)]
        if all(a is b for a, b in zip(items, value)):
            dup = value
        else:
            dup = rebuild_tuple(value, items)
        seen[id(value)] = dup
        return dup

    dup = _empty_like(value)
    if dup is None:
        return value
    seen[id(value)] = dup

    if isinstance(value, list):
        dup.extend(clone(item, seen) for item in value)
    elif isinstance(value, set):
        dup.update(clone(item, seen) for item in value)
    else:
        target = dup if isinstance(dup, dict) else vars(dup)
        source = value if isinstance(value, dict) else vars(value)
        for key, item in list(source.items()):
            target[clone(key, seen)] = clone(item, seen)
    return dup
