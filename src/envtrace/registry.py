"""
Identity-keyed association tables.

Containers in the sandbox are mostly plain dicts, which are neither
hashable nor weak-referenceable, so the usual ``weakref.WeakKeyDictionary``
cannot be used. Entries are keyed by ``id(key)`` instead:

- keys that support weak references get a guard ``weakref.ref`` that
  validates lookups and drops the entry when the key is collected;
- other keys (dicts) are pinned: the entry holds the key itself, so its id
  cannot be recycled while the entry exists. Such entries live until they
  are discarded or the registry goes away.

Example:
    names = IdentityRegistry()
    names.set(env, "_ENV")
    names.get(env)          # "_ENV"
    names.get({}, "?")      # "?"
"""

from __future__ import annotations

import weakref
from typing import Any, Optional

_MISSING = object()


class IdentityRegistry:
    """``key -> value`` table keyed by object identity."""

    def __init__(self) -> None:
        # id(key) -> (weakref guard, pinned key, value); one of the first two is None
        self._entries: dict[int, tuple[Optional[weakref.ref], Any, Any]] = {}

    def _guard(self, key: Any) -> Optional[weakref.ref]:
        key_id = id(key)

        def prune(ref: weakref.ref) -> None:
            entry = self._entries.get(key_id)
            if entry is not None and entry[0] is ref:
                del self._entries[key_id]

        try:
            return weakref.ref(key, prune)
        except TypeError:
            return None

    def _lookup(self, key: Any) -> Any:
        entry = self._entries.get(id(key))
        if entry is None:
            return _MISSING
        guard, pinned, value = entry
        held = guard() if guard is not None else pinned
        return value if held is key else _MISSING

    def get(self, key: Any, default: Any = None) -> Any:
        value = self._lookup(key)
        return default if value is _MISSING else value

    def set(self, key: Any, value: Any) -> None:
        guard = self._guard(key)
        self._entries[id(key)] = (guard, key if guard is None else None, value)

    def setdefault(self, key: Any, value: Any) -> Any:
        """Store ``value`` unless ``key`` already has one; return the stored value."""
        existing = self._lookup(key)
        if existing is not _MISSING:
            return existing
        self.set(key, value)
        return value

    def discard(self, key: Any) -> None:
        if self._lookup(key) is not _MISSING:
            del self._entries[id(key)]

    def __contains__(self, key: Any) -> bool:
        return self._lookup(key) is not _MISSING

    def __len__(self) -> int:
        return len(self._entries)
