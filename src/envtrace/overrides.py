"""
OverrideMixin - swap top-level sandbox names for replacements and back.

Overrides write straight into the snapshot, so they produce no WRITE
records and are independent of call hooking.
"""

import builtins
from dataclasses import dataclass
from typing import Any

_ABSENT = object()


@dataclass
class Override:
    name: str
    original: Any
    replacement: Any


class OverrideMixin:
    """Builtin override registry. Use with BaseTracer."""

    def _ensure_setup(self):
        if hasattr(super(), '_ensure_setup'):
            super()._ensure_setup()

        if getattr(self, '_overrides_initialized', False):
            return

        self._overrides: dict[str, Override] = {}
        self._overrides_initialized = True

    @property
    def overrides(self):
        return list(self._overrides.values())

    def builtin_override(self, name, replacement):
        """Bind ``name`` in the snapshot to ``replacement``, remembering the original."""
        if (existing := self._overrides.get(name)) is not None:
            existing.replacement = replacement
        else:
            original = self.env.get(name, _ABSENT)
            if original is _ABSENT:
                original = getattr(builtins, name, _ABSENT)
            self._overrides[name] = Override(name, original, replacement)
        self.env[name] = replacement

    def builtin_restore(self, name):
        """Put back the original binding of an overridden name."""
        if (override := self._overrides.pop(name, None)) is None:
            return
        if override.original is _ABSENT:
            self.env.pop(name, None)
        else:
            self.env[name] = override.original
