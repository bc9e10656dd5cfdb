"""
Call hooks: logging stand-ins for the routines of the sandbox.

``hook(fn)`` returns a wrapper that, on each call,

1. asks the veto callback (if any) whether to run; an exact ``False``
   skips the call and returns None,
2. runs ``fn``, catching whatever it raises,
3. appends a HOOK_CALL record with arguments, results and outcome,
4. returns the result, or re-raises the caught error.

There is at most one wrapper per original routine, and wrappers are never
wrapped again.
"""

import functools
import logging
import weakref

from .actions import Action
from .registry import IdentityRegistry
from .utils import is_container, is_routine, storage_of

logger = logging.getLogger('envtrace')


class HookMixin:
    """Routine substitution with identity-based memoization."""

    # Veto callback: (arguments, callable_name, container_name) -> bool | None
    veto = None

    # === HOOK IMPLEMENTATIONS ===

    def _ensure_setup(self):
        if hasattr(super(), '_ensure_setup'):
            super()._ensure_setup()

        if getattr(self, '_hooks_initialized', False):
            return

        self._hooked = IdentityRegistry()  # original -> wrapper
        self._wrappers = weakref.WeakSet()
        self._hooks_initialized = True

    # === PUBLIC METHODS ===

    def set_veto(self, fn):
        """
        Install a callback consulted before every hooked call.

        Args:
            fn: Called as ``fn(arguments, callable_name, container_name)``.
                Returning exactly False prevents the call. None removes it.
        """
        self.veto = fn

    def is_wrapper(self, fn):
        try:
            return fn in self._wrappers
        except TypeError:
            return False

    def hook(self, original, name=None, container=None):
        """Return the logging wrapper for ``original``, creating it once."""
        if self.is_wrapper(original):
            return original
        if (wrapper := self._hooked.get(original)) is not None:
            return wrapper

        name = name or getattr(original, '__name__', repr(original))

        @functools.wraps(original)
        def wrapper(*args, **kwargs):
            return self._call_hooked(original, name, container, args, kwargs)

        self._hooked.set(original, wrapper)
        self._wrappers.add(wrapper)
        return wrapper

    def hook_namespace(self, container, recursive=True, visited=None):
        """Replace every routine in ``container`` (and nested containers) with its wrapper."""
        real = self.unwrap(container)
        if visited is None:
            visited = set()
        if id(real) in visited:
            return
        visited.add(id(real))

        storage = storage_of(real)
        for key, value in list(storage.items()):
            if is_routine(value) and not self.is_wrapper(value):
                storage[key] = self.hook(value, name=str(key), container=real)
            elif recursive and is_container(value):
                self.hook_namespace(value, True, visited)

    # === INTERNALS ===

    def _call_hooked(self, original, name, container, args, kwargs):
        if (veto := self.veto) is not None:
            if veto(list(args), name, self.container_name(container)) is False:
                logger.debug(f"Vetoed call to {name}")
                return None

        try:
            result = original(*args, **kwargs)
        except BaseException as e:
            self._log_action(Action.HOOK_CALL, container=container, callable_name=name,
                             arguments=args, keywords=kwargs,
                             results=(f"{type(e).__name__}: {e}",), ok=False)
            raise

        self._log_action(Action.HOOK_CALL, container=container, callable_name=name,
                         arguments=args, keywords=kwargs,
                         results=() if result is None else (result,), ok=True)
        return result
