"""
Execution scope: binds sandboxed code to the root proxy.

The root proxy is a ``TracedDict`` used as both globals and locals of
``exec``. Module-level code and function bodies resolve names through the
mapping protocol, i.e. through the proxy. Class bodies look globals up in
the raw dict instead and fall through to ``__builtins__``, so the
``__builtins__`` seeded into the proxy is a ``SandboxBuiltins`` mapping
that sends those lookups back into the sandbox:

    snapshot root -> snapshot["__builtins__"] (if a container) -> interpreter builtins
"""

import builtins
import types

from .utils import ROOT_NAME, is_container, storage_of

SANDBOX_MODULE_NAME = "__sandbox__"


class SandboxBuiltins(dict):
    """Interpreter builtins, consulted only after the sandbox itself."""

    __slots__ = ('_tracer',)

    def __init__(self, tracer):
        super().__init__(vars(builtins))
        self._tracer = tracer

    def __getitem__(self, name):
        tracer = self._tracer
        if name in tracer.env:
            return tracer.env_proxy[name]
        fallback = tracer.env.get('__builtins__')
        if is_container(fallback) and name in storage_of(fallback):
            tracer.register_name(fallback, f"{ROOT_NAME}.__builtins__")
            return tracer._read(fallback, name)
        return dict.__getitem__(self, name)


def bind_scope(tracer):
    """Seed the interpreter bookkeeping entries into the root proxy's raw storage."""
    scope = tracer.env_proxy
    dict.__setitem__(scope, '__builtins__', SandboxBuiltins(tracer))
    dict.__setitem__(scope, '__name__', SANDBOX_MODULE_NAME)
    return scope


def rebind(fn, scope):
    """Copy of function ``fn`` whose global names resolve in ``scope``."""
    bound = types.FunctionType(fn.__code__, scope, fn.__name__, fn.__defaults__, fn.__closure__)
    bound.__kwdefaults__ = fn.__kwdefaults__
    bound.__qualname__ = fn.__qualname__
    bound.__dict__.update(fn.__dict__)
    return bound
