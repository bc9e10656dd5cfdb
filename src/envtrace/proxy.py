"""
Proxy engine: observable stand-ins for the containers of the sandbox.

A proxy holds no entries of its own. Every access goes through the
tracer's four interception behaviours and is forwarded to the real
container:

- read (``proxy[key]`` / ``proxy.attr``): logged as READ, container
  values come back wrapped;
- write (``proxy[key] = v`` / ``proxy.attr = v``): proxies are unwrapped,
  routines are hooked, new containers get a display name, logged as WRITE;
- iterate (``items()``, ``values()``): bulk enumeration, not logged;
- invoke (``proxy(...)``): calls the container's ``__call__`` slot,
  logged as CALL.

``TracedDict`` subclasses ``dict`` so that the root proxy can serve as
the globals mapping of ``exec``; its raw dict storage is reserved for the
interpreter's ``__builtins__``/``__name__`` bookkeeping.

Example:
    tracer = Tracer(verbose=False)
    env = tracer.wrap(tracer.env)
    env['x'] = [1, 2, 3]     # WRITE (new)
    env['x']                 # READ -> [1, 2, 3]
"""

from collections.abc import ItemsView, MutableMapping, ValuesView

from .actions import Action
from .registry import IdentityRegistry
from .utils import is_container, is_routine, rebuild_tuple, storage_of

CALL_SLOT = "__call__"

_MISSING = object()


class TracedDict(dict):
    """Dict proxy. Reports item access to its tracer."""

    __slots__ = ('_tracer', '_real', '__weakref__')

    def __init__(self, tracer, real):
        super().__init__()
        self._tracer = tracer
        self._real = real

    def __getitem__(self, key):
        return self._tracer._read(self._real, key)

    def __setitem__(self, key, value):
        self._tracer._write(self._real, key, value)

    def __delitem__(self, key):
        self._tracer._delete(self._real, key)

    def __call__(self, *args, **kwargs):
        return self._tracer._invoke(self._real, args, kwargs)

    def __contains__(self, key):
        return key in self._real

    def __iter__(self):
        return iter(self._real)

    def __reversed__(self):
        return reversed(self._real)

    def __len__(self):
        return len(self._real)

    def __eq__(self, other):
        return self._real == self._tracer.unwrap(other)

    def __ne__(self, other):
        return not self == other

    def __or__(self, other):
        return self.copy() | self._tracer.unwrap(other)

    def __ror__(self, other):
        return self._tracer.unwrap(other) | self.copy()

    def __ior__(self, other):
        self.update(other)
        return self

    def __repr__(self):
        return repr(self._real)

    def __copy__(self):
        return self.copy()

    def get(self, key, default=None):
        if key in self._real:
            return self[key]
        return default

    def keys(self):
        return self._real.keys()

    def items(self):
        return TracedItems(self)

    def values(self):
        return TracedValues(self)

    def copy(self):
        """Shallow copy of the real container, as a plain dict."""
        return self._real.copy()

    def clear(self):
        for key in list(self._real):
            del self[key]

    setdefault = MutableMapping.setdefault
    pop = MutableMapping.pop
    popitem = MutableMapping.popitem
    update = MutableMapping.update


class TracedItems(ItemsView):
    """Live ``items()`` view; enumerates through the tracer without READ records."""

    def __iter__(self):
        return self._mapping._tracer.iterate(self._mapping._real)

    def __contains__(self, item):
        key, value = item
        tracer, real = self._mapping._tracer, self._mapping._real
        if key not in real:
            return False
        stored = real[key]
        other = tracer.unwrap(value)
        return stored is other or stored == other


class TracedValues(ValuesView):
    """Live ``values()`` view."""

    def __iter__(self):
        for _, value in self._mapping._tracer.iterate(self._mapping._real):
            yield value

    def __contains__(self, value):
        other = self._mapping._tracer.unwrap(value)
        return any(v is other or v == other for v in self._mapping._real.values())


class TracedNamespace:
    """Attribute proxy for modules and SimpleNamespace objects."""

    __slots__ = ('_tracer', '_real', '__weakref__')

    def __init__(self, tracer, real):
        object.__setattr__(self, '_tracer', tracer)
        object.__setattr__(self, '_real', real)

    def _parts(self):
        return object.__getattribute__(self, '_tracer'), object.__getattribute__(self, '_real')

    def __getattribute__(self, name):
        tracer, real = TracedNamespace._parts(self)
        return tracer._read(real, name, attribute=True)

    def __setattr__(self, name, value):
        tracer, real = TracedNamespace._parts(self)
        tracer._write(real, name, value)

    def __delattr__(self, name):
        tracer, real = TracedNamespace._parts(self)
        tracer._delete(real, name, attribute=True)

    def __call__(self, *args, **kwargs):
        tracer, real = TracedNamespace._parts(self)
        return tracer._invoke(real, args, kwargs)

    def __iter__(self):
        _, real = TracedNamespace._parts(self)
        return iter(list(vars(real)))

    def __dir__(self):
        _, real = TracedNamespace._parts(self)
        return list(vars(real))

    def __eq__(self, other):
        tracer, real = TracedNamespace._parts(self)
        return real == tracer.unwrap(other)

    def __hash__(self):
        _, real = TracedNamespace._parts(self)
        return hash(real)

    def __repr__(self):
        _, real = TracedNamespace._parts(self)
        return repr(real)


class ProxyMixin:
    """Wrapping, unwrapping and the four interception behaviours."""

    # === HOOK IMPLEMENTATIONS ===

    def _ensure_setup(self):
        if hasattr(super(), '_ensure_setup'):
            super()._ensure_setup()

        if getattr(self, '_proxy_initialized', False):
            return

        self._proxies = IdentityRegistry()  # real -> proxy
        self._reals = IdentityRegistry()  # proxy -> real
        self._names = IdentityRegistry()  # real -> display name
        self._proxy_initialized = True

    # === NAMES ===

    def register_name(self, container, name):
        """Give ``container`` a display name unless it already has one."""
        real = self.unwrap(container)
        if is_container(real):
            self._names.setdefault(real, name)

    def container_name(self, container, fallback=True):
        real = self.unwrap(container)
        if real is None:
            return "?" if fallback else None
        if (name := self._names.get(real)) is not None:
            return name
        return object.__repr__(real) if fallback else None

    def _child_name(self, real, key):
        return f"{self.container_name(real)}.{key}"

    # === WRAPPING ===

    def unwrap(self, value):
        """Return the real container behind a proxy, or ``value`` itself."""
        return self._reals.get(value, value)

    def is_proxy(self, value):
        return value in self._reals

    def wrap(self, real, name=None):
        """Proxy for ``real``; one proxy per container for the tracer's lifetime."""
        real = self.unwrap(real)
        if not is_container(real):
            return real
        if (proxy := self._proxies.get(real)) is not None:
            return proxy

        proxy = (TracedDict if isinstance(real, dict) else TracedNamespace)(self, real)
        self._proxies.set(real, proxy)
        self._reals.set(proxy, real)
        if name:
            self.register_name(real, name)
        return proxy

    def _detach(self, value, seen=None, everything=False):
        """
        Return ``value`` with every proxy inside it swapped for its real container.

        Lists, sets, dicts and namespaces are fixed in place; tuples and
        frozensets holding a proxy are rebuilt. Named containers are already
        part of the graph and are only walked when ``everything`` is set.
        """
        value = self.unwrap(value)
        if seen is None:
            seen = {}
        if id(value) in seen:
            return seen[id(value)]

        if isinstance(value, tuple):
            seen[id(value)] = value
            items = [self._detach(item, seen, everything) for item in value]
            if any(a is not b for a, b in zip(items, value)):
                seen[id(value)] = rebuild_tuple(value, items)
            return seen[id(value)]

        if isinstance(value, frozenset):
            seen[id(value)] = value
            items = [self._detach(item, seen, everything) for item in value]
            if any(a is not b for a, b in zip(items, value)):
                seen[id(value)] = type(value)(items)
            return seen[id(value)]

        seen[id(value)] = value
        if isinstance(value, list):
            for i, item in enumerate(value):
                if (detached := self._detach(item, seen, everything)) is not item:
                    value[i] = detached
        elif isinstance(value, set):
            for item in list(value):
                if (detached := self._detach(item, seen, everything)) is not item:
                    value.discard(item)
                    value.add(detached)
        elif is_container(value) and (everything or value not in self._names):
            storage = storage_of(value)
            for key, item in list(storage.items()):
                if (detached := self._detach(item, seen, everything)) is not item:
                    storage[key] = detached
        return value

    def sweep(self):
        """Remove proxies that reached the snapshot without interception (``lst.append(proxy)``)."""
        self._detach(self.env, everything=True)

    # === INTERCEPTION ===

    def _read(self, real, key, attribute=False):
        storage = storage_of(real)
        try:
            value = storage[key]
        except KeyError:
            if not attribute:
                raise
            try:
                # class-level attributes such as __class__, unrecorded
                return self.wrap(getattr(real, key))
            except AttributeError:
                raise AttributeError(
                    f"'{type(real).__name__}' object has no attribute '{key}'"
                ) from None

        self._log_action(Action.READ, container=real, key=key, value=value)
        if is_container(value):
            return self.wrap(value, self._child_name(real, key))
        return value

    def _write(self, real, key, value):
        storage = storage_of(real)
        old = storage.get(key, _MISSING)

        value = self._detach(value)
        if is_routine(value) and self.config.enabled(Action.HOOK_CALL):
            value = self.hook(value, name=str(key), container=real)
        if is_container(value):
            self.register_name(value, self._child_name(real, key))

        if old is _MISSING:
            self._log_action(Action.WRITE, container=real, key=key,
                             new_value=value, change_type='new')
        else:
            self._log_action(Action.WRITE, container=real, key=key, old_value=old,
                             new_value=value, change_type='update')

        storage[key] = value

    def _delete(self, real, key, attribute=False):
        storage = storage_of(real)
        if key not in storage:
            if attribute:
                raise AttributeError(key)
            raise KeyError(key)
        old = storage.pop(key)
        self._log_action(Action.WRITE, container=real, key=key, old_value=old, change_type='delete')

    def iterate(self, container):
        """Yield ``(key, value)`` pairs of a container without READ records."""
        real = self.unwrap(container)
        for key, value in list(storage_of(real).items()):
            if is_container(value):
                value = self.wrap(value, self._child_name(real, key))
            yield key, value

    def _invoke(self, real, args, kwargs):
        fn = storage_of(real).get(CALL_SLOT)
        if not callable(fn):
            raise TypeError(f"'{type(real).__name__}' object is not callable")
        self._log_action(Action.CALL, container=real, callable_name=self.container_name(real),
                         arguments=args, keywords=kwargs)
        return fn(*args, **kwargs)
