import inspect
import logging
import reprlib
import sys
import traceback
from types import ModuleType, SimpleNamespace

logger = logging.getLogger('envtrace')

SANDBOX_FILENAME = "<sandbox>"
ROOT_NAME = "_ENV"

_repr = reprlib.Repr()
_repr.maxstring = 60
_repr.maxother = 60
_repr.maxlist = _repr.maxtuple = _repr.maxdict = _repr.maxset = 8
_repr.maxlevel = 3


def is_container(value):
    """Containers are dicts and attribute namespaces (modules, SimpleNamespace)."""
    return isinstance(value, (dict, SimpleNamespace, ModuleType))


def is_routine(value):
    """Functions, lambdas, builtins and methods. Classes are not routines."""
    return inspect.isroutine(value)


def storage_of(container):
    """The dict that actually holds a container's entries."""
    return container if isinstance(container, dict) else vars(container)


def rebuild_tuple(original, items):
    """Tuple of the same type as ``original`` holding ``items`` (namedtuples included)."""
    if hasattr(original, '_fields'):
        return type(original)(*items)
    return type(original)(items)


def short_repr(value):
    return _repr.repr(value)


def join_values(values):
    if not values:
        return ""
    return ", ".join(short_repr(v) for v in values)


def format_syntax_error(e: SyntaxError) -> str:
    lines = [f"  File \"{e.filename or SANDBOX_FILENAME}\", line {e.lineno}\n"]
    if e.text:
        lines.append(f"    {e.text.rstrip()}\n")
        if e.offset:
            lines.append(" " * (e.offset + 3) + "^\n")
    lines.append(f"SyntaxError: {e.msg}\n")
    return "".join(lines)


def format_exception(e: BaseException) -> str:
    """Traceback limited to frames from sandboxed code, not our internals."""
    tb = e.__traceback__
    while tb is not None and tb.tb_frame.f_code.co_filename != SANDBOX_FILENAME:
        tb = tb.tb_next
    parts = []
    if tb is not None:
        parts.append("Traceback (most recent call last):\n")
        parts.extend(
            line for line in traceback.format_tb(tb)
            if SANDBOX_FILENAME in line.splitlines()[0]
        )
    parts.append(f"{type(e).__name__}: {e}\n")
    return "".join(parts)


def report(text):
    sys.stderr.write(text)
