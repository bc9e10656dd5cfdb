"""
Tracer: run code against an instrumented copy of a namespace.

The tracer deep-copies a namespace (the interpreter builtins by default)
into a private snapshot. ``run()`` hooks every routine in the snapshot,
wraps it in a root proxy and executes the given unit with the proxy as its
global scope. Every read, write and call made by that code is recorded,
and the full log is written to ``log_file`` when the run ends.

Example:
    from envtrace import Tracer

    tracer = Tracer(log_file="log.txt")
    tracer.builtin_override("print", lambda *args: print("==== ", *args))
    tracer.run('''
    x = [1, 2, 3]
    print("Hello")
    ''')
    # ====  Hello

    tracer.builtin_restore("print")
    tracer.set_veto(lambda args, name, table: False if args == ["Hello"] else None)
    tracer.run("print('Hello')")     # vetoed, nothing printed

The snapshot, proxies and hooks persist across runs of one tracer, and the
in-memory log is never cleared.
"""

import builtins
import functools
import logging
import sys
import time
import types
from dataclasses import dataclass
from typing import Any, Optional

from .actions import Action, ActionLog, ActionRecord
from .clone import clone
from .config import TracerConfig, load_config
from .hooks import HookMixin
from .overrides import OverrideMixin
from .proxy import ProxyMixin
from .scope import bind_scope, rebind
from .utils import ROOT_NAME, SANDBOX_FILENAME, format_exception, format_syntax_error, report

logger = logging.getLogger('envtrace')


@dataclass
class RunOutcome:
    ok: bool
    stage: str  # "compile" or "execute"
    error: Optional[BaseException] = None


class BaseTracer:
    """
    Snapshot ownership, action logging and the execution driver.

    Args:
        namespace: Dict to snapshot (default: the interpreter builtins).
        config: A ready TracerConfig. Mutually exclusive with ``options``.
        console: Stream for verbose action lines (default: sys.stdout).
        **options: log_file, verbose, actions (see TracerConfig).
    """

    def __init__(self, namespace=None, config: Optional[TracerConfig] = None, console=None, **options):
        if config is not None and options:
            raise TypeError("pass either config or individual options, not both")
        self.config = config if config is not None else load_config(**options)
        self.console = console

        source = vars(builtins) if namespace is None else namespace
        if not isinstance(source, dict):
            raise TypeError(f"namespace must be a dict, not {type(source).__name__}")

        self._ensure_setup()
        self.env = clone(source)
        self.env_proxy = None
        self.last_outcome: Optional[RunOutcome] = None
        self.register_name(self.env, ROOT_NAME)
        self.actions = ActionLog(self.container_name)

    # === LOG ===

    def _log_action(self, action: Action, **info: Any) -> Optional[ActionRecord]:
        if not self.config.enabled(action):
            return None
        record = ActionRecord(action=action, timestamp=time.process_time(), **info)
        self.actions.append(record)

        if self.config.verbose:
            try:
                print(self.actions.format(record), file=self.console or sys.stdout)
            except Exception as e:
                logger.error(f"Tracer._log_action console mirror error: {e}")
        return record

    def save_actions(self) -> bool:
        """Write the whole log to the configured file. False if none is configured."""
        return self.actions.flush(self.config.log_file)

    # === EXECUTION ===

    def _prepare_env(self):
        if self.config.enabled(Action.HOOK_CALL):
            self.hook_namespace(self.env)
        self.env_proxy = self.wrap(self.env, ROOT_NAME)
        bind_scope(self)
        logger.debug(f"Prepared sandbox with {len(self.env)} names")

    def run(self, runnable) -> bool:
        """
        Execute source text, a code object or a function inside the sandbox.

        Returns:
            True if the code ran to completion. On a runtime error the error
            is reported, the log is still saved and False is returned. On a
            syntax error nothing runs and the log is not saved.
        """
        if not isinstance(runnable, (str, types.CodeType, types.FunctionType)):
            raise TypeError(f"cannot run {type(runnable).__name__}; expected source, code or function")

        self._prepare_env()
        scope = self.env_proxy

        if isinstance(runnable, str):
            try:
                runnable = compile(runnable, SANDBOX_FILENAME, "exec")
            except (SyntaxError, ValueError) as e:
                report(format_syntax_error(e) if isinstance(e, SyntaxError) else f"ValueError: {e}\n")
                logger.info("Compilation failed, nothing executed")
                self.last_outcome = RunOutcome(False, "compile", e)
                return False

        if isinstance(runnable, types.CodeType):
            target = functools.partial(exec, runnable, scope)
        else:
            target = rebind(runnable, scope)

        try:
            target()
        except Exception as e:
            self.sweep()
            report(format_exception(e))
            logger.info(f"Execution failed: {type(e).__name__}: {e}")
            self.last_outcome = RunOutcome(False, "execute", e)
            self.save_actions()
            return False

        self.sweep()
        logger.info("finished executing code")
        self.last_outcome = RunOutcome(True, "execute")
        self.save_actions()
        return True


class Tracer(OverrideMixin, HookMixin, ProxyMixin, BaseTracer):
    """Ready-to-use tracer: proxies, call hooks and builtin overrides."""
