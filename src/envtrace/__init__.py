from .core import (
    Action,
    ActionLog,
    ActionRecord,
    BaseTracer,
    RunOutcome,
    SinkError,
    Tracer,
    TracerConfig,
    load_config,
)
from .clone import clone
from .hooks import HookMixin
from .overrides import OverrideMixin
from .proxy import ProxyMixin, TracedDict, TracedNamespace
from .registry import IdentityRegistry

__all__ = [
    "Tracer",
    "BaseTracer",
    "RunOutcome",
    # Mixins
    "ProxyMixin",
    "HookMixin",
    "OverrideMixin",
    # Proxies
    "TracedDict",
    "TracedNamespace",
    # Log model
    "Action",
    "ActionRecord",
    "ActionLog",
    "SinkError",
    # Configuration
    "TracerConfig",
    "load_config",
    # Building blocks
    "IdentityRegistry",
    "clone",
]

__version__ = "0.1.0"
