import sys
assert sys.version_info >= (3, 9), "Requires Python 3.9+"
import logging

logger = logging.getLogger('envtrace')
handler = logging.StreamHandler()
logger.addHandler(handler)

import pydantic
assert pydantic.VERSION >= '2', "Requires pydantic 2"

from .actions import Action, ActionLog, ActionRecord, SinkError
from .config import TracerConfig, load_config
from .tracer import BaseTracer, Tracer, RunOutcome
