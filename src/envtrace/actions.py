"""
Action records and the append-only action log.

Every observed READ, WRITE, CALL or HOOK_CALL becomes one frozen
``ActionRecord``. ``ActionLog`` keeps them in order and renders them as
one line of text each:

    Action READ at 0.0132s: Reading from _ENV with key 'x', got data: [1, 2, 3] (type: list)

``flush`` rewrites the whole sink from the first record every time.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .utils import is_container, join_values, short_repr


class SinkError(Exception):
    """The configured log sink could not be written."""


class Action(str, Enum):
    READ = "READ"
    WRITE = "WRITE"
    CALL = "CALL"
    HOOK_CALL = "HOOK_CALL"

    @property
    def label(self) -> str:
        return self.value.replace('_', ' ')


ALL_ACTIONS = frozenset(Action)


class ActionRecord(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    action: Action
    timestamp: float
    container: Any = None
    key: Any = None
    value: Any = None
    old_value: Any = None
    new_value: Any = None
    change_type: Optional[Literal['new', 'update', 'delete']] = None
    callable_name: Optional[str] = None
    arguments: Tuple[Any, ...] = ()
    keywords: Dict[str, Any] = Field(default_factory=dict)
    results: Tuple[Any, ...] = ()
    ok: Optional[bool] = None


def _call_summary(record: ActionRecord) -> str:
    summary = join_values(record.arguments)
    if record.keywords:
        kw = ", ".join(f"{k}={short_repr(v)}" for k, v in record.keywords.items())
        summary = f"{summary}, {kw}" if summary else kw
    return summary


class ActionLog:
    """
    Ordered, append-only sequence of action records.

    Args:
        namer: Resolves a container to its display name (e.g. "_ENV.x").
            With ``fallback=False`` it returns None for unnamed containers.
    """

    def __init__(self, namer: Callable[..., Optional[str]]) -> None:
        self._namer = namer
        self._records: List[ActionRecord] = []

    def append(self, record: ActionRecord) -> None:
        self._records.append(record)

    def __iter__(self) -> Iterator[ActionRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index):
        return self._records[index]

    def of(self, action: Action) -> List[ActionRecord]:
        return [r for r in self._records if r.action == action]

    def _describe(self, value: Any) -> str:
        if is_container(value):
            if name := self._namer(value, fallback=False):
                return f"<{type(value).__name__} {name}>"
        return short_repr(value)

    def format(self, record: ActionRecord) -> str:
        table = self._namer(record.container)
        if record.action == Action.READ:
            info = (f"Reading from {table} with key {short_repr(record.key)}, "
                    f"got data: {self._describe(record.value)} (type: {type(record.value).__name__})")
        elif record.action == Action.WRITE:
            if record.change_type == 'update':
                info = (f"Updating key {short_repr(record.key)} in {table}: "
                        f"old={self._describe(record.old_value)} -> new={self._describe(record.new_value)} "
                        f"(type: {type(record.new_value).__name__})")
            elif record.change_type == 'delete':
                info = (f"Deleting key {short_repr(record.key)} from {table}: "
                        f"old={self._describe(record.old_value)}")
            else:
                info = (f"Writing new key {short_repr(record.key)} to {table}: "
                        f"value={self._describe(record.new_value)} (type: {type(record.new_value).__name__})")
        elif record.action == Action.CALL:
            info = (f"Calling from {table} with callable name {record.callable_name} "
                    f"and arguments [{_call_summary(record)}]")
        elif record.action == Action.HOOK_CALL:
            status = "OK" if record.ok else "ERR"
            info = (f"Hooked function {record.callable_name} called on {table}: "
                    f"args=[{_call_summary(record)}] -> result=[{join_values(record.results)}] ({status})")
        else:
            info = "Unresolved action"
        return f"Action {record.action.label} at {record.timestamp:.4f}s: {info}"

    def render(self) -> str:
        return "".join(self.format(record) + "\n" for record in self._records)

    def flush(self, sink) -> bool:
        """
        Write every record, in order, to ``sink``, replacing its contents.

        Returns:
            False when no sink is configured, True once written.

        Raises:
            SinkError: The sink could not be opened or written.
        """
        if sink is None:
            return False
        text = self.render()
        try:
            Path(sink).write_text(text)
        except OSError as e:
            raise SinkError(f"Couldn't open file for writing: {e}") from e
        return True
