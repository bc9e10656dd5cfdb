"""Tracer configuration: defaults, user config module, environment, keywords."""

import importlib.util
import os
import sys
from pathlib import Path
from typing import FrozenSet, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

from .actions import ALL_ACTIONS, Action

load_dotenv()

_CONFIG_NOT_FOUND = object()
_user_config = None
_config_spec = None

CONFIG_FIELDS = ('log_file', 'verbose', 'actions')


class TracerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    log_file: Optional[Path] = None
    verbose: bool = True
    actions: FrozenSet[Action] = ALL_ACTIONS

    @field_validator('actions', mode='before')
    @classmethod
    def _parse_actions(cls, value):
        if value is None:
            return ALL_ACTIONS
        if isinstance(value, str):
            value = [part for part in value.split(',') if part.strip()]
        parsed = set()
        for item in value:
            if isinstance(item, Action):
                parsed.add(item)
                continue
            name = str(item).strip().upper().replace(' ', '_')
            try:
                parsed.add(Action[name])
            except KeyError:
                raise ValueError(f"unknown action: {item!r}") from None
        return frozenset(parsed)

    def enabled(self, action: Action) -> bool:
        return action in self.actions


def _config_path():
    return Path.home() / ".envtrace" / "config.py"


def get_config_spec():
    # The user module is the lowest-precedence source after the defaults:
    # ENVTRACE_* variables and Tracer(...) keywords override its attributes.
    global _config_spec, _user_config

    if _user_config is not None:
        return None, _user_config

    if _config_spec is not None:
        return _config_spec

    config_path = _config_path()
    if not config_path.exists():
        _user_config = _CONFIG_NOT_FOUND
        return None, None

    try:
        spec = importlib.util.spec_from_file_location("envtrace_user_config", config_path)
        if spec and spec.loader:
            user_config = importlib.util.module_from_spec(spec)
            _config_spec = (spec, user_config)
            return spec, user_config
    except Exception as e:
        print(f"Warning: Failed to create config spec from {config_path}: {e}", file=sys.stderr)

    return None, None


def get_user_config():
    # Executed once per process. A broken file prints a warning and is treated as absent.
    global _user_config

    if _user_config is not None:
        return None if _user_config is _CONFIG_NOT_FOUND else _user_config

    spec, module = get_config_spec()
    if spec is None:
        return None if module is _CONFIG_NOT_FOUND else module

    try:
        spec.loader.exec_module(module)
        _user_config = module
        return module
    except Exception as e:
        print(f"Warning: Failed to load user config from {_config_path()}: {e}", file=sys.stderr)
        _user_config = _CONFIG_NOT_FOUND
        return None


def _env_values():
    values = {}
    if (log_file := os.getenv("ENVTRACE_LOG_FILE")) is not None:
        values['log_file'] = log_file or None
    if (verbose := os.getenv("ENVTRACE_VERBOSE")) is not None:
        values['verbose'] = verbose.strip().lower() not in ('0', 'false', 'no', 'off', '')
    if (actions := os.getenv("ENVTRACE_ACTIONS")) is not None:
        values['actions'] = actions
    return values


def load_config(**overrides) -> TracerConfig:
    """Build a TracerConfig; keyword overrides beat env vars beat ~/.envtrace/config.py."""
    unknown = set(overrides) - set(CONFIG_FIELDS)
    if unknown:
        raise TypeError(f"unknown config option(s): {', '.join(sorted(unknown))}")

    values = {}
    # only the three known attributes are read; anything else in the module is ignored
    if (user_config := get_user_config()) is not None:
        values.update({name: getattr(user_config, name) for name in CONFIG_FIELDS if hasattr(user_config, name)})
    values.update(_env_values())
    values.update(overrides)
    return TracerConfig(**values)
