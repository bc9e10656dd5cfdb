import pytest

from envtrace import config


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep ~/.envtrace/config.py and ENVTRACE_* variables out of the tests."""
    for name in ("ENVTRACE_LOG_FILE", "ENVTRACE_VERBOSE", "ENVTRACE_ACTIONS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "_config_path", lambda: tmp_path / "missing" / "config.py")
    monkeypatch.setattr(config, "_user_config", None)
    monkeypatch.setattr(config, "_config_spec", None)
