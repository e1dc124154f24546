"""Tests for settings resolution."""

import pytest

from pipeflow.settings import DEFAULT_CHUNK_SIZE, DEFAULT_SHELL, resolve_settings


def test_defaults():
    settings = resolve_settings()

    assert settings.shell == DEFAULT_SHELL
    assert settings.chunk_size == DEFAULT_CHUNK_SIZE
    assert settings.strict is False
    assert settings.verbose is False


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("PIPEFLOW_SHELL", "/bin/bash")
    monkeypatch.setenv("PIPEFLOW_CHUNK_SIZE", "512")
    monkeypatch.setenv("PIPEFLOW_STRICT", "yes")
    monkeypatch.setenv("PIPEFLOW_VERBOSE", "1")

    settings = resolve_settings()

    assert settings.shell == "/bin/bash"
    assert settings.chunk_size == 512
    assert settings.strict is True
    assert settings.verbose is True


def test_arguments_override_environment(monkeypatch):
    monkeypatch.setenv("PIPEFLOW_SHELL", "/bin/bash")
    monkeypatch.setenv("PIPEFLOW_CHUNK_SIZE", "512")
    monkeypatch.setenv("PIPEFLOW_STRICT", "1")

    settings = resolve_settings(shell="/bin/dash", chunk_size=64, strict=False)

    assert settings.shell == "/bin/dash"
    assert settings.chunk_size == 64
    assert settings.strict is False


def test_false_flag_values(monkeypatch):
    monkeypatch.setenv("PIPEFLOW_STRICT", "off")
    assert resolve_settings().strict is False


@pytest.mark.parametrize("value", ["0", "-4", "lots"])
def test_invalid_chunk_size(value):
    with pytest.raises(ValueError):
        resolve_settings(chunk_size=value)


def test_invalid_chunk_size_from_environment(monkeypatch):
    monkeypatch.setenv("PIPEFLOW_CHUNK_SIZE", "many")
    with pytest.raises(ValueError, match="Invalid chunk size"):
        resolve_settings()
