"""Pytest configuration and shared fixtures."""

import os
import subprocess
import sys
from pathlib import Path

import pytest
from click.testing import CliRunner

from pipeflow.cli import cli
from pipeflow.config import parse_flow
from pipeflow.executor import Executor
from pipeflow.settings import FlowSettings
from pipeflow.streams import Endpoint

SRC_DIR = Path(__file__).resolve().parent.parent / "src"

ENV_VARS = (
    "PIPEFLOW_SHELL",
    "PIPEFLOW_CHUNK_SIZE",
    "PIPEFLOW_STRICT",
    "PIPEFLOW_VERBOSE",
)


@pytest.fixture(autouse=True)
def clean_pipeflow_env(monkeypatch):
    """Keep the caller's PIPEFLOW_* variables out of every test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def cli_runner():
    """Provide Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def invoke(cli_runner):
    """Invoke the CLI in-process.

    Child processes write to the real descriptor 1, which CliRunner does not
    capture; use ``run_pipeflow`` when the output of commands matters.
    """

    def _invoke(args, input_data=None):
        return cli_runner.invoke(cli, [str(a) for a in args], input=input_data)

    return _invoke


@pytest.fixture
def run_pipeflow():
    """Run ``python -m pipeflow`` as a real process and capture its output."""

    def _run(*args, input_data=b"", timeout=30):
        env = os.environ.copy()
        py_path = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(SRC_DIR) + (os.pathsep + py_path if py_path else "")
        return subprocess.run(
            [sys.executable, "-m", "pipeflow", *[str(a) for a in args]],
            input=input_data,
            capture_output=True,
            timeout=timeout,
            env=env,
            check=False,
        )

    return _run


@pytest.fixture
def flow_file(tmp_path):
    """Write .flow text to a temporary file and return its path."""

    def _write(text, name="test.flow"):
        path = tmp_path / name
        path.write_text(text)
        return path

    return _write


@pytest.fixture
def output_file(tmp_path):
    """Attached output endpoint backed by a file.

    The executor takes ownership of the endpoint and closes it; read the
    returned path afterwards.
    """

    def _make(name="out.bin"):
        path = tmp_path / name
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o644)
        return Endpoint.attached(fd), path

    return _make


@pytest.fixture
def input_file(tmp_path):
    """Attached input endpoint that yields ``data``."""

    def _make(data, name="in.bin"):
        path = tmp_path / name
        path.write_bytes(data)
        return Endpoint.attached(os.open(path, os.O_RDONLY))

    return _make


@pytest.fixture
def execute():
    """Execute ``action`` from .flow text and return the executor used."""

    def _execute(text, action, stdin=None, stdout=None, **settings):
        registry = parse_flow(text)
        executor = Executor(registry, FlowSettings(**settings))
        executor.execute(registry.resolve(action), stdin, stdout)
        return executor

    return _execute
