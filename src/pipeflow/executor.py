"""Flow execution engine.

Realizes an item as OS processes and anonymous pipes. Commands run as
``sh -c`` children; every other item launched as a branch runs in a forked
worker that executes it recursively. The orchestrating logic of the item
being executed runs synchronously in the calling process.

Every explicit endpoint passed to ``Executor.execute`` is owned by the
call and closed before it returns, on success and on error alike.
"""

from __future__ import annotations

import os
import subprocess
import sys
import traceback
from typing import Callable, Dict, List, Optional, Tuple, Union

from .errors import (
    BranchFailedError,
    CommandFailedError,
    FlowConnectionError,
    FlowError,
    SpawnError,
    UnknownItemError,
)
from .models import Command, Coupler, DiagnosticCapture, FileEndpoint, Item, Sequence
from .process_utils import spawn
from .registry import Registry
from .relay import drain, relay, write_all
from .settings import FlowSettings
from .streams import STDERR, STDIN, STDOUT, Endpoint, StreamWiring

WORKER_ERROR_STATUS = 1
WORKER_CRASH_STATUS = 70


class WorkerProcess:
    """Forked child running one item through the executor."""

    def __init__(self, pid: int, name: str):
        self.pid = pid
        self.name = name
        self.returncode: Optional[int] = None

    def wait(self) -> int:
        """Block until the worker exits; negative codes mean a signal."""
        if self.returncode is None:
            _, status = os.waitpid(self.pid, 0)
            self.returncode = os.waitstatus_to_exitcode(status)
        return self.returncode


Handle = Union[subprocess.Popen, WorkerProcess]
Launched = List[Tuple[Item, Handle]]


class Executor:
    """Executes items from a registry."""

    def __init__(
        self,
        registry: Registry,
        settings: Optional[FlowSettings] = None,
        wiring: Optional[StreamWiring] = None,
    ):
        """Initialize executor.

        Args:
            registry: Validated item graph
            settings: Shell, chunk size, strict and verbose flags
            wiring: Descriptor owner (default: a fresh StreamWiring)
        """
        self.registry = registry
        self.settings = settings or FlowSettings()
        self.wiring = wiring or StreamWiring()
        # Where the engine itself reports; differs from slot 2 inside a
        # worker whose stderr feeds a diagnostic capture.
        self._diagnostics = Endpoint.default()
        self._handlers: Dict[type, Callable[[Item, Endpoint, Endpoint], None]] = {
            Command: self._execute_command,
            Coupler: self._execute_coupler,
            Sequence: self._execute_sequence,
            DiagnosticCapture: self._execute_capture,
            FileEndpoint: self._execute_file,
        }

    def run(self, action: str) -> None:
        """Execute the named action against this process's stdin/stdout.

        Raises:
            UnknownItemError: If the action is not in the registry
        """
        item = self.registry.resolve(action)
        self._trace(f"Executing action: {action}")
        self.execute(item, Endpoint.default(), Endpoint.default())

    def execute(
        self,
        item: Item,
        stdin: Optional[Endpoint] = None,
        stdout: Optional[Endpoint] = None,
    ) -> None:
        """Execute one item between two endpoints.

        Args:
            item: Item to realize
            stdin: Input endpoint (default: inherited standard input)
            stdout: Output endpoint (default: inherited standard output)
        """
        stdin = stdin if stdin is not None else Endpoint.default()
        stdout = stdout if stdout is not None else Endpoint.default()
        self.wiring.adopt(stdin, stdout)
        try:
            handler = self._handlers[type(item)]
            handler(item, stdin, stdout)
        finally:
            self._close(stdin, stdout)

    # Item kinds

    def _execute_command(self, item: Command, stdin: Endpoint, stdout: Endpoint) -> None:
        launched: Launched = []
        try:
            launched.append((item, self._launch(item, stdin, stdout)))
        finally:
            failure = self._reap(launched)
        if failure:
            raise failure

    def _execute_coupler(self, item: Coupler, stdin: Endpoint, stdout: Endpoint) -> None:
        source = self._resolve(item, item.from_ref)
        sink = self._resolve(item, item.to_ref)
        self._trace(f"Coupling: {source.name} -> {sink.name}")

        pair = self.wiring.create_stream_pair()
        launched: Launched = []
        try:
            # Both branches must be running before either is awaited.
            launched.append((source, self._launch(source, stdin, pair.write)))
            launched.append((sink, self._launch(sink, pair.read, stdout)))
        finally:
            self._close(stdin, stdout, pair.read, pair.write)
            failure = self._reap(launched)
        if failure:
            raise failure

    def _execute_sequence(self, item: Sequence, stdin: Endpoint, stdout: Endpoint) -> None:
        # Buffer-then-emit: order is fixed by part order, memory is unbounded.
        collected: List[bytes] = []
        for name in item.parts:
            part = self._resolve(item, name)
            self._trace(f"Concatenating: {item.name} part {part.name}")
            pair = self.wiring.create_stream_pair()
            launched: Launched = []
            try:
                launched.append(
                    (part, self._launch(part, self.wiring.duplicate(stdin), pair.write))
                )
                collected.append(
                    drain(pair.read.fileno(STDIN), chunk_size=self.settings.chunk_size)
                )
            finally:
                self._close(pair.read, pair.write)
                failure = self._reap(launched)
            if failure:
                raise failure

        self._close(stdin)
        write_all(stdout.fileno(STDOUT), b"".join(collected))

    def _execute_capture(
        self, item: DiagnosticCapture, stdin: Endpoint, stdout: Endpoint
    ) -> None:
        target = self._resolve(item, item.target_ref)
        self._trace(f"Capturing diagnostics: {target.name}")

        pair = self.wiring.create_stream_pair()
        launched: Launched = []
        try:
            # Primary output stays on the default stdout slot; only the
            # diagnostic stream reaches this item's output.
            launched.append(
                (target, self._launch(target, stdin, Endpoint.default(), pair.write))
            )
            relay(
                pair.read.fileno(STDIN),
                stdout.fileno(STDOUT),
                chunk_size=self.settings.chunk_size,
            )
        finally:
            self._close(stdin, stdout, pair.read, pair.write)
            failure = self._reap(launched)
        if failure:
            raise failure

    def _execute_file(self, item: FileEndpoint, stdin: Endpoint, stdout: Endpoint) -> None:
        if stdin.is_default and stdout.is_default:
            raise FlowConnectionError(
                f"File '{item.name}' is not connected: it needs an attached input or output"
            )

        if stdin.is_default:
            self._trace(f"Reading: {item.path}")
            source = self.wiring.open_file(item.path, os.O_RDONLY)
            try:
                relay(
                    source.fileno(STDIN),
                    stdout.fileno(STDOUT),
                    chunk_size=self.settings.chunk_size,
                )
            finally:
                self._close(source)
            return

        self._trace(f"Writing: {item.path}")
        sink = self.wiring.open_file(item.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC)
        sinks = [sink.fileno(STDOUT)]
        if not stdout.is_default:
            sinks.append(stdout.fileno(STDOUT))
        try:
            relay(stdin.fileno(STDIN), *sinks, chunk_size=self.settings.chunk_size)
        finally:
            self._close(sink)

    # Launching and reaping

    def _launch(
        self,
        item: Item,
        stdin: Endpoint,
        stdout: Endpoint,
        stderr: Optional[Endpoint] = None,
    ) -> Handle:
        """Start ``item`` as a child; the parent's copies of the endpoints are closed."""
        stderr = stderr if stderr is not None else Endpoint.default()
        if isinstance(item, Command):
            self._trace(f"Running: {self.settings.shell} -c {item.command_line}")
            return spawn(
                item.command_line,
                stdin,
                stdout,
                stderr,
                wiring=self.wiring,
                shell=self.settings.shell,
            )
        return self._fork(item, stdin, stdout, stderr)

    def _fork(
        self, item: Item, stdin: Endpoint, stdout: Endpoint, stderr: Endpoint
    ) -> WorkerProcess:
        sys.stdout.flush()
        sys.stderr.flush()
        try:
            pid = os.fork()
        except OSError as e:
            self._close(stdin, stdout, stderr)
            raise SpawnError(
                f"Cannot fork worker for '{item.name}': {e.strerror or e}"
            ) from e

        if pid == 0:
            self._run_worker(item, stdin, stdout, stderr)

        self._close(stdin, stdout, stderr)
        self._trace(f"Forked worker {pid} for '{item.name}'")
        return WorkerProcess(pid, item.name)

    def _run_worker(
        self, item: Item, stdin: Endpoint, stdout: Endpoint, stderr: Endpoint
    ) -> None:
        """Body of a forked worker. Never returns."""
        status = 0
        try:
            if not stderr.is_default and self._diagnostics.is_default:
                self._diagnostics = self.wiring.preserve(STDERR)
            self.wiring.close_all_except(stdin, stdout, stderr, self._diagnostics)
            self.wiring.install_as_diagnostic(stderr)
            self.execute(item, stdin, stdout)
        except BranchFailedError:
            # The failing descendant already reported its error.
            status = WORKER_ERROR_STATUS
        except FlowError as e:
            status = WORKER_ERROR_STATUS
            self._report(f"Error: {e}")
        except BaseException:
            status = WORKER_CRASH_STATUS
            self._report(traceback.format_exc().rstrip())
        finally:
            for stream in (sys.stdout, sys.stderr):
                try:
                    stream.flush()
                except (OSError, ValueError):
                    status = status or WORKER_ERROR_STATUS
            os._exit(status)

    def _reap(self, launched: Launched) -> Optional[FlowError]:
        """Wait for every launched child; return the first failure, if any."""
        failure: Optional[FlowError] = None
        for item, handle in launched:
            status = handle.wait()
            if status == 0:
                continue
            self._trace(f"'{item.name}' exited with status {status}")
            if isinstance(handle, WorkerProcess):
                error: Optional[FlowError] = BranchFailedError(item.name, status)
            elif self.settings.strict:
                error = CommandFailedError(item.name, status)
            else:
                error = None
            if failure is None:
                failure = error
        return failure

    # Helpers

    def _resolve(self, referrer: Item, name: str) -> Item:
        try:
            return self.registry.resolve(name)
        except UnknownItemError:
            raise UnknownItemError(name, referrer=referrer.name) from None

    def _close(self, *endpoints: Endpoint) -> None:
        for endpoint in endpoints:
            self.wiring.close_if_explicit(endpoint)

    def _trace(self, message: str) -> None:
        if self.settings.verbose:
            self._report(f"  {message}")

    def _report(self, message: str) -> None:
        if self._diagnostics.is_default:
            print(message, file=sys.stderr)
            return
        sys.stderr.flush()
        write_all(self._diagnostics.fd, f"{message}\n".encode(errors="replace"))


__all__ = ["Executor", "WorkerProcess"]
