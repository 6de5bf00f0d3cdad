"""Spawning shell commands and running them to completion."""

from __future__ import annotations

import os
import signal
import subprocess
import threading
from dataclasses import dataclass
from typing import Optional

from tend.core import output
from tend.utils.logging import LogStream, get_logger

DEFAULT_SHELL = "/bin/sh"

# Upper bound on waiting for output readers after the process is reaped.
# Only reached when a grandchild keeps the pipes open.
DRAIN_TIMEOUT = 5.0

# Return code recorded when the exit status of a process is lost.
WAIT_FAILED = 255

logger = get_logger("tend.proc")


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one finished command invocation."""

    command: str
    returncode: int
    description: str
    user_time: float

    @property
    def success(self) -> bool:
        return self.returncode == 0


class ProcError(Exception):
    """
    A command could not be started or did not exit cleanly.

    Covers pipe setup failures, start failures and non-zero or signal exits
    alike. ``result`` is set when the process actually ran.
    """

    def __init__(
        self,
        command: str,
        description: str,
        result: Optional[ExecutionResult] = None,
    ) -> None:
        super().__init__(description)
        self.command = command
        self.description = description
        self.result = result

    def __repr__(self) -> str:
        return f"ProcError({self.command!r}, {self.description!r})"


def describe_returncode(returncode: int) -> str:
    """Render a ``subprocess`` style return code; negative means killed by a signal."""
    if returncode < 0:
        name = signal.strsignal(-returncode) or f"signal {-returncode}"
        return f"signal: {name.lower()}"
    return f"exit status {returncode}"


def describe_exit(status: int) -> str:
    """Render a raw wait status, e.g. ``exit status 1`` or ``signal: killed``."""
    return describe_returncode(os.waitstatus_to_exitcode(status))


def format_duration(seconds: float) -> str:
    if seconds >= 1:
        return f"{seconds:.3f}s"
    if seconds >= 1e-3:
        return f"{seconds * 1e3:.3f}ms"
    return f"{seconds * 1e6:.0f}µs"


class ManagedProcess:
    """
    A shell command running with its output streamed into a log.

    This is the spawn, stream and wait machinery shared by one-shot commands
    and daemons. The process is reaped by ``wait()`` only; signals are never
    delivered once it has been reaped, so a recycled pid is never hit.

    Example:
        proc = ManagedProcess.spawn("make test", log)
        result = proc.wait()
    """

    def __init__(
        self,
        command: str,
        popen: subprocess.Popen,
        readers: list[threading.Thread],
        drain_timeout: float = DRAIN_TIMEOUT,
    ) -> None:
        self.command = command
        self._popen = popen
        self._readers = readers
        self._drain_timeout = drain_timeout
        self._reap_lock = threading.Lock()
        self._result: Optional[ExecutionResult] = None

    @classmethod
    def spawn(
        cls,
        command: str,
        log: LogStream,
        shell: str = DEFAULT_SHELL,
        drain_timeout: float = DRAIN_TIMEOUT,
    ) -> ManagedProcess:
        """
        Start ``shell -c command`` with stdout and stderr streamed into log.

        Raises:
            ProcError: If the pipes or the process could not be set up.
        """
        try:
            popen = subprocess.Popen(
                [shell, "-c", command],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise ProcError(command, str(e)) from e

        readers = output.attach(popen.stdout, popen.stderr, log)
        return cls(command, popen, readers, drain_timeout)

    @property
    def pid(self) -> int:
        return self._popen.pid

    @property
    def running(self) -> bool:
        """True until the process has been reaped by wait()."""
        return self._result is None

    def send_signal(self, sig: int) -> bool:
        """
        Deliver sig to the process if it has not been reaped yet.

        Returns:
            True if the signal was sent.
        """
        with self._reap_lock:
            if self._result is not None:
                return False
            try:
                os.kill(self.pid, sig)
            except ProcessLookupError:
                return False
        return True

    def wait(self) -> ExecutionResult:
        """
        Block until the process exits and its output has been drained.

        A process whose exit status is lost, e.g. because the host ignores
        SIGCHLD, yields a failed result instead of an exception.
        """
        if self._result is None:
            if hasattr(os, "waitid"):
                # Wait without reaping so send_signal can't race the pid away.
                try:
                    os.waitid(os.P_PID, self.pid, os.WEXITED | os.WNOWAIT)
                except OSError:
                    pass
                with self._reap_lock:
                    if self._result is None:
                        self._result = self._reap()
            else:
                returncode = self._popen.wait()
                with self._reap_lock:
                    if self._result is None:
                        self._result = ExecutionResult(
                            command=self.command,
                            returncode=returncode,
                            description=describe_returncode(returncode),
                            user_time=0.0,
                        )
        self._drain()
        return self._result

    def _reap(self) -> ExecutionResult:
        try:
            _, status, rusage = os.wait4(self.pid, 0)
        except OSError as e:
            logger.warning(f"Could not reap {self.command!r} (pid {self.pid}): {e}")
            self._popen.returncode = WAIT_FAILED
            return self.failed(f"wait: {e}")
        self._popen.returncode = os.waitstatus_to_exitcode(status)
        return ExecutionResult(
            command=self.command,
            returncode=self._popen.returncode,
            description=describe_exit(status),
            user_time=rusage.ru_utime,
        )

    def failed(self, description: str) -> ExecutionResult:
        """A failed result for a process whose exit status is unknown."""
        return ExecutionResult(
            command=self.command,
            returncode=WAIT_FAILED,
            description=description,
            user_time=0.0,
        )

    def _drain(self) -> None:
        for reader in self._readers:
            reader.join(self._drain_timeout)
        if any(reader.is_alive() for reader in self._readers):
            logger.debug(f"Output of {self.command!r} still open after exit")
            return
        for pipe in (self._popen.stdout, self._popen.stderr):
            if pipe is not None:
                pipe.close()

    def __repr__(self) -> str:
        state = "running" if self.running else self._result.description
        return f"ManagedProcess(pid={self.pid}, {state})"


def run_proc(
    command: str,
    log: LogStream,
    shell: str = DEFAULT_SHELL,
    drain_timeout: float = DRAIN_TIMEOUT,
) -> ExecutionResult:
    """
    Run a command to completion, sending its output to log.

    Args:
        command: Shell command text.
        log: Stream to write the header, output and outcome to.
        shell: Interpreter the command is passed to with ``-c``.
        drain_timeout: Seconds to wait for output after exit.

    Returns:
        The execution result of a successful run.

    Raises:
        ProcError: If the command could not start or exited unsuccessfully.
    """
    log.header()
    try:
        proc = ManagedProcess.spawn(command, log, shell=shell, drain_timeout=drain_timeout)
    except ProcError as e:
        log.shout("%s", e.description)
        raise

    result = proc.wait()
    if not result.success:
        log.shout("%s", result.description)
        raise ProcError(command, result.description, result)

    log.notice_as("cmdstats", "run time: %s", format_duration(result.user_time))
    return result
