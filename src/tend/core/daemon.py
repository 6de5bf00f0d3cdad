"""Long-running commands that are restarted until shut down."""

from __future__ import annotations

import queue
import signal
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from tend.core.config import DaemonConfig, SettingsData
from tend.core.proc import (
    DEFAULT_SHELL,
    DRAIN_TIMEOUT,
    ExecutionResult,
    ManagedProcess,
    ProcError,
)
from tend.utils.logging import LogStream, TermLog, get_logger, nice_header

# Minimum time between two launches of the same daemon, in seconds.
MIN_RESTART = 1.0

logger = get_logger("tend.daemon")


@dataclass(frozen=True)
class RetryPolicy:
    """
    How a daemon is relaunched after its command exits.

    ``max_attempts`` counts launches, the first one included. None means
    relaunch forever; the throttle is then the only thing standing between
    a failing command and a restart storm.
    """

    min_interval: float = MIN_RESTART
    max_attempts: Optional[int] = None

    @classmethod
    def from_settings(cls, settings: SettingsData) -> RetryPolicy:
        max_restarts = settings.max_restarts
        return cls(
            min_interval=settings.min_restart,
            max_attempts=None if max_restarts is None else max_restarts + 1,
        )


class DaemonState(Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"


class _Msg(Enum):
    RESTART = "restart"
    SHUTDOWN = "shutdown"
    EXITED = "exited"


class Daemon:
    """
    One long-running command, relaunched whenever it exits.

    The process handle and stop flag belong to the daemon's own thread.
    ``restart()`` and ``shutdown()`` only post messages to it, and process
    exit is posted by a waiter thread, so nothing outside that thread touches
    the live process.

    Example:
        daemon = Daemon(DaemonConfig("python -m http.server"), log)
        daemon.start()
        ...
        daemon.shutdown(signal.SIGTERM)  # Blocks until the server exits
    """

    def __init__(
        self,
        config: DaemonConfig,
        log: LogStream,
        policy: Optional[RetryPolicy] = None,
        shell: str = DEFAULT_SHELL,
        drain_timeout: float = DRAIN_TIMEOUT,
    ) -> None:
        self.config = config
        self.log = log
        self.policy = policy or RetryPolicy()
        self._shell = shell
        self._drain_timeout = drain_timeout
        self._inbox: queue.Queue[tuple[_Msg, Any]] = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()

        # Owned by the daemon thread once started
        self._proc: Optional[ManagedProcess] = None
        self._stop = False
        self._state = DaemonState.IDLE
        self._attempts = 0

    def start(self) -> None:
        """Launch the restart loop on its own thread."""
        with self._start_lock:
            if self._thread is not None or self._stop:
                return
            self._thread = threading.Thread(
                target=self.run,
                daemon=True,
                name=f"daemon:{self.config.command}",
            )
            self._thread.start()

    def run(self) -> None:
        """Restart loop. Returns once the daemon has been shut down."""
        last_start: Optional[float] = None
        while not self._stop:
            max_attempts = self.policy.max_attempts
            if max_attempts is not None and self._attempts >= max_attempts:
                self.log.shout("giving up after %d attempts", self._attempts)
                break

            self._state = DaemonState.STARTING
            if last_start is not None:
                self._throttle(last_start + self.policy.min_interval)
            # A shutdown already queued ends the loop before anything spawns
            self._handle_pending()
            if self._stop:
                break

            self.log.header()
            last_start = time.monotonic()
            self._attempts += 1
            try:
                proc = ManagedProcess.spawn(
                    self.config.command,
                    self.log,
                    shell=self._shell,
                    drain_timeout=self._drain_timeout,
                )
            except ProcError as e:
                self.log.shout("%s", e.description)
                continue

            self._proc = proc
            self._state = DaemonState.RUNNING
            threading.Thread(
                target=self._wait_for,
                args=(proc,),
                daemon=True,
                name=f"wait:{proc.pid}",
            ).start()
            result = self._serve(proc)
            self._proc = None
            if not result.success:
                self.log.shout("%s", result.description)

        self._state = DaemonState.STOPPED

    def _wait_for(self, proc: ManagedProcess) -> None:
        try:
            result = proc.wait()
        except Exception as e:
            logger.exception(f"Waiting on {self.config.command!r} failed")
            result = proc.failed(f"wait: {e}")
        self._inbox.put((_Msg.EXITED, (proc, result)))

    def _handle_pending(self) -> None:
        """Apply every message already queued, without blocking."""
        while True:
            try:
                msg, payload = self._inbox.get_nowait()
            except queue.Empty:
                return
            self._handle(msg, payload)

    def _throttle(self, deadline: float) -> None:
        """Sleep until deadline while still answering restart and shutdown."""
        while not self._stop:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            try:
                msg, payload = self._inbox.get(timeout=remaining)
            except queue.Empty:
                return
            self._handle(msg, payload)

    def _serve(self, proc: ManagedProcess) -> ExecutionResult:
        """Handle messages until proc has exited."""
        while True:
            msg, payload = self._inbox.get()
            if msg is _Msg.EXITED:
                exited, result = payload
                if exited is proc:
                    return result
                continue
            self._handle(msg, payload)

    def _handle(self, msg: _Msg, payload: Any) -> None:
        if msg is _Msg.RESTART:
            if self._proc is not None:
                self.log.header()
                self._proc.send_signal(self.config.restart_signal)
        elif msg is _Msg.SHUTDOWN:
            self._stop = True
            if self._proc is not None:
                self._proc.send_signal(payload)

    def restart(self) -> None:
        """
        Ask the running process to restart by sending it the restart signal.

        Does not wait for the signal to take effect. Does nothing when no
        process is running.
        """
        with self._start_lock:
            if self._thread is None or not self._thread.is_alive():
                return
        self._inbox.put((_Msg.RESTART, None))

    def shutdown(self, sig: int = signal.SIGTERM) -> None:
        """
        Stop the daemon for good.

        Sends sig to the running process, if any, and blocks until it has
        exited and the restart loop has finished.
        """
        with self._start_lock:
            if self._thread is None:
                self._stop = True
                self._state = DaemonState.STOPPED
                return
            thread = self._thread
        self._inbox.put((_Msg.SHUTDOWN, sig))
        thread.join()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the restart loop to finish.

        Returns:
            True if the loop has finished.
        """
        thread = self._thread
        if thread is None:
            return self._stop
        thread.join(timeout)
        return not thread.is_alive()

    @property
    def state(self) -> DaemonState:
        return self._state

    @property
    def attempts(self) -> int:
        """Number of launch attempts so far."""
        return self._attempts

    @property
    def pid(self) -> Optional[int]:
        """Pid of the current process, as last seen. None between runs."""
        proc = self._proc
        return proc.pid if proc is not None else None

    @property
    def is_alive(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def __repr__(self) -> str:
        return f"Daemon({self.config.command!r}, {self._state.value})"


class DaemonPen:
    """
    A group of daemons, managed as a unit.

    Every operation holds the pen's lock for its whole duration.

    ``start()`` replaces the group without stopping the previous one: call
    ``shutdown()`` first, or the old daemons keep running unmanaged.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        shell: str = DEFAULT_SHELL,
        drain_timeout: float = DRAIN_TIMEOUT,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._shell = shell
        self._drain_timeout = drain_timeout
        self._daemons: Optional[tuple[Daemon, ...]] = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: SettingsData) -> DaemonPen:
        return cls(
            policy=RetryPolicy.from_settings(settings),
            shell=settings.shell,
            drain_timeout=settings.drain_timeout,
        )

    def start(self, daemons: Sequence[DaemonConfig], log: TermLog) -> None:
        """
        Start a set of daemons, each on its own thread.

        Args:
            daemons: One configuration per daemon.
            log: Log that each daemon gets its own labeled stream from.
        """
        with self._lock:
            if self._daemons and any(d.is_alive for d in self._daemons):
                logger.warning(
                    "Starting daemons over a pen that was not shut down; "
                    f"{len(self._daemons)} previous daemon(s) left running"
                )
            started = []
            for conf in daemons:
                daemon = Daemon(
                    conf,
                    log.stream(nice_header("daemon: ", conf.command)),
                    policy=self._policy,
                    shell=self._shell,
                    drain_timeout=self._drain_timeout,
                )
                daemon.start()
                started.append(daemon)
            self._daemons = tuple(started)
            logger.debug(f"Started {len(started)} daemon(s)")

    def restart(self) -> None:
        """Restart all daemons in the pen."""
        with self._lock:
            if self._daemons is None:
                return
            for daemon in self._daemons:
                daemon.restart()

    def shutdown(self, sig: int = signal.SIGTERM) -> None:
        """Shut down all daemons in the pen, one after another."""
        with self._lock:
            if self._daemons is None:
                return
            for daemon in self._daemons:
                daemon.shutdown(sig)

    @property
    def daemons(self) -> tuple[Daemon, ...]:
        daemons = self._daemons
        return daemons if daemons is not None else ()

    @property
    def started(self) -> bool:
        return self._daemons is not None
