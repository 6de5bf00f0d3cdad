"""Prep-gated daemon lifecycle: run preps, then start or restart daemons."""

from __future__ import annotations

import threading
from typing import Optional

from tend.core.config import ConfigData
from tend.core.daemon import DaemonPen
from tend.core.prep import run_preps
from tend.core.proc import ProcError
from tend.utils.logging import TermLog, get_logger


class Session:
    """
    Runs a configuration's preps and keeps its daemons going.

    Daemons are only started or restarted after every prep has succeeded.
    A failed prep leaves running daemons as they are.

    Example:
        session = Session(Config().prep("make").daemon("./server").build())
        if session.start():
            ...
        session.stop()
    """

    def __init__(
        self,
        config: ConfigData,
        log: Optional[TermLog] = None,
        pen: Optional[DaemonPen] = None,
    ) -> None:
        self.config = config
        self.log = log or TermLog()
        self.pen = pen or DaemonPen.from_settings(config.settings)
        self._lock = threading.Lock()
        self.logger = get_logger("tend.session")

    def _preps_ok(self) -> bool:
        settings = self.config.settings
        try:
            run_preps(
                self.config.preps,
                self.log,
                shell=settings.shell,
                drain_timeout=settings.drain_timeout,
            )
        except ProcError as e:
            self.logger.error(f"Prep failed ({e.command!r}: {e}), daemons left as they are")
            return False
        return True

    def start(self) -> bool:
        """
        Run preps and start the daemons.

        Returns:
            True if the preps succeeded and the daemons were started.
        """
        with self._lock:
            if not self._preps_ok():
                return False
            self.pen.start(self.config.daemons, self.log)
            return True

    def trigger(self) -> bool:
        """
        Re-run preps and restart the daemons.

        Starts the daemons instead if an earlier start was gated by a prep.

        Returns:
            True if the preps succeeded.
        """
        with self._lock:
            if not self._preps_ok():
                return False
            if self.pen.started:
                self.pen.restart()
            else:
                self.pen.start(self.config.daemons, self.log)
            return True

    def stop(self, sig: Optional[int] = None) -> None:
        """Shut all daemons down, blocking until they have exited."""
        if sig is None:
            sig = self.config.settings.shutdown_signal
        self.logger.info("Shutting down daemons...")
        self.pen.shutdown(sig)
