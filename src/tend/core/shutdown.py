"""Signal handlers for the foreground runner."""

from __future__ import annotations

import signal
import threading
from typing import Callable, Optional

from tend.utils.logging import get_logger

# How often the main loop checks for a pending reload.
POLL_INTERVAL = 0.2


class ShutdownHandler:
    """
    Turns process signals into shutdown and reload requests.

    Signal handlers only record the request; the callbacks run on the thread
    that called ``run()``, never inside the handler itself. A second
    shutdown signal restores the default handlers so a third one kills tend
    outright.

    Example:
        handler = ShutdownHandler()
        handler.on_shutdown(session.stop).on_reload(session.trigger)
        handler.install()
        handler.run()  # Blocks until SIGINT or SIGTERM
    """

    SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)
    RELOAD_SIGNALS = (signal.SIGHUP,)

    def __init__(self) -> None:
        self._shutdown_callback: Optional[Callable[[], None]] = None
        self._reload_callback: Optional[Callable[[], object]] = None
        self._shutdown_event = threading.Event()
        self._reload_event = threading.Event()
        self._previous: dict[int, object] = {}
        self.logger = get_logger("tend.shutdown")

    def on_shutdown(self, callback: Callable[[], None]) -> ShutdownHandler:
        """
        Register the main shutdown callback.

        Args:
            callback: Function to call once shutdown is requested.

        Returns:
            self for method chaining.
        """
        self._shutdown_callback = callback
        return self

    def on_reload(self, callback: Callable[[], object]) -> ShutdownHandler:
        """Register the callback run for each reload request."""
        self._reload_callback = callback
        return self

    def install(self) -> ShutdownHandler:
        """
        Install signal handlers. Must be called from the main thread.

        Returns:
            self for method chaining.
        """
        if self._previous:
            return self
        for sig in self.SHUTDOWN_SIGNALS:
            self._previous[sig] = signal.signal(sig, self._signal_handler)
        for sig in self.RELOAD_SIGNALS:
            self._previous[sig] = signal.signal(sig, self._reload_handler)
        self.logger.debug("Signal handlers installed")
        return self

    def uninstall(self) -> None:
        """Restore the handlers that were in place before install()."""
        for sig, previous in self._previous.items():
            signal.signal(sig, previous)
        self._previous.clear()

    def _signal_handler(self, signum: int, frame) -> None:
        sig_name = signal.Signals(signum).name
        if self._shutdown_event.is_set():
            self.logger.warning(f"Received {sig_name} again, next one exits immediately")
            for sig in self.SHUTDOWN_SIGNALS:
                signal.signal(sig, signal.SIG_DFL)
            return
        self.logger.info(f"Received {sig_name}, initiating shutdown...")
        self.trigger_shutdown()

    def _reload_handler(self, signum: int, frame) -> None:
        self.logger.info(f"Received {signal.Signals(signum).name}, re-running preps...")
        self.trigger_reload()

    def trigger_shutdown(self) -> None:
        """Request shutdown programmatically."""
        self._shutdown_event.set()

    def trigger_reload(self) -> None:
        """Request a reload programmatically."""
        self._reload_event.set()

    def run(self) -> None:
        """Serve reload requests until shutdown is requested, then shut down."""
        while not self._shutdown_event.wait(POLL_INTERVAL):
            if self._reload_event.is_set():
                self._reload_event.clear()
                if self._reload_callback:
                    self._reload_callback()

        if self._shutdown_callback:
            self._shutdown_callback()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for shutdown to be requested.

        Args:
            timeout: Maximum seconds to wait (None = forever).

        Returns:
            True if shutdown was requested, False if timeout.
        """
        return self._shutdown_event.wait(timeout)

    @property
    def is_shutting_down(self) -> bool:
        return self._shutdown_event.is_set()
