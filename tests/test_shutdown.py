import os
import signal
import threading
import time

from tend.core.shutdown import ShutdownHandler


def test_run_serves_reloads_then_shuts_down():
    calls = []
    handler = ShutdownHandler()
    handler.on_reload(lambda: calls.append("reload")).on_shutdown(lambda: calls.append("stop"))

    def drive():
        handler.trigger_reload()
        while calls != ["reload"]:
            time.sleep(0.01)
        handler.trigger_shutdown()

    threading.Thread(target=drive, daemon=True).start()
    handler.run()

    assert calls == ["reload", "stop"]
    assert handler.is_shutting_down


def test_installed_handlers_record_signals():
    before = signal.getsignal(signal.SIGTERM)
    handler = ShutdownHandler().install()
    try:
        os.kill(os.getpid(), signal.SIGTERM)
        assert handler.wait_for_shutdown(2)
    finally:
        handler.uninstall()

    assert signal.getsignal(signal.SIGTERM) == before
