import logging
import signal

from conftest import wait_until

from tend.core.config import DaemonConfig, SettingsData
from tend.core.daemon import DaemonPen, DaemonState, RetryPolicy
from tend.utils.logging import nice_header

SERVICE = "trap 'echo bye {n}; exit 0' TERM; trap 'echo hup {n}; exit 0' USR1; echo ready {n}; while :; do sleep 0.05; done"


def configs(count):
    return [DaemonConfig(SERVICE.format(n=n), restart_signal=signal.SIGUSR1) for n in range(count)]


def ready(termlog, count=1):
    return all(s.lines("say").count(f"ready {i}") >= count for i, s in enumerate(termlog.streams))


def test_empty_pen_operations_are_noops():
    pen = DaemonPen()
    pen.restart()
    pen.shutdown()

    assert not pen.started
    assert pen.daemons == ()


def test_start_runs_one_daemon_per_config(termlog):
    pen = DaemonPen(policy=RetryPolicy(min_interval=0.1))
    specs = configs(3)
    pen.start(specs, termlog)
    try:
        assert len(pen.daemons) == 3
        assert termlog.labels == [nice_header("daemon: ", c.command) for c in specs]
        assert wait_until(lambda: ready(termlog))
    finally:
        pen.shutdown(signal.SIGTERM)

    assert all(d.state is DaemonState.STOPPED for d in pen.daemons)
    for i, stream in enumerate(termlog.streams):
        assert stream.lines("say")[-1] == f"bye {i}"


def test_restart_reaches_every_daemon(termlog):
    pen = DaemonPen(policy=RetryPolicy(min_interval=0.1))
    pen.start(configs(2), termlog)
    try:
        assert wait_until(lambda: ready(termlog))
        pen.restart()
        assert wait_until(lambda: ready(termlog, count=2))
    finally:
        pen.shutdown()

    for i, stream in enumerate(termlog.streams):
        assert f"hup {i}" in stream.lines("say")


def test_starting_over_a_live_pen_warns(termlog, caplog):
    pen = DaemonPen(policy=RetryPolicy(min_interval=0.1))
    pen.start(configs(1), termlog)
    first = pen.daemons

    with caplog.at_level(logging.WARNING, logger="tend.daemon"):
        pen.start(configs(1), termlog)
    try:
        assert "not shut down" in caplog.text
        assert first[0].is_alive
    finally:
        pen.shutdown()
        for daemon in first:
            daemon.shutdown()


def test_from_settings():
    settings = SettingsData(shell="/bin/bash", min_restart=0.5, max_restarts=3)
    pen = DaemonPen.from_settings(settings)

    # three restarts on top of the first launch
    assert pen._policy == RetryPolicy(min_interval=0.5, max_attempts=4)
    assert pen._shell == "/bin/bash"
