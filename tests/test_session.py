import signal

from conftest import wait_until

from tend.core.config import Config
from tend.core.daemon import DaemonState
from tend.core.session import Session

SERVICE = "trap 'exit 0' TERM USR1; echo ready; while :; do sleep 0.05; done"


def make_config(tmp_path, *preps):
    return (
        Config(tmp_path / "config.json")
        .prep(*preps)
        .daemon(SERVICE, restart_signal="USR1")
        .min_restart(0.1)
        .build()
    )


def daemon_readies(termlog):
    return sum(s.lines("say").count("ready") for s in termlog.streams if s.label.startswith("daemon: "))


def test_failed_prep_keeps_daemons_down(termlog, tmp_path):
    session = Session(make_config(tmp_path, "exit 1"), termlog)

    assert session.start() is False
    assert not session.pen.started
    assert termlog.labels == ["prep: exit 1"]


def test_start_then_trigger_restarts_daemons(termlog, tmp_path):
    session = Session(make_config(tmp_path, "true"), termlog)
    try:
        assert session.start() is True
        assert wait_until(lambda: daemon_readies(termlog) == 1)
        assert session.trigger() is True
        assert wait_until(lambda: daemon_readies(termlog) == 2)
    finally:
        session.stop()

    assert all(d.state is DaemonState.STOPPED for d in session.pen.daemons)


def test_failed_trigger_leaves_daemons_running(termlog, tmp_path):
    flag = tmp_path / "fail"
    session = Session(make_config(tmp_path, f"test ! -e {flag}"), termlog)
    try:
        assert session.start()
        assert wait_until(lambda: daemon_readies(termlog) == 1)
        flag.touch()

        assert session.trigger() is False
        daemon = session.pen.daemons[0]
        assert daemon.state is DaemonState.RUNNING
        assert daemon.attempts == 1
    finally:
        session.stop(signal.SIGTERM)


def test_trigger_starts_daemons_after_gated_start(termlog, tmp_path):
    flag = tmp_path / "ok"
    session = Session(make_config(tmp_path, f"test -e {flag}"), termlog)
    try:
        assert session.start() is False
        flag.touch()
        assert session.trigger() is True
        assert session.pen.started
        assert wait_until(lambda: daemon_readies(termlog) == 1)
    finally:
        session.stop()
