import pytest

from tend.core.config import PrepConfig
from tend.core.prep import run_preps
from tend.core.proc import ProcError
from tend.utils.logging import nice_header


def test_empty_preps_run_nothing(termlog):
    run_preps([], termlog)

    assert termlog.streams == []


def test_all_preps_run_in_order(termlog, tmp_path):
    out = tmp_path / "order"
    preps = [PrepConfig(f"echo {i} >> {out}") for i in range(3)]

    run_preps(preps, termlog)

    assert out.read_text().split() == ["0", "1", "2"]
    assert termlog.labels == [nice_header("prep: ", p.command) for p in preps]


def test_first_failure_stops_the_sequence(termlog, tmp_path):
    marker = tmp_path / "marker"
    preps = [
        PrepConfig("true"),
        PrepConfig("exit 4"),
        PrepConfig(f"touch {marker}"),
    ]

    with pytest.raises(ProcError) as excinfo:
        run_preps(preps, termlog)

    assert excinfo.value.command == "exit 4"
    assert excinfo.value.description == "exit status 4"
    assert not marker.exists()
    assert termlog.labels == ["prep: true", "prep: exit 4"]
    assert termlog.streams[1].lines("shout") == ["exit status 4"]


def test_missing_shell_fails_the_first_prep(termlog):
    with pytest.raises(ProcError):
        run_preps([PrepConfig("true"), PrepConfig("true")], termlog, shell="/nonexistent/sh")

    assert len(termlog.streams) == 1
