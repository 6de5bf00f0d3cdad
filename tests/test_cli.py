import json

import pytest

from tend import __version__
from tend.cli.main import main


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "config.json")


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "Commands" in capsys.readouterr().out


def test_version(capsys):
    with pytest.raises(SystemExit):
        main(["--version"])
    assert __version__ in capsys.readouterr().out


def test_prep_success(config_path, capsys):
    assert main(["prep", "-c", config_path, "-p", "true", "-p", "true"]) == 0
    assert "2 prep(s) completed" in capsys.readouterr().out


def test_prep_failure_returns_1(config_path, capsys):
    assert main(["prep", "-c", config_path, "-p", "exit 5", "-p", "true"]) == 1
    assert "exit status 5" in capsys.readouterr().err


def test_run_without_commands_fails(config_path):
    assert main(["run", "-c", config_path]) == 1


def test_bad_signal_is_reported(config_path, capsys):
    assert main(["run", "-c", config_path, "-d", "./server", "-s", "SIGNOPE"]) == 1
    assert "Unknown signal" in capsys.readouterr().err


def test_init_then_config_json(config_path, capsys):
    assert main(["init", "-c", config_path]) == 0
    capsys.readouterr()

    assert main(["config", "-c", config_path, "--json"]) == 0
    shown = json.loads(capsys.readouterr().out)
    assert shown["preps"] == ["echo prep"]
    assert shown["daemons"][0]["restart_signal"] == "SIGHUP"
