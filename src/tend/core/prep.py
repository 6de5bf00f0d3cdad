"""Run prep commands in sequence."""

from __future__ import annotations

from typing import Sequence

from tend.core.config import PrepConfig
from tend.core.proc import DEFAULT_SHELL, DRAIN_TIMEOUT, run_proc
from tend.utils.logging import TermLog, nice_header


def run_preps(
    preps: Sequence[PrepConfig],
    log: TermLog,
    shell: str = DEFAULT_SHELL,
    drain_timeout: float = DRAIN_TIMEOUT,
) -> None:
    """
    Run all preps in order, stopping at the first failure.

    Each prep logs to its own stream labeled with the command text.

    Raises:
        ProcError: The error of the first prep that failed. Later preps are
            not run, and callers must not go on to (re)start daemons.
    """
    for prep in preps:
        run_proc(
            prep.command,
            log.stream(nice_header("prep: ", prep.command)),
            shell=shell,
            drain_timeout=drain_timeout,
        )
