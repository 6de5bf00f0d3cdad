"""Forward a child process's output streams into a log, line by line."""

from __future__ import annotations

import threading
from typing import IO, Callable

from tend.utils.logging import LogStream


def log_output(stream: IO[bytes], out: Callable[[str], None]) -> None:
    """
    Read lines from stream and pass each one to out until the stream ends.

    End of input and read errors both end the loop quietly: a pipe closing
    when its process exits is the normal way for this to finish.
    """
    try:
        for raw in iter(stream.readline, b""):
            line = raw.decode("utf-8", errors="replace")
            # One line ending only; a stray CR before it belongs to the line
            if line.endswith("\r\n"):
                line = line[:-2]
            elif line.endswith("\n"):
                line = line[:-1]
            out(line)
    except (OSError, ValueError):
        return


def _start_reader(stream: IO[bytes], out: Callable[[str], None], name: str) -> threading.Thread:
    thread = threading.Thread(target=log_output, args=(stream, out), daemon=True, name=name)
    thread.start()
    return thread


def attach(stdout: IO[bytes], stderr: IO[bytes], log: LogStream) -> list[threading.Thread]:
    """
    Start one reader thread per stream.

    Standard output goes to ``log.say``, standard error to ``log.warn``.

    Returns:
        The two reader threads, stderr first.
    """
    return [
        _start_reader(stderr, log.warn, f"stderr:{log.label}"),
        _start_reader(stdout, log.say, f"stdout:{log.label}"),
    ]
