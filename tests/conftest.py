"""Shared fixtures: log streams that record what commands write."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

import pytest


@dataclass
class Record:
    tag: str
    message: str
    at: float


class RecordingStream:
    """Stands in for LogStream, keeping every call with a timestamp."""

    def __init__(self, label: str = "test") -> None:
        self.label = label
        self.records: list[Record] = []
        self._lock = threading.Lock()

    def _add(self, tag: str, msg: str, args: tuple) -> None:
        with self._lock:
            self.records.append(Record(tag, msg % args if args else msg, time.monotonic()))

    def header(self) -> None:
        self._add("header", self.label, ())

    def say(self, msg, *args):
        self._add("say", msg, args)

    def notice(self, msg, *args):
        self._add("notice", msg, args)

    def notice_as(self, name, msg, *args):
        self._add(f"notice:{name}", msg, args)

    def warn(self, msg, *args):
        self._add("warn", msg, args)

    def shout(self, msg, *args):
        self._add("shout", msg, args)

    def tagged(self, tag: str) -> list[Record]:
        with self._lock:
            return [r for r in self.records if r.tag == tag]

    def lines(self, tag: str) -> list[str]:
        return [r.message for r in self.tagged(tag)]


class RecordingTermLog:
    """Stands in for TermLog, handing out one RecordingStream per label."""

    def __init__(self) -> None:
        self.streams: list[RecordingStream] = []

    def stream(self, header: str) -> RecordingStream:
        stream = RecordingStream(header)
        self.streams.append(stream)
        return stream

    @property
    def labels(self) -> list[str]:
        return [s.label for s in self.streams]


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture(autouse=True)
def reset_tend_logging():
    yield
    # CLI tests point handlers at captured streams that are closed afterwards
    logging.getLogger("tend").handlers.clear()


@pytest.fixture
def stream():
    return RecordingStream()


@pytest.fixture
def termlog():
    return RecordingTermLog()
