import queue
import time
from pathlib import Path

import pytest

from savekeep import config as config_mod
from savekeep import log as log_mod
from savekeep.watch import ChangeEvent, ChangeSource


class QueueSource(ChangeSource):
    """In-memory change source: tests push events, the watch thread reads them."""

    def __init__(self):
        self.pending = queue.Queue()
        self.opened = []

    def open(self, path):
        self.opened.append(Path(path))

    def emit(self, kind, path):
        self.pending.put(ChangeEvent(kind, Path(path)))

    def fail(self, error):
        self.pending.put(error)

    def events(self, path, stop_event):
        while not stop_event.is_set():
            try:
                item = self.pending.get(timeout=0.01)
            except queue.Empty:
                continue
            if isinstance(item, Exception):
                raise item
            yield item


def wait_for(predicate, timeout=5.0, interval=0.01):
    """Poll predicate until it is truthy or timeout elapses. Returns the last result."""
    deadline = time.monotonic() + timeout
    while True:
        result = predicate()
        if result or time.monotonic() >= deadline:
            return result
        time.sleep(interval)


@pytest.fixture
def source():
    return QueueSource()


@pytest.fixture
def save_file(tmp_path):
    """A tracked file with some initial content."""
    path = tmp_path / "saves" / "game.ck2"
    path.parent.mkdir()
    path.write_bytes(b"version 1")
    return path


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep global config and audit log inside the test's tmp dir."""
    home = tmp_path / "home"
    monkeypatch.setattr(config_mod, "GLOBAL_CONFIG_FILE", home / "config.json")
    monkeypatch.setattr(log_mod, "LOGS_FILE", home / "logs.jsonl")
    monkeypatch.delenv(config_mod.SAVE_DIR_ENV, raising=False)
    return home


@pytest.fixture
def wait():
    return wait_for
