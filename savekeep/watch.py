"""Automatic snapshots driven by filesystem change notifications.

A WatchTrigger runs one watch session at a time:

    source thread:    ChangeSource.events() -> queue
    consumer thread:  queue -> debounce -> store.create()

Any notification for the tracked file restarts the quiet timer. Once the
file has been written and `debounce` seconds pass without a notification,
one snapshot is taken. A failed snapshot or a broken notification stream
ends the session in FAULTED; nothing restarts until start() is called again.
"""

import enum
import logging
import os
import queue
import threading
import time
from abc import ABC, abstractmethod
from collections import namedtuple
from pathlib import Path

import watchfiles

from savekeep.errors import SaveKeepError, SnapshotIOError, WatchChannelError, WatchInitError

logger = logging.getLogger(__name__)

ADDED = "added"
MODIFIED = "modified"
DELETED = "deleted"

WRITE_KINDS = {ADDED, MODIFIED}

ChangeEvent = namedtuple("ChangeEvent", ["kind", "path"])

_STOP = object()


class WatchState(enum.Enum):
    IDLE = "idle"
    WATCHING = "watching"
    FAULTED = "faulted"


class ChangeSource(ABC):
    """Produces ChangeEvents for one file."""

    def open(self, path):
        """Check that path can be observed. Raise WatchInitError otherwise."""
        pass

    @abstractmethod
    def events(self, path, stop_event):
        """Yield ChangeEvents until stop_event is set."""
        pass


class WatchfilesSource(ChangeSource):
    """Change notifications from the OS via watchfiles.

    The parent directory is watched rather than the file itself, so saves that
    replace the file (write to temp + rename) are still seen.
    """

    _KINDS = {
        watchfiles.Change.added: ADDED,
        watchfiles.Change.modified: MODIFIED,
        watchfiles.Change.deleted: DELETED,
    }

    def __init__(self, step_ms=50, force_polling=None):
        self.step_ms = step_ms
        self.force_polling = force_polling

    def open(self, path):
        path = Path(path)
        if not path.is_file():
            raise WatchInitError(f"Cannot watch {path}: file not found")
        if not os.access(path.parent, os.R_OK | os.X_OK):
            raise WatchInitError(f"Cannot watch {path}: {path.parent} is not readable")

    def events(self, path, stop_event):
        path = Path(path)
        for changes in watchfiles.watch(
            path.parent,
            watch_filter=None,
            debounce=self.step_ms,
            step=self.step_ms,
            stop_event=stop_event,
            recursive=False,
            raise_interrupt=False,
            force_polling=self.force_polling,
        ):
            for change, changed in changes:
                yield ChangeEvent(self._KINDS[change], Path(changed))


class WatchTrigger:
    """Background watch session that snapshots a file after it goes quiet.

    Usage:
        trigger = WatchTrigger(store)
        trigger.start(save_file, snapshot_dir, debounce=10)
        ...
        trigger.cancel()
    """

    def __init__(self, store, source=None):
        self.store = store
        self.source = source or WatchfilesSource()
        self.state = WatchState.IDLE
        self.fault = None
        self._events = None
        self._stop = None
        self._consumer = None
        self._producer = None

    @property
    def is_watching(self):
        return self.state is WatchState.WATCHING

    def start(self, source_path, directory, debounce):
        if self.state is WatchState.WATCHING:
            raise WatchInitError("Automatic snapshots are already running")
        if debounce <= 0:
            raise ValueError(f"debounce must be positive, got {debounce!r}")

        # reclaim the threads of a faulted session
        if self._consumer is not None:
            self.cancel()

        source_path = Path(source_path).resolve()
        directory = Path(directory)
        self.source.open(source_path)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SnapshotIOError(f"Cannot create snapshot directory {directory}: {e}") from e

        self.fault = None
        self._events = queue.Queue()
        self._stop = threading.Event()
        self._producer = threading.Thread(
            target=self._produce,
            args=(source_path, self._events, self._stop),
            name="savekeep-watch-source",
            daemon=True,
        )
        self._consumer = threading.Thread(
            target=self._consume,
            args=(source_path, directory, debounce, self._events, self._stop),
            name="savekeep-watch",
            daemon=True,
        )
        self.state = WatchState.WATCHING
        self._producer.start()
        self._consumer.start()
        logger.info("Started automatic snapshots of %s (debounce %ss)", source_path, debounce)

    def cancel(self, timeout=None):
        """Stop the session and join its threads. No-op when nothing is running.

        Returns True if a session was stopped.
        """
        if self._consumer is None:
            return False

        self._stop.set()
        self._events.put(_STOP)
        self._consumer.join(timeout)
        self._producer.join(timeout)
        if self._consumer.is_alive() or self._producer.is_alive():
            logger.warning("Watch threads did not stop within %ss", timeout)

        self._consumer = None
        self._producer = None
        if self.state is WatchState.WATCHING:
            self.state = WatchState.IDLE
        logger.info("Stopped automatic snapshots")
        return True

    def wait(self, timeout=None):
        """Block until the session ends. Returns True if it has ended."""
        if self._consumer is None:
            return True
        self._consumer.join(timeout)
        return not self._consumer.is_alive()

    def _produce(self, source_path, events, stop):
        try:
            for event in self.source.events(source_path, stop):
                events.put(event)
        except Exception as e:
            if not stop.is_set():
                events.put(WatchChannelError(f"Change notifications for {source_path} failed: {e}"))
            return
        if not stop.is_set():
            events.put(WatchChannelError(f"Change notifications for {source_path} ended unexpectedly"))

    def _consume(self, source_path, directory, debounce, events, stop):
        deadline = None
        while True:
            timeout = None if deadline is None else max(0, deadline - time.monotonic())
            try:
                item = events.get(timeout=timeout)
            except queue.Empty:
                deadline = None
                if stop.is_set():
                    return
                try:
                    self.store.create(directory, source_path)
                except SaveKeepError as e:
                    logger.error("Automatic snapshot failed: %s", e.message)
                    self._set_fault(e, stop)
                    return
                except Exception as e:
                    logger.exception("Automatic snapshot failed")
                    self._set_fault(SnapshotIOError(f"Automatic snapshot failed: {e}"), stop)
                    return
                continue

            if item is _STOP:
                return
            if isinstance(item, WatchChannelError):
                logger.warning("%s", item.message)
                self._set_fault(item, stop)
                return
            if Path(item.path).resolve() != source_path:
                continue
            if item.kind in WRITE_KINDS:
                deadline = time.monotonic() + debounce
            else:
                deadline = None

    def _set_fault(self, error, stop):
        self.fault = error
        self.state = WatchState.FAULTED
        stop.set()
