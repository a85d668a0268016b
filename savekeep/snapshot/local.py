import logging
import shutil
from pathlib import Path

from savekeep.errors import DirectoryUnreadable, SnapshotIOError, SourceMissing
from savekeep.snapshot.base import Snapshot, SnapshotStore, snapshot_name

logger = logging.getLogger(__name__)


class LocalSnapshotStore(SnapshotStore):
    """Snapshots kept as plain files in a local directory.

    Creation listeners are called with each new Snapshot after its bytes are
    on disk. A listener that raises is logged and does not fail the create.
    There is no locking around index computation: two concurrent
    creates in one directory can pick the same index.
    """

    def __init__(self):
        self._listeners = []

    def add_listener(self, callback):
        """Register callback(snapshot), called after every successful create."""
        self._listeners.append(callback)

    def remove_listener(self, callback):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def next_index(self, directory):
        indices = [s.index for s in self._scan(directory)]
        return max(indices) + 1 if indices else 1

    def create(self, directory, source_path, note=None):
        directory = Path(directory)
        source_path = Path(source_path)
        if not source_path.is_file():
            raise SourceMissing(source_path)

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SnapshotIOError(f"Cannot create snapshot directory {directory}: {e}") from e

        index = self.next_index(directory)
        dest = directory / snapshot_name(index, note)
        try:
            shutil.copy2(source_path, dest)
        except OSError as e:
            raise SnapshotIOError(f"Cannot copy {source_path} to {dest}: {e}") from e

        snapshot = Snapshot.from_path(dest)
        logger.info("Snapshot %d created", index)
        for callback in list(self._listeners):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Listener failed after snapshot %d was created", index)
        return snapshot

    def list(self, directory):
        return sorted(self._scan(directory), key=lambda s: s.index)

    def restore(self, snapshot, destination):
        destination = Path(destination)
        try:
            shutil.copyfile(snapshot.path, destination)
        except OSError as e:
            raise SnapshotIOError(f"Cannot restore {snapshot.name} to {destination}: {e}") from e
        return destination

    def _scan(self, directory):
        """Yield every well-formed snapshot entry. Only a listing failure raises."""
        directory = Path(directory)
        try:
            entries = list(directory.iterdir())
        except OSError as e:
            raise DirectoryUnreadable(directory, e.strerror or e) from e

        for entry in entries:
            snapshot = Snapshot.from_path(entry)
            if snapshot is None:
                continue
            try:
                if not entry.is_file():
                    continue
            except OSError:
                continue
            yield snapshot
