from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from savekeep.errors import SnapshotNotFound

SEPARATOR = "_"


def parse_index(name):
    """Return the snapshot index encoded in an entry name, or None.

    Only the text before the first separator counts, so a note is never
    mistaken for part of the index.
    """
    prefix = name.split(SEPARATOR, 1)[0]
    if not prefix.isascii() or not prefix.isdigit():
        return None
    index = int(prefix)
    return index if index > 0 else None


def snapshot_name(index, note=None):
    """Entry name for a snapshot: "<index>" or "<index>_<note>"."""
    note = (note or "").strip()
    if not note:
        return str(index)
    return f"{index}{SEPARATOR}{note}"


@dataclass(frozen=True)
class Snapshot:
    """One numbered copy of the tracked file.

    Attributes:
        index: Positive integer, unique within its directory
        note: Optional annotation taken from the entry name
        path: Location of the entry on disk
    """

    index: int
    note: str | None
    path: Path

    @property
    def name(self):
        return self.path.name

    @property
    def directory(self):
        return self.path.parent

    @classmethod
    def from_path(cls, path):
        """Build a Snapshot from an entry path. Returns None for malformed names."""
        path = Path(path)
        index = parse_index(path.name)
        if index is None:
            return None
        parts = path.name.split(SEPARATOR, 1)
        return cls(index=index, note=parts[1] if len(parts) > 1 else None, path=path)


class SnapshotStore(ABC):
    """Base interface for snapshot backends.

    A store works on a directory of snapshot entries keyed by name; it never
    keeps a counter, the next index always comes from scanning the directory.
    """

    @abstractmethod
    def next_index(self, directory):
        """Return max parseable index + 1, or 1 for a directory without snapshots."""
        pass

    @abstractmethod
    def create(self, directory, source_path, note=None):
        """Copy source_path into a new snapshot. Returns the Snapshot."""
        pass

    @abstractmethod
    def list(self, directory):
        """List snapshots in directory, ascending by index."""
        pass

    @abstractmethod
    def restore(self, snapshot, destination):
        """Copy a snapshot's bytes over destination. Returns the destination path."""
        pass

    def get(self, directory, name):
        """Find a listed snapshot by entry name or bare index."""
        name = str(name).strip()
        snapshots = self.list(directory)
        for snapshot in snapshots:
            if snapshot.name == name:
                return snapshot
        index = parse_index(name)
        if index is not None and SEPARATOR not in name:
            for snapshot in snapshots:
                if snapshot.index == index:
                    return snapshot
        raise SnapshotNotFound(f"No snapshot named {name!r} in {directory}")
