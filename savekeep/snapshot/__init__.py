from savekeep.snapshot.base import Snapshot, SnapshotStore, parse_index, snapshot_name
from savekeep.snapshot.local import LocalSnapshotStore

__all__ = ["Snapshot", "SnapshotStore", "LocalSnapshotStore", "parse_index", "snapshot_name"]
