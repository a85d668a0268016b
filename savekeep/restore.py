import logging
from pathlib import Path

from savekeep.errors import ForeignSnapshot
from savekeep.snapshot import Snapshot

logger = logging.getLogger(__name__)


class RestoreSelector:
    """Ordered view of one snapshot directory, used to pick and restore a snapshot.

    Usage:
        selector = RestoreSelector(store, snapshot_dir)
        for s in selector.choices():
            print(s.name)
        selector.restore("5_checkpoint", tracked_file)
    """

    def __init__(self, store, directory):
        self.store = store
        self.directory = Path(directory)

    def choices(self):
        return self.store.list(self.directory)

    def restore(self, chosen, destination):
        """Copy the chosen snapshot over destination.

        chosen is a Snapshot from this directory, or an entry name / bare index.
        The copy is not atomic: a crash mid-copy leaves a partial destination.
        """
        if isinstance(chosen, Snapshot):
            if chosen.directory.resolve() != self.directory.resolve():
                raise ForeignSnapshot(
                    f"Snapshot {chosen.name} belongs to {chosen.directory}, not {self.directory}"
                )
            snapshot = chosen
        else:
            snapshot = self.store.get(self.directory, chosen)

        restored = self.store.restore(snapshot, destination)
        logger.info("Restored snapshot %s to %s", snapshot.name, restored)
        return restored
