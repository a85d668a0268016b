"""Manual snapshot actions for the configured tracked file.

Every entry point takes the configuration dict explicitly (see
savekeep.config.load_config) and resolves paths from it on each call:

    source_path  = <save_dir>/<tracked_file><extension>
    snapshot_dir = <backup_root>/<tracked_file>/
"""

import logging
from collections import namedtuple
from pathlib import Path

from savekeep.errors import DirectoryUnreadable, NotConfigured, SourceMissing
from savekeep.log import write_log
from savekeep.restore import RestoreSelector
from savekeep.snapshot import LocalSnapshotStore, Snapshot
from savekeep.watch import WatchTrigger

logger = logging.getLogger(__name__)

TrackedPaths = namedtuple("TrackedPaths", ["name", "source_path", "snapshot_dir"])


def resolve_paths(config):
    """Return TrackedPaths for the configured file. Raises NotConfigured."""
    name = (config or {}).get("tracked_file")
    if not name:
        raise NotConfigured("No file has been set to back up. Run 'savekeep track' first.")
    if not config.get("save_dir") or not config.get("backup_root"):
        raise NotConfigured("Configuration is missing save_dir or backup_root. Run 'savekeep init' first.")
    save_dir = Path(config["save_dir"])
    backup_root = Path(config["backup_root"])
    return TrackedPaths(
        name=name,
        source_path=save_dir / (name + config.get("extension", "")),
        snapshot_dir=backup_root / name,
    )


def _audit(entry):
    """Append an audit entry. The snapshot or restore already happened, so a failure only warns."""
    try:
        write_log(entry)
    except OSError as e:
        logger.warning("Could not write audit log entry for %s: %s", entry.get("event"), e)


def candidate_files(config):
    """Names that can be tracked: stems of regular files in save_dir with the configured extension."""
    save_dir = Path(config["save_dir"])
    extension = config.get("extension", "")
    try:
        entries = list(save_dir.iterdir())
    except OSError as e:
        raise DirectoryUnreadable(save_dir, e.strerror or e) from e

    names = []
    for entry in entries:
        if not entry.is_file():
            continue
        if extension:
            if not entry.name.endswith(extension) or entry.name == extension:
                continue
            names.append(entry.name[: -len(extension)])
        else:
            names.append(entry.name)
    return sorted(names)


def take_snapshot(config, note=None, store=None):
    """Snapshot the tracked file now. Returns the new Snapshot."""
    paths = resolve_paths(config)
    if not paths.source_path.is_file():
        raise SourceMissing(paths.source_path)
    store = store or LocalSnapshotStore()
    snapshot = store.create(paths.snapshot_dir, paths.source_path, note)
    _audit({
        "event": "snapshot",
        "tracked_file": paths.name,
        "snapshot": snapshot.name,
        "index": snapshot.index,
    })
    return snapshot


def list_snapshots(config, store=None):
    """Snapshots of the tracked file, oldest first. Empty when none were taken yet."""
    paths = resolve_paths(config)
    if not paths.snapshot_dir.exists():
        return []
    return RestoreSelector(store or LocalSnapshotStore(), paths.snapshot_dir).choices()


def restore_snapshot(config, chosen, store=None):
    """Overwrite the tracked file with a snapshot chosen by Snapshot, name or index."""
    paths = resolve_paths(config)
    store = store or LocalSnapshotStore()
    if not isinstance(chosen, Snapshot):
        chosen = store.get(paths.snapshot_dir, chosen)
    restored = RestoreSelector(store, paths.snapshot_dir).restore(chosen, paths.source_path)
    _audit({
        "event": "restore",
        "tracked_file": paths.name,
        "snapshot": chosen.name,
        "index": chosen.index,
    })
    return restored


def start_watching(config, debounce=None, store=None, source=None):
    """Start automatic snapshots of the tracked file. Returns the running WatchTrigger."""
    paths = resolve_paths(config)
    store = store or LocalSnapshotStore()

    def _on_created(snapshot):
        _audit({
            "event": "auto-snapshot",
            "tracked_file": paths.name,
            "snapshot": snapshot.name,
            "index": snapshot.index,
        })

    store.add_listener(_on_created)
    trigger = WatchTrigger(store, source=source)
    try:
        trigger.start(
            paths.source_path,
            paths.snapshot_dir,
            debounce or config.get("debounce_seconds", 10),
        )
    except Exception:
        store.remove_listener(_on_created)
        raise
    return trigger
