"""Tests for RestoreSelector."""

import pytest

from savekeep.errors import ForeignSnapshot, SnapshotNotFound
from savekeep.restore import RestoreSelector
from savekeep.snapshot import LocalSnapshotStore


@pytest.fixture
def store():
    return LocalSnapshotStore()


def test_choices_match_store_listing(store, tmp_path):
    for name in ["3", "7_foo", "abc", "2_bar"]:
        (tmp_path / name).write_text(name)
    selector = RestoreSelector(store, tmp_path)
    assert [s.name for s in selector.choices()] == ["2_bar", "3", "7_foo"]


def test_restore_is_byte_exact_regardless_of_later_snapshots(store, tmp_path, save_file):
    directory = tmp_path / "backups"
    contents = {}
    for i in range(1, 9):
        data = bytes(range(i * 7 % 256)) + f"state {i}".encode()
        save_file.write_bytes(data)
        note = "checkpoint" if i == 5 else None
        snap = store.create(directory, save_file, note)
        contents[snap.name] = data

    assert "5_checkpoint" in contents
    save_file.write_bytes(b"live file moved on")

    selector = RestoreSelector(store, directory)
    selector.restore("5_checkpoint", save_file)
    assert save_file.read_bytes() == contents["5_checkpoint"]


def test_restore_by_snapshot_object(store, tmp_path, save_file):
    directory = tmp_path / "backups"
    snap = store.create(directory, save_file)
    save_file.write_bytes(b"changed")

    selector = RestoreSelector(store, directory)
    chosen = selector.choices()[0]
    assert chosen == snap
    selector.restore(chosen, save_file)
    assert save_file.read_bytes() == b"version 1"


def test_restore_by_bare_index(store, tmp_path, save_file):
    directory = tmp_path / "backups"
    store.create(directory, save_file, "first")
    save_file.write_bytes(b"version 2")

    destination = tmp_path / "restored.ck2"
    RestoreSelector(store, directory).restore("1", destination)
    assert destination.read_bytes() == b"version 1"


def test_restore_creates_missing_destination(store, tmp_path, save_file):
    directory = tmp_path / "backups"
    store.create(directory, save_file)
    save_file.unlink()

    RestoreSelector(store, directory).restore("1", save_file)
    assert save_file.read_bytes() == b"version 1"


def test_snapshot_from_another_directory_is_rejected(store, tmp_path, save_file):
    other = store.create(tmp_path / "other", save_file)
    store.create(tmp_path / "backups", save_file)

    selector = RestoreSelector(store, tmp_path / "backups")
    with pytest.raises(ForeignSnapshot):
        selector.restore(other, save_file)


def test_unknown_name_is_rejected(store, tmp_path, save_file):
    directory = tmp_path / "backups"
    store.create(directory, save_file)
    with pytest.raises(SnapshotNotFound):
        RestoreSelector(store, directory).restore("9", save_file)
