"""Tests for the configuration-driven snapshot actions."""

import pytest

from savekeep import log as log_mod
from savekeep.errors import DirectoryUnreadable, NotConfigured, SourceMissing
from savekeep.log import read_logs
from savekeep.tracker import (
    candidate_files,
    list_snapshots,
    resolve_paths,
    restore_snapshot,
    start_watching,
    take_snapshot,
)
from savekeep.watch import MODIFIED, WatchState


@pytest.fixture
def config(tmp_path, save_file):
    return {
        "save_dir": str(save_file.parent),
        "backup_root": str(tmp_path / "backups"),
        "extension": ".ck2",
        "tracked_file": "game",
        "debounce_seconds": 0.3,
    }


def test_resolve_paths(config, save_file, tmp_path):
    paths = resolve_paths(config)
    assert paths.name == "game"
    assert paths.source_path == save_file
    assert paths.snapshot_dir == tmp_path / "backups" / "game"


@pytest.mark.parametrize("bad", [None, {}, {"tracked_file": ""}, {"tracked_file": None}])
def test_not_configured(bad):
    with pytest.raises(NotConfigured):
        resolve_paths(bad)


def test_actions_require_configuration(config):
    del config["tracked_file"]
    with pytest.raises(NotConfigured):
        take_snapshot(config)
    with pytest.raises(NotConfigured):
        list_snapshots(config)
    with pytest.raises(NotConfigured):
        restore_snapshot(config, "1")
    with pytest.raises(NotConfigured):
        start_watching(config)


def test_candidate_files(config, save_file):
    (save_file.parent / "Rome.ck2").write_text("x")
    (save_file.parent / "readme.txt").write_text("x")
    (save_file.parent / "folder.ck2").mkdir()
    assert candidate_files(config) == ["Rome", "game"]


def test_candidate_files_without_extension(config, save_file):
    config["extension"] = ""
    (save_file.parent / "notes.txt").write_text("x")
    assert candidate_files(config) == ["game.ck2", "notes.txt"]


def test_candidate_files_missing_save_dir(config, tmp_path):
    config["save_dir"] = str(tmp_path / "nope")
    with pytest.raises(DirectoryUnreadable):
        candidate_files(config)


def test_take_list_and_restore(config, save_file):
    first = take_snapshot(config)
    save_file.write_bytes(b"version 2")
    second = take_snapshot(config, note="  after war ")

    assert (first.name, second.name) == ("1", "2_after war")
    assert [s.name for s in list_snapshots(config)] == ["1", "2_after war"]

    restore_snapshot(config, "1")
    assert save_file.read_bytes() == b"version 1"

    events = [(e["event"], e["snapshot"]) for e in read_logs("game")]
    assert events == [("snapshot", "1"), ("snapshot", "2_after war"), ("restore", "1")]


def test_take_snapshot_missing_source(config, save_file):
    save_file.unlink()
    with pytest.raises(SourceMissing):
        take_snapshot(config)


def test_list_before_first_snapshot(config):
    assert list_snapshots(config) == []


def test_start_watching_audits_auto_snapshots(config, source, save_file, wait):
    trigger = start_watching(config, source=source)
    try:
        assert trigger.state is WatchState.WATCHING
        source.emit(MODIFIED, save_file)
        assert wait(lambda: list_snapshots(config), timeout=5)
    finally:
        trigger.cancel(timeout=5)

    assert wait(lambda: read_logs("game"), timeout=5)
    assert read_logs("game")[0]["event"] == "auto-snapshot"


@pytest.mark.parametrize("missing", ["save_dir", "backup_root"])
def test_incomplete_config_is_not_configured(config, missing):
    del config[missing]
    with pytest.raises(NotConfigured):
        resolve_paths(config)
    with pytest.raises(NotConfigured):
        take_snapshot(config)


@pytest.fixture
def unwritable_log(tmp_path, monkeypatch):
    """Point the audit log below a regular file so every append fails."""
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    monkeypatch.setattr(log_mod, "LOGS_FILE", blocker / "logs.jsonl")
    return blocker


def test_snapshot_succeeds_when_audit_log_fails(config, save_file, unwritable_log, caplog):
    with caplog.at_level("WARNING", logger="savekeep"):
        snapshot = take_snapshot(config, note="kept")
    assert snapshot.name == "1_kept"
    assert snapshot.path.read_bytes() == b"version 1"
    assert "Could not write audit log entry for snapshot" in caplog.text


def test_restore_succeeds_when_audit_log_fails(config, save_file, unwritable_log, caplog):
    take_snapshot(config)
    save_file.write_bytes(b"ruined")
    with caplog.at_level("WARNING", logger="savekeep"):
        restore_snapshot(config, "1")
    assert save_file.read_bytes() == b"version 1"
    assert "Could not write audit log entry for restore" in caplog.text


def test_watching_survives_audit_log_failure(config, source, save_file, unwritable_log, wait):
    trigger = start_watching(config, source=source)
    try:
        source.emit(MODIFIED, save_file)
        assert wait(lambda: list_snapshots(config), timeout=5)
        source.emit(MODIFIED, save_file)
        assert wait(lambda: len(list_snapshots(config)) == 2, timeout=5)
        assert trigger.state is WatchState.WATCHING
    finally:
        trigger.cancel(timeout=5)
