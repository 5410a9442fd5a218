"""Tests for the backup store, run store and atomic writes."""

import json
import os
import stat

import pytest

from console_migrator.exceptions import (
    BackupIntegrityError,
    BackupNotFoundError,
    OrchestrationError,
    RunNotFoundError,
)
from console_migrator.models import ComponentTag, MigrationReport, content_hash
from console_migrator.storage import BackupStore, RunStore, atomic_write_bytes, new_run_id

from conftest import write

RUN = "migration-20240101T120000-000000-aaaaaa"


@pytest.fixture
def store(tmp_path):
    return BackupStore(tmp_path)


class TestAtomicWrite:
    def test_replaces_content_and_leaves_no_temp(self, tmp_path):
        target = write(tmp_path, "a.js", "old")
        atomic_write_bytes(target, b"new")
        assert target.read_bytes() == b"new"
        assert [p.name for p in tmp_path.iterdir()] == ["a.js"]

    def test_keeps_permission_bits(self, tmp_path):
        target = write(tmp_path, "run.js", "#!/usr/bin/env node\n")
        target.chmod(0o755)
        atomic_write_bytes(target, b"#!/usr/bin/env node\nmain();\n")
        assert stat.S_IMODE(target.stat().st_mode) == 0o755

    def test_creates_parent_directories(self, tmp_path):
        target = tmp_path / "deep" / "er" / "x.json"
        atomic_write_bytes(target, b"{}")
        assert target.exists()


class TestBackup:
    def test_backup_records_entry(self, tmp_path, store):
        write(tmp_path, "src/a.js", "console.log(1);\n")
        entry = store.backup(tmp_path / "src/a.js", RUN, ComponentTag.CORE)
        assert entry.path == "src/a.js"
        assert entry.backup_path == f".console-migrator/runs/{RUN}/backups/src/a.js"
        assert entry.original_hash == content_hash(b"console.log(1);\n")
        assert entry.component == "Core"
        assert (tmp_path / entry.backup_path).read_text() == "console.log(1);\n"
        manifest = json.loads((tmp_path / f".console-migrator/runs/{RUN}/backups.json").read_text())
        assert [e["path"] for e in manifest["entries"]] == ["src/a.js"]

    def test_backup_is_append_only(self, tmp_path, store):
        path = write(tmp_path, "a.js", "original")
        first = store.backup(path, RUN)
        path.write_text("changed")
        second = store.backup(path, RUN)
        assert second == first
        assert (tmp_path / first.backup_path).read_text() == "original"
        assert len(store.entries(RUN)) == 1

    def test_backup_of_missing_file_is_fatal(self, tmp_path, store):
        with pytest.raises(OrchestrationError, match="Cannot back up"):
            store.backup(tmp_path / "missing.js", RUN)

    def test_entries_and_run_ids(self, tmp_path, store):
        write(tmp_path, "a.js", "a")
        write(tmp_path, "b.js", "b")
        other = "migration-20240102T120000-000000-bbbbbb"
        store.backup(tmp_path / "a.js", RUN)
        store.backup(tmp_path / "b.js", other)
        assert store.run_ids() == [RUN, other]
        assert [e.path for e in store.entries()] == ["a.js", "b.js"]
        assert store.find_entry("b.js").run_id == other
        assert store.find_entry("c.js") is None


class TestRestore:
    def test_restore_round_trip(self, tmp_path, store):
        path = write(tmp_path, "a.js", "console.log(1);\n")
        entry = store.backup(path, RUN)
        path.write_text("migrated")
        assert store.restore("a.js", RUN) is True
        assert path.read_text() == "console.log(1);\n"
        assert not (tmp_path / entry.backup_path).exists()
        assert store.entries(RUN) == []

    def test_second_restore_is_noop(self, tmp_path, store):
        path = write(tmp_path, "a.js", "orig")
        store.backup(path, RUN)
        path.write_text("migrated")
        store.restore(path, RUN)
        path.write_text("edited after rollback")
        assert store.restore(path, RUN) is False
        assert path.read_text() == "edited after rollback"

    def test_restore_unknown_file(self, store):
        with pytest.raises(BackupNotFoundError, match="No backup found"):
            store.restore("never.js", RUN)

    def test_corrupted_backup_is_refused(self, tmp_path, store):
        path = write(tmp_path, "a.js", "orig")
        entry = store.backup(path, RUN)
        path.write_text("migrated")
        (tmp_path / entry.backup_path).write_text("tampered")
        with pytest.raises(BackupIntegrityError):
            store.restore(path, RUN)
        assert path.read_text() == "migrated"

    def test_restore_run_reverse_order(self, tmp_path, store):
        for name in ("a.js", "b.js", "c.js"):
            path = write(tmp_path, name, f"orig {name}")
            store.backup(path, RUN)
            path.write_text("migrated")
        result = store.restore_run(RUN)
        assert result.restored == ["c.js", "b.js", "a.js"]
        assert result.success
        assert (tmp_path / "b.js").read_text() == "orig b.js"

    def test_restore_run_continues_past_failures(self, tmp_path, store):
        good = write(tmp_path, "good.js", "g")
        bad = write(tmp_path, "bad.js", "b")
        store.backup(good, RUN)
        entry = store.backup(bad, RUN)
        (tmp_path / entry.backup_path).unlink()
        result = store.restore_run(RUN)
        assert result.restored == ["good.js"]
        assert list(result.failed) == ["bad.js"]
        assert not result.success

    def test_restore_run_twice(self, tmp_path, store):
        path = write(tmp_path, "a.js", "orig")
        store.backup(path, RUN)
        store.restore_run(RUN)
        again = store.restore_run(RUN)
        assert again.restored == []
        assert again.already_restored == ["a.js"]

    def test_restore_component(self, tmp_path, store):
        core = write(tmp_path, "src/core/a.js", "core")
        mcp = write(tmp_path, "src/mcp/b.js", "mcp")
        store.backup(core, RUN, ComponentTag.CORE)
        store.backup(mcp, RUN, ComponentTag.MCP)
        core.write_text("migrated")
        mcp.write_text("migrated")
        result = store.restore_component(ComponentTag.MCP, RUN)
        assert result.restored == ["src/mcp/b.js"]
        assert mcp.read_text() == "mcp"
        assert core.read_text() == "migrated"


class TestRetention:
    def test_discard(self, tmp_path, store):
        path = write(tmp_path, "a.js", "orig")
        entry = store.backup(path, RUN)
        assert store.discard(path, RUN) is True
        assert not (tmp_path / entry.backup_path).exists()
        assert store.discard(path, RUN) is False
        with pytest.raises(BackupNotFoundError):
            store.restore(path, RUN)

    def test_cleanup(self, tmp_path, store):
        for name in ("a.js", "b.js"):
            store.backup(write(tmp_path, name, name), RUN)
        assert store.cleanup(RUN) == 2
        assert store.entries(RUN) == []
        assert not (store.run_dir(RUN) / "backups").exists()


class TestRunStore:
    def _report(self, run_id):
        return MigrationReport(
            run_id=run_id,
            timestamp="2024-01-01T12:00:00",
            project_root="/tmp/p",
            state="COMPLETE",
            completed=True,
            dry_run=False,
            components={},
        )

    def test_run_ids_are_unique_and_sortable(self):
        ids = [new_run_id() for _ in range(20)]
        assert len(set(ids)) == 20
        assert all(i.startswith("migration-") for i in ids)

    def test_save_and_load_report(self, tmp_path):
        runs = RunStore(tmp_path)
        runs.save_report(self._report(RUN))
        loaded = runs.load_report(RUN)
        assert loaded.run_id == RUN
        assert runs.load_report().run_id == RUN
        assert runs.list_runs() == [RUN]

    def test_load_missing_report(self, tmp_path):
        runs = RunStore(tmp_path)
        with pytest.raises(RunNotFoundError, match="No migration runs"):
            runs.load_report()
        with pytest.raises(RunNotFoundError, match="not found"):
            runs.load_report("migration-nope")

    def test_rollback_script(self, tmp_path, store):
        store.backup(write(tmp_path, "a.js", "a"), RUN)
        store.backup(write(tmp_path, "b.js", "b"), RUN)
        script = RunStore(tmp_path).write_rollback_script(RUN, store.entries(RUN))
        assert script.name == "rollback.sh"
        assert os.access(script, os.X_OK)
        body = script.read_text()
        assert body.startswith("#!/bin/sh\n")
        assert f"-m console_migrator rollback all --run-id {RUN}" in body
        assert "--force" in body
        manifest = json.loads((script.parent / "rollback.json").read_text())
        assert [f["path"] for f in manifest["files"]] == ["b.js", "a.js"]
