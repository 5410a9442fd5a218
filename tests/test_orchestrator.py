"""Tests for MigrationOrchestrator runs."""

import json

import pytest

from console_migrator.config import MigrationConfig
from console_migrator.exceptions import InvalidPathError, MigrationFailed, OrchestrationError
from console_migrator.migration import INCOMPLETE, CancellationToken, MigrationOrchestrator
from console_migrator.models import ComponentTag, FileStatus, Stage
from console_migrator.storage import BackupStore, RunStore
from console_migrator.storage import backup as backup_module
from console_migrator.validation import MigrationValidator

from conftest import ENGINE_TS, PARTIAL_TS, write


class AlwaysOverBudget:
    """Baseline provider that makes every performance check fail."""

    def baseline(self, path, original):
        return 0.1


class TestRun:
    def test_full_run(self, project):
        orchestrator = MigrationOrchestrator(project)
        report = orchestrator.run()
        assert orchestrator.state is Stage.COMPLETE
        assert report.state == "COMPLETE"
        assert report.completed
        assert report.calls_found == 4
        assert report.calls_migrated == 4
        assert report.coverage == 100.0
        assert report.validation.passed
        assert report.validation.files_validated == 2
        assert set(report.validation.checks.values()) == {True}
        assert report.statistics["by_component"] == {"Core": 3, "MCP": 1}

    def test_components_run_in_fixed_order(self, project):
        report = MigrationOrchestrator(project).run()
        names = [name for name, recs in report.components.items() if recs]
        assert names == ["Core", "MCP"]

    def test_persists_run_artifacts(self, project):
        report = MigrationOrchestrator(project).run()
        run_dir = project / ".console-migrator" / "runs" / report.run_id
        assert (run_dir / "report.json").exists()
        assert (run_dir / "rollback.sh").exists()
        assert (run_dir / "rollback.json").exists()
        assert (run_dir / "migration.log").exists()
        assert report.rollback_script == str(run_dir / "rollback.sh")
        saved = json.loads((run_dir / "report.json").read_text())
        assert saved["run_id"] == report.run_id
        assert RunStore(project).load_report().calls_migrated == 4

    def test_component_filter(self, project):
        report = MigrationOrchestrator(project).run([ComponentTag.MCP])
        assert [r.path for r in report.records] == ["src/mcp/server.js"]
        assert "console.log" in (project / "src/core/engine.ts").read_text()

    def test_partial_file_keeps_backup(self, partial_project):
        report = MigrationOrchestrator(partial_project).run()
        (record,) = report.records
        assert record.status is FileStatus.PARTIAL
        assert record.backup_path is not None
        assert report.validation.passed
        assert any("manual review" in r for r in report.recommendations)

    def test_idempotent(self, project):
        MigrationOrchestrator(project).run()
        second = MigrationOrchestrator(project).run()
        assert second.calls_found == 0
        assert BackupStore(project).entries(second.run_id) == []

    def test_orchestrator_runs_once(self, project):
        orchestrator = MigrationOrchestrator(project)
        orchestrator.run()
        with pytest.raises(OrchestrationError):
            orchestrator.run()

    def test_missing_root(self, tmp_path):
        with pytest.raises(InvalidPathError):
            MigrationOrchestrator(tmp_path / "nope")


class TestDryRun:
    def test_writes_nothing(self, project, snapshot):
        before = snapshot(project)
        report = MigrationOrchestrator(project).run(dry_run=True)
        assert snapshot(project) == before
        assert not (project / ".console-migrator").exists()
        assert report.dry_run
        assert report.state == "COMPLETE"
        assert report.calls_found == 4
        assert report.validation is None

    def test_skips_files_without_calls(self, project):
        report = MigrationOrchestrator(project).run(dry_run=True)
        assert "src/core/version.ts" not in [r.path for r in report.records]


class TestValidationRollback:
    def test_failed_validation_restores_file(self, project):
        validator = MigrationValidator(baseline=AlwaysOverBudget())
        report = MigrationOrchestrator(project, validator=validator).run()
        assert not report.validation.passed
        assert report.validation.checks["performance"] is False
        assert sorted(report.validation.files_rolled_back) == [
            "src/core/engine.ts",
            "src/mcp/server.js",
        ]
        assert (project / "src/core/engine.ts").read_text() == ENGINE_TS
        engine = next(r for r in report.records if r.path == "src/core/engine.ts")
        assert engine.status is FileStatus.FAILED
        assert engine.calls_migrated == 0
        assert engine.calls_skipped == 3
        assert engine.backup_path is None
        assert engine.error.startswith("validation-failed:")
        assert report.statistics["total_migrated"] == 0

    def test_on_failure_only_retention(self, project):
        config = MigrationConfig(backup_retention="on-failure-only")
        report = MigrationOrchestrator(project, config).run()
        assert all(r.backup_path is None for r in report.records)
        assert BackupStore(project, config).entries(report.run_id) == []

    def test_validation_can_be_disabled(self, project):
        report = MigrationOrchestrator(project, MigrationConfig(validate=False)).run()
        assert report.validation is None
        assert report.calls_migrated == 4


class TestCancellation:
    def test_cancelled_before_start(self, project, snapshot):
        token = CancellationToken()
        token.cancel()
        before = snapshot(project)
        report = MigrationOrchestrator(project, token=token).run()
        assert report.state == INCOMPLETE
        assert not report.completed
        assert snapshot(project) == before

    def test_cancelled_after_first_component(self, project):
        orchestrator = MigrationOrchestrator(project)

        def stop_after_migrating(event):
            if event.stage is Stage.MIGRATING:
                orchestrator.cancel()

        orchestrator.add_listener(stop_after_migrating)
        report = orchestrator.run()
        assert report.state == INCOMPLETE
        assert "console.info" in (project / "src/mcp/server.js").read_text()
        assert "console." not in (project / "src/core/engine.ts").read_text()
        assert any("cancelled" in r for r in report.recommendations)


class TestProgress:
    def test_events(self, project):
        events = []
        orchestrator = MigrationOrchestrator(project)
        orchestrator.add_listener(events.append)
        orchestrator.run()
        stages = [e.stage for e in events]
        assert stages[0] is Stage.SCANNING
        assert Stage.MIGRATING in stages
        assert Stage.VALIDATING in stages
        assert stages[-1] is Stage.COMPLETE
        assert events[-1].migrated_calls == 4


class TestFatalErrors:
    def test_backup_failure_aborts_run(self, project, monkeypatch):
        def fail_write(target, data):
            raise OSError("read-only file system")

        monkeypatch.setattr("console_migrator.storage.backup.atomic_write_bytes", fail_write)
        with pytest.raises(MigrationFailed) as exc:
            MigrationOrchestrator(project).run()
        report = exc.value.report
        assert report.state == "FAILED"
        assert not report.completed
        assert "Cannot back up" in report.error
        assert isinstance(exc.value.cause, OrchestrationError)
        assert (project / "src/core/engine.ts").read_text() == ENGINE_TS
        assert RunStore(project).load_report(report.run_id).state == "FAILED"

    def test_backup_failure_keeps_records_of_rewritten_files(self, tmp_path, monkeypatch):
        write(tmp_path, "src/core/a.ts", "console.log('a');\n")
        write(tmp_path, "src/core/b.ts", "console.log('b');\n")
        real_write = backup_module.atomic_write_bytes
        calls = []

        def fail_second_write(target, data):
            calls.append(target)
            if len(calls) == 2:
                raise OSError("disk full")
            real_write(target, data)

        monkeypatch.setattr(backup_module, "atomic_write_bytes", fail_second_write)
        with pytest.raises(MigrationFailed) as exc:
            MigrationOrchestrator(tmp_path).run()
        report = exc.value.report
        assert "getComponentLogger" in (tmp_path / "src/core/a.ts").read_text()
        assert [r.path for r in report.records] == ["src/core/a.ts"]
        assert report.records[0].status is FileStatus.SUCCESS
        assert report.records[0].backup_path is not None
        saved = RunStore(tmp_path).load_report(report.run_id)
        assert [r.path for r in saved.records] == ["src/core/a.ts"]

    def test_restore_failure_during_validation_keeps_rolled_back_records(
        self, project, monkeypatch
    ):
        real_restore = BackupStore.restore
        calls = []

        def fail_second_restore(self, path, run_id=None):
            calls.append(path)
            if len(calls) == 2:
                raise OSError("permission denied")
            return real_restore(self, path, run_id)

        monkeypatch.setattr(BackupStore, "restore", fail_second_restore)
        validator = MigrationValidator(baseline=AlwaysOverBudget())
        with pytest.raises(MigrationFailed) as exc:
            MigrationOrchestrator(project, validator=validator).run()
        report = exc.value.report
        records = {r.path: r for r in report.records}
        engine = records["src/core/engine.ts"]
        assert engine.status is FileStatus.FAILED
        assert engine.error.startswith("validation-failed:")
        assert engine.calls_migrated == 0
        assert records["src/mcp/server.js"].status is FileStatus.SUCCESS
        assert report.validation.files_rolled_back == ["src/core/engine.ts"]
        assert not report.validation.passed
        assert (project / "src/core/engine.ts").read_text() == ENGINE_TS


def test_partial_only_project_recommendations(tmp_path):
    write(tmp_path, "src/core/loader.ts", PARTIAL_TS)
    report = MigrationOrchestrator(tmp_path).run()
    assert report.calls_skipped == 1
    assert report.coverage == pytest.approx(200 / 3)
