"""Tests for ComponentMigrationSystem (per-file migration)."""

import pytest

from console_migrator.components import DirectoryClassifier
from console_migrator.config import MigrationConfig
from console_migrator.migration import ComponentMigrationSystem
from console_migrator.models import ComponentTag, FileStatus

from conftest import BROKEN_ONLY_TS, ENGINE_TS, PARTIAL_TS, PLAIN_TS, write

RUN = "migration-20240101T120000-000000-cccccc"


@pytest.fixture
def system(tmp_path):
    return ComponentMigrationSystem(tmp_path)


class TestClassifier:
    def test_directory_rules(self):
        classifier = DirectoryClassifier()
        assert classifier.classify("src/core/engine.ts") is ComponentTag.CORE
        assert classifier.classify("src/mcp/server.js") is ComponentTag.MCP
        assert classifier.classify("src/cli/commands/run.ts") is ComponentTag.CLI
        assert classifier.classify("src/swarm/core/queue.ts") is ComponentTag.SWARM
        assert classifier.classify("src/index.ts") is ComponentTag.CORE

    def test_non_candidates(self):
        classifier = DirectoryClassifier()
        assert classifier.classify("README.md") is None
        assert classifier.classify("src/types.d.ts") is None
        assert classifier.classify("dist/bundle.js") is None
        assert classifier.classify(".console-migrator/runs/x/backups/a.js") is None

    def test_classify_tree_skips_node_modules(self, project):
        groups = DirectoryClassifier().classify_tree(project)
        core = sorted(p.relative_to(project).as_posix() for p in groups[ComponentTag.CORE])
        assert core == ["src/core/engine.ts", "src/core/version.ts"]
        assert [p.name for p in groups[ComponentTag.MCP]] == ["server.js"]

    def test_custom_component_dirs(self):
        config = MigrationConfig(component_dirs={"Hooks": ["plugins"], "Core": ["lib"]})
        assert DirectoryClassifier(config).classify("plugins/x.js") is ComponentTag.HOOKS


class TestMigrateFile:
    def test_all_calls_migrated(self, tmp_path, system):
        path = write(tmp_path, "src/core/engine.ts", ENGINE_TS)
        record = system.migrate_file(path, ComponentTag.CORE, RUN)
        assert record.status is FileStatus.SUCCESS
        assert record.success
        assert (record.calls_found, record.calls_migrated, record.calls_skipped) == (3, 3, 0)
        assert record.backup_path is not None
        assert (tmp_path / record.backup_path).read_text() == ENGINE_TS
        text = path.read_text()
        assert "console." not in text
        assert text.count("getComponentLogger('Core')") == 1

    def test_file_without_calls(self, tmp_path, system):
        path = write(tmp_path, "src/core/version.ts", PLAIN_TS)
        record = system.migrate_file(path, ComponentTag.CORE, RUN)
        assert record.success
        assert record.calls_found == 0
        assert record.backup_path is None
        assert path.read_text() == PLAIN_TS
        assert not (tmp_path / ".console-migrator").exists()

    def test_partial_file(self, tmp_path, system):
        path = write(tmp_path, "src/core/loader.ts", PARTIAL_TS)
        record = system.migrate_file(path, ComponentTag.CORE, RUN)
        assert record.status is FileStatus.PARTIAL
        assert not record.success
        assert (record.calls_migrated, record.calls_skipped) == (2, 1)
        assert record.backup_path is not None
        assert len(record.issues) == 1

    def test_nested_call_makes_file_partial(self, tmp_path, system):
        path = write(tmp_path, "src/core/nested.ts", "console.log(console.error('x'));\n")
        record = system.migrate_file(path, ComponentTag.CORE, RUN)
        assert record.status is FileStatus.PARTIAL
        assert (record.calls_found, record.calls_migrated, record.calls_skipped) == (2, 1, 1)
        assert "nested inside another call" in record.issues[0]
        assert record.backup_path is not None
        assert ".info(console.error('x'))" in path.read_text()

    def test_no_resolvable_site(self, tmp_path, system):
        path = write(tmp_path, "src/core/bad.ts", BROKEN_ONLY_TS)
        record = system.migrate_file(path, ComponentTag.CORE, RUN)
        assert record.status is FileStatus.FAILED
        assert record.error == "no call site could be delimited"
        assert record.backup_path is None
        assert path.read_text() == BROKEN_ONLY_TS

    def test_unreadable_file(self, tmp_path, system):
        path = tmp_path / "src/core/blob.js"
        path.parent.mkdir(parents=True)
        path.write_bytes(b"\x00\x01\x02")
        record = system.migrate_file(path, ComponentTag.CORE, RUN)
        assert record.status is FileStatus.FAILED
        assert record.error.startswith("scan-failed:")

    def test_second_pass_finds_nothing(self, tmp_path, system):
        path = write(tmp_path, "src/core/engine.ts", ENGINE_TS)
        system.migrate_file(path, ComponentTag.CORE, RUN)
        migrated = path.read_text()
        again = system.migrate_file(path, ComponentTag.CORE, "migration-20240101T120001-000000-dddddd")
        assert again.calls_found == 0
        assert path.read_text() == migrated

    def test_write_failure_restores_original(self, tmp_path, system, monkeypatch):
        path = write(tmp_path, "src/core/engine.ts", ENGINE_TS)

        def fail_write(target, data):
            raise OSError("disk full")

        monkeypatch.setattr("console_migrator.migration.component.atomic_write_bytes", fail_write)
        record = system.migrate_file(path, ComponentTag.CORE, RUN)
        assert record.status is FileStatus.FAILED
        assert record.error.startswith("write-failed:")
        assert path.read_text() == ENGINE_TS

    def test_statistics(self, tmp_path, system):
        write(tmp_path, "src/core/engine.ts", ENGINE_TS)
        write(tmp_path, "src/core/loader.ts", PARTIAL_TS)
        system.migrate_component(ComponentTag.CORE, RUN)
        assert system.stats.by_component() == {"Core": 5}
        assert system.stats.by_pattern() == {
            "console.log": 2,
            "console.warn": 1,
            "console.error": 1,
            "console.debug": 1,
        }
        assert "src/core/engine.ts:5" in system.stats.locations["console.log@Core"]


class TestMigrateComponent:
    def test_processes_component_files(self, project):
        system = ComponentMigrationSystem(project)
        records = system.migrate_component(ComponentTag.CORE, RUN)
        assert [r.path for r in records] == ["src/core/engine.ts", "src/core/version.ts"]
        assert "console.info" in (project / "src/mcp/server.js").read_text()

    def test_records_appended_to_caller_list(self, project):
        system = ComponentMigrationSystem(project)
        sink = []
        returned = system.migrate_component(ComponentTag.CORE, RUN, into=sink)
        assert returned is sink
        assert [r.path for r in sink] == ["src/core/engine.ts", "src/core/version.ts"]

    def test_stop_check(self, project):
        system = ComponentMigrationSystem(project)
        assert system.migrate_component(ComponentTag.CORE, RUN, should_stop=lambda: True) == []

    def test_preview_writes_nothing(self, project, snapshot):
        before = snapshot(project)
        records = ComponentMigrationSystem(project).preview_component(ComponentTag.CORE)
        assert snapshot(project) == before
        assert not (project / ".console-migrator").exists()
        engine = next(r for r in records if r.path == "src/core/engine.ts")
        assert engine.calls_migrated == 3
        assert engine.backup_path is None
