"""Tests for per-run migration statistics."""

from console_migrator.migration import MigrationStatistics
from console_migrator.models import (
    CallSite,
    ComponentTag,
    FileStatus,
    Method,
    MigrationRecord,
)


def site(path, line, token="log", method=Method.MESSAGE):
    return CallSite(
        path=path,
        start=0,
        end=10,
        line=line,
        method=method,
        source_token=token,
        args_text="'x'",
    )


class TestMigrationStatistics:
    def test_keys_combine_pattern_and_component(self):
        assert MigrationStatistics.key(site("a.ts", 1), ComponentTag.CORE) == "console.log@Core"

    def test_record_sites(self):
        stats = MigrationStatistics()
        stats.record_sites(
            ComponentTag.CORE,
            [site("a.ts", 1), site("a.ts", 4), site("a.ts", 9, "warn", Method.WARNING)],
        )
        stats.record_sites(ComponentTag.MCP, [site("b.js", 2)])
        assert stats.total_migrated == 4
        assert stats.calls["console.log@Core"] == 2
        assert stats.locations["console.log@Core"] == ["a.ts:1", "a.ts:4"]
        assert stats.by_component() == {"Core": 3, "MCP": 1}
        assert stats.by_pattern() == {"console.log": 3, "console.warn": 1}

    def test_forget_sites_undoes_a_file(self):
        stats = MigrationStatistics()
        stats.record_sites(ComponentTag.CORE, [site("a.ts", 1), site("b.ts", 1)])
        stats.forget_sites(ComponentTag.CORE, [site("a.ts", 1)])
        assert stats.total_migrated == 1
        assert stats.locations["console.log@Core"] == ["b.ts:1"]
        stats.forget_sites(ComponentTag.CORE, [site("b.ts", 1)])
        assert stats.total_migrated == 0
        assert "console.log@Core" not in stats.locations

    def test_forget_unknown_site_is_ignored(self):
        stats = MigrationStatistics()
        stats.record_sites(ComponentTag.CORE, [site("a.ts", 1)])
        stats.forget_sites(ComponentTag.CORE, [site("a.ts", 2)])
        assert stats.total_migrated == 1

    def test_record_file(self):
        stats = MigrationStatistics()
        record = MigrationRecord(
            path="src/core/a.ts",
            component=ComponentTag.CORE,
            original_hash="0" * 64,
            calls_found=3,
            calls_migrated=3,
            calls_skipped=0,
            patterns=["console.log"],
            success=True,
            status=FileStatus.SUCCESS,
        )
        stats.record_file(record)
        assert stats.files_by_component == {"Core": 1}
        assert stats.calls_per_file == {"src/core/a.ts": 3}

    def test_to_dict(self):
        stats = MigrationStatistics()
        stats.record_sites(ComponentTag.MCP, [site("b.js", 2, "info", Method.INFO)])
        assert stats.to_dict() == {
            "total_migrated": 1,
            "calls": {"console.info@MCP": 1},
            "by_component": {"MCP": 1},
            "by_pattern": {"console.info": 1},
            "files_by_component": {},
        }

    def test_custom_receiver_keys(self):
        stats = MigrationStatistics()
        custom = CallSite(
            path="a.ts",
            start=0,
            end=10,
            line=1,
            method=Method.ERROR,
            source_token="error",
            args_text="e",
            receiver="debugConsole",
        )
        stats.record_sites(ComponentTag.CORE, [custom])
        assert stats.by_pattern() == {"debugConsole.error": 1}
