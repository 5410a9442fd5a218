"""Tests for CallSiteScanner."""

import pytest

from console_migrator.config import MigrationConfig
from console_migrator.exceptions import ScanError
from console_migrator.models import Method
from console_migrator.scanning import CallSiteScanner, decode_source

from conftest import ENGINE_TS, write


@pytest.fixture
def scanner():
    return CallSiteScanner()


class TestScan:
    def test_all_five_methods(self, scanner):
        text = "\n".join(
            f"console.{m}('x');" for m in ("log", "info", "warn", "error", "debug")
        )
        sites = scanner.scan(text, "a.js")
        assert [s.method for s in sites] == [
            Method.MESSAGE,
            Method.INFO,
            Method.WARNING,
            Method.ERROR,
            Method.DEBUG,
        ]
        assert [s.line for s in sites] == [1, 2, 3, 4, 5]

    def test_other_console_methods_ignored(self, scanner):
        assert scanner.scan("console.table(rows); console.trace();", "a.js") == []

    def test_comments_and_strings_ignored(self, scanner):
        text = "// console.log('x')\nconst s = 'console.log(1)';\n/* console.warn(2) */\n"
        assert scanner.scan(text, "a.js") == []

    def test_other_receivers_ignored(self, scanner):
        text = "myconsole.log(1);\nwindow.console.log(2);\n$console.log(3);\n"
        assert scanner.scan(text, "a.js") == []

    def test_custom_receiver_named_in_pattern(self):
        scanner = CallSiteScanner(MigrationConfig(receiver="debugConsole"))
        sites = scanner.scan("debugConsole.warn('x');\nconsole.log(1);\n", "a.js")
        assert [s.pattern for s in sites] == ["debugConsole.warn"]
        assert sites[0].receiver == "debugConsole"

    def test_whitespace_between_tokens(self, scanner):
        sites = scanner.scan("console . warn ('spaced');", "a.js")
        assert len(sites) == 1
        assert sites[0].args_text == "'spaced'"

    def test_args_text_is_verbatim(self, scanner):
        text = "console.log(\n  'multi',\n  { a: (1 + 2), b: [3] },\n);\n"
        sites = scanner.scan(text, "a.js")
        assert sites[0].args_text == "\n  'multi',\n  { a: (1 + 2), b: [3] },\n"
        assert text[sites[0].start : sites[0].end] == text.rstrip(";\n")

    def test_lines_and_enclosing_functions(self, scanner):
        sites = scanner.scan(ENGINE_TS, "src/core/engine.ts")
        assert [(s.line, s.function, s.source_token) for s in sites] == [
            (5, "start", "log"),
            (10, "stop", "warn"),
            (15, "shutdown", "error"),
        ]

    def test_arrow_function_name(self, scanner):
        text = "const onEvent = async (evt) => {\n  console.log(evt);\n};\n"
        assert scanner.scan(text, "a.js")[0].function == "onEvent"

    def test_module_level_call_has_no_function(self, scanner):
        assert scanner.scan("console.log('top');", "a.js")[0].function is None

    def test_unresolved_site(self, scanner):
        sites = scanner.scan("console.log('a', foo(]);", "a.js")
        assert len(sites) == 1
        assert not sites[0].resolved
        assert sites[0].args_text is None

    def test_nested_call_reported(self, scanner):
        text = "console.log('outer', console.error('inner'));"
        sites = scanner.scan(text, "a.js")
        assert [s.source_token for s in sites] == ["log", "error"]
        assert sites[1].start > sites[0].start and sites[1].end < sites[0].end
        assert len(scanner.find_remaining(text, "a.js")) == 1


class TestMigrationMarker:
    def test_migrated_file_yields_no_sites(self, scanner):
        text = (
            "import { getComponentLogger } from './logger';\n"
            "const componentLogger = getComponentLogger('Core');\n"
            "console.log('left over');\n"
        )
        assert scanner.is_migrated(text)
        assert scanner.scan(text, "a.js") == []
        assert len(scanner.find_remaining(text, "a.js")) == 1

    def test_marker_in_comment_does_not_count(self, scanner):
        text = "// getComponentLogger comes later\nconsole.log(1);\n"
        assert not scanner.is_migrated(text)
        assert len(scanner.scan(text, "a.js")) == 1


class TestFiles:
    def test_decode_rejects_binary(self, tmp_path):
        with pytest.raises(ScanError, match="Cannot scan"):
            decode_source(b"\x00\x01console.log(1)", tmp_path / "bin.js")

    def test_decode_rejects_invalid_utf8(self, tmp_path):
        with pytest.raises(ScanError) as exc:
            decode_source(b"console.log('\xff')", tmp_path / "latin.js")
        assert "UTF-8" in exc.value.reason

    def test_scan_file_size_limit(self, tmp_path):
        path = write(tmp_path, "big.js", "console.log('x');\n" * 100)
        scanner = CallSiteScanner(MigrationConfig(max_file_size_mb=0.0001))
        with pytest.raises(ScanError, match="Cannot scan"):
            scanner.scan_file(path)

    def test_scan_file_uses_relpath(self, tmp_path):
        path = write(tmp_path, "src/a.js", "console.log(1);\n")
        _text, sites = CallSiteScanner().scan_file(path, "src/a.js")
        assert sites[0].path == "src/a.js"

    def test_count_calls(self, tmp_path):
        a = write(tmp_path, "a.js", "console.log(1);\nconsole.warn(2);\n")
        b = write(tmp_path, "b.js", "export {};\n")
        c = tmp_path / "c.js"
        c.write_bytes(b"\x00binary")
        counts = CallSiteScanner(MigrationConfig(scan_workers=2)).count_calls([a, b, c])
        assert counts == {a: 2, b: 0, c: -1}
