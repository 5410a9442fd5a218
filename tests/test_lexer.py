"""Tests for the tolerant JS/TS lexer."""

from console_migrator.scanning import code_mask, delimiter_issues, find_matching, line_of


def _is_code(text, needle, occurrence=0):
    mask = code_mask(text)
    index = -1
    for _ in range(occurrence + 1):
        index = text.index(needle, index + 1)
    return bool(mask[index])


class TestCodeMask:
    def test_line_comment_is_not_code(self):
        text = "a(); // console.log(x)\nb();"
        assert not _is_code(text, "console")
        assert _is_code(text, "b")

    def test_block_comment_is_not_code(self):
        text = "/* console.log(x) */ go();"
        assert not _is_code(text, "console")
        assert _is_code(text, "go")

    def test_string_literals_are_not_code(self):
        text = "const a = 'console.log(1)'; const b = \"(\";"
        assert not _is_code(text, "console")
        assert not _is_code(text, "(", 1)

    def test_escaped_quote_stays_inside_string(self):
        text = "const s = 'it\\'s (';\nrun();"
        assert not _is_code(text, "(")
        assert _is_code(text, "run")

    def test_template_substitution_is_code(self):
        text = "const s = `count ${items.length} (items)`;"
        assert _is_code(text, "items")
        assert not _is_code(text, "(items)")
        assert not _is_code(text, "count")

    def test_nested_template_substitution(self):
        text = "`a ${cond ? `b ${inner} c` : 'd'} e`; tail();"
        assert _is_code(text, "inner")
        assert _is_code(text, "tail")
        assert not _is_code(text, " e")

    def test_regex_literal_is_not_code(self):
        text = "const re = /[(]/g;\nfoo(1);"
        assert not _is_code(text, "(")
        assert _is_code(text, "foo")

    def test_division_is_code(self):
        text = "const half = total / 2; const q = a / b;"
        assert _is_code(text, "2")
        assert _is_code(text, "b;")

    def test_unterminated_string_ends_at_newline(self):
        text = "const s = 'oops\nnext();"
        assert _is_code(text, "next")

    def test_unterminated_comment_runs_to_end(self):
        mask = code_mask("a(); /* never closed\nb();")
        assert sum(mask) == len("a(); ")


class TestFindMatching:
    def test_nested_brackets(self):
        text = "f(a, [1, 2], {k: (3)});"
        assert find_matching(text, code_mask(text), 1) == len(text) - 2

    def test_brackets_in_strings_are_ignored(self):
        text = "f(')', \"]\", `}`)"
        assert find_matching(text, code_mask(text), 1) == len(text) - 1

    def test_mismatched_closer_returns_none(self):
        text = "f(a]"
        assert find_matching(text, code_mask(text), 1) is None

    def test_unterminated_returns_none(self):
        text = "f(a, b"
        assert find_matching(text, code_mask(text), 1) is None


class TestDelimiterIssues:
    def test_balanced_source_has_no_issues(self):
        assert delimiter_issues("function f(a) { return [a, {b: 1}]; }") == []

    def test_unclosed_brace_reports_opening_line(self):
        issues = delimiter_issues("function f() {\n  if (x) {\n}\n")
        assert len(issues) == 1
        assert issues[0].kind == "unclosed"
        assert issues[0].char == "{"
        assert issues[0].line == 1

    def test_unexpected_closer(self):
        issues = delimiter_issues("a);")
        assert [(i.kind, i.char) for i in issues] == [("unexpected", ")")]
        assert issues[0].describe() == "line 1: unexpected ')'"

    def test_mismatched_closer(self):
        issues = delimiter_issues("f(a[1);")
        assert [(i.kind, i.char) for i in issues] == [("unclosed", "["), ("mismatched", ")")]

    def test_brackets_in_comments_ignored(self):
        assert delimiter_issues("// (\n/* { */\nok();") == []


def test_line_of():
    text = "a\nb\nc"
    assert line_of(text, 0) == 1
    assert line_of(text, text.index("c")) == 3
