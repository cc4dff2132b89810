"""Unit tests for per-file context: reading files, splitting lines and context windows."""

import logging
from pathlib import Path

from ferret.context import FileContext, create_context, extract_context, load_contexts, split_lines
from ferret.findings.models import ComponentType, DiscoveredFile, FileType


def _discovered(path: Path, relative_path: str = "skills/a/SKILL.md") -> DiscoveredFile:
    return DiscoveredFile(
        path=path,
        relative_path=relative_path,
        type=FileType.MD,
        component=ComponentType.SKILL,
    )


def test_split_lines_lf_and_crlf():
    assert split_lines("a\nb\r\nc") == ["a", "b", "c"]


def test_split_lines_keeps_other_separators():
    """Vertical tab, form feed and U+2028 are content, not line breaks."""
    assert split_lines("a\x0bb c\x0cd\u2028e") == ["a\x0bb c\x0cd\u2028e"]


def test_split_lines_trailing_newline():
    assert split_lines("a\n") == ["a", ""]


def test_extract_context_middle():
    lines = [f"line {i}" for i in range(1, 11)]
    ctx = extract_context(lines, 5, 2)
    assert [c.line_number for c in ctx] == [3, 4, 5, 6, 7]
    assert [c.is_match for c in ctx].count(True) == 1
    assert ctx[2].content == "line 5"


def test_extract_context_clipped_at_edges():
    lines = ["a", "b", "c"]
    assert [c.line_number for c in extract_context(lines, 1, 3)] == [1, 2, 3]
    assert [c.line_number for c in extract_context(lines, 3, 1)] == [2, 3]


def test_extract_context_negative_window_is_zero():
    ctx = extract_context(["a", "b"], 2, -4)
    assert [c.line_number for c in ctx] == [2]


def test_create_context_reads_content(tmp_path: Path):
    """A readable UTF-8 file becomes a readable context with cached lines."""
    path = tmp_path / "SKILL.md"
    path.write_text("# Skill\nrun things\n", encoding="utf-8")
    ctx = create_context(_discovered(path))
    assert ctx.readable
    assert ctx.error is None
    assert ctx.content == "# Skill\nrun things\n"
    assert ctx.lines == ["# Skill", "run things", ""]
    assert ctx.lines is ctx.lines
    assert ctx.relative_path == "skills/a/SKILL.md"
    assert ctx.path == path


def test_create_context_missing_file(tmp_path: Path, caplog):
    with caplog.at_level(logging.ERROR):
        ctx = create_context(_discovered(tmp_path / "gone.md"))
    assert not ctx.readable
    assert ctx.content is None
    assert ctx.lines == []
    assert ctx.error.startswith("Cannot read file")
    assert "Failed to read file" in caplog.text


def test_create_context_undecodable_file(tmp_path: Path):
    path = tmp_path / "bad.md"
    path.write_bytes(b"\xff\xfe\xfa not utf-8")
    ctx = create_context(_discovered(path))
    assert not ctx.readable
    assert ctx.error.startswith("Cannot decode file")


def test_load_contexts_keeps_order_and_unreadable(tmp_path: Path):
    good = tmp_path / "good.md"
    good.write_text("ok", encoding="utf-8")
    files = [
        _discovered(tmp_path / "missing.md", "missing.md"),
        _discovered(good, "good.md"),
    ]
    contexts = load_contexts(files)
    assert [c.relative_path for c in contexts] == ["missing.md", "good.md"]
    assert [c.readable for c in contexts] == [False, True]


def test_file_context_repr():
    ctx = FileContext(_discovered(Path("/x/SKILL.md")), None, error="boom")
    assert "unreadable: boom" in repr(ctx)
