"""Tests for engine response parsing."""

from __future__ import annotations

from docguard.llm.parser import has_no_changes_marker, parse_response

ALLOWED = ["docs/ARCHITECTURE.md", "README.md"]


def test_parser_keeps_only_allowlisted_files() -> None:
    text = (
        "Here you go.\n"
        '<updated-file path="docs/ARCHITECTURE.md">\n# Architecture\nNew section\n</updated-file>\n'
        '<updated-file path="src/app.ts">\nexport const hacked = true;\n</updated-file>\n'
    )

    parsed = parse_response(text, ALLOWED)

    assert [item.path for item in parsed.files] == ["docs/ARCHITECTURE.md"]
    assert parsed.files[0].content == "# Architecture\nNew section\n"
    assert parsed.warnings == ["Ignoring unexpected file in response: src/app.ts"]
    assert parsed.no_changes is False


def test_parser_reads_multiple_blocks() -> None:
    text = (
        '<updated-file path="docs/ARCHITECTURE.md">A</updated-file>'
        '<updated-file path="README.md">B</updated-file>'
    )

    parsed = parse_response(text, ALLOWED)

    assert [(item.path, item.content) for item in parsed.files] == [
        ("docs/ARCHITECTURE.md", "A\n"),
        ("README.md", "B\n"),
    ]
    assert parsed.warnings == []


def test_parser_warns_when_no_blocks_found() -> None:
    parsed = parse_response("I could not decide what to change.", ALLOWED)

    assert parsed.files == []
    assert parsed.warnings == ["No <updated-file> markers found in response."]


def test_parser_recognises_no_changes_marker() -> None:
    parsed = parse_response("All good. <no-changes-needed />", ALLOWED)

    assert parsed.files == []
    assert parsed.warnings == []
    assert parsed.no_changes is True
    assert has_no_changes_marker("<no-changes-needed/>")


def test_parser_tolerates_non_text_input() -> None:
    parsed = parse_response(None, ALLOWED)

    assert parsed.files == []
    assert parsed.warnings
