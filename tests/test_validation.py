from __future__ import annotations

from pathlib import Path

from docufier.validation import IssueSeverity, lint_source, schema_issues


def _write(path: Path, content: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _messages(report, severity: IssueSeverity) -> list[str]:
    return [issue.message for issue in report.issues if issue.severity is severity]


def test_lint_clean_for_well_formed_source(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "docs" / "README.md", "# Hi")
    _write(source / "docs" / "img" / "logo.png")
    _write(source / "docs" / "style.css")

    report = lint_source(source)

    assert report.issues == []
    assert report.markdown_count == 1
    assert report.file_count == 3


def test_lint_reports_missing_payload(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    source.mkdir()

    report = lint_source(source)

    assert report.error_count == 1
    assert 'Missing "docs" folder.' in _messages(report, IssueSeverity.ERROR)


def test_lint_flags_assets_and_stray_files(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "docs" / "README.md", "# Hi")
    _write(source / "docs" / "install.sh", "echo")
    _write(source / "docs" / "data.bin")
    _write(source / "notes.txt", "outside")

    report = lint_source(source)

    assert report.error_count == 0
    warnings = {issue.path: issue.message for issue in report.issues}
    assert "blocked" in warnings["docs/install.sh"]
    assert "'.bin'" in warnings["docs/data.bin"]
    assert "outside the docs folder" in warnings["notes.txt"]


def test_lint_checks_supplied_manifest(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "docs" / "README.md", "# Hi")

    missing_entry = lint_source(source, manifest={"title": "Proj", "entryFile": "guide.md"})
    assert missing_entry.error_count == 1
    assert missing_entry.issues[0].pointer == "entryFile"

    invalid = lint_source(source, manifest={"title": ""})
    assert _messages(invalid, IssueSeverity.ERROR) == ["Missing required field: title"]

    typed = lint_source(source, manifest={"title": "Proj", "entryFile": "README.md", "version": 2})
    assert typed.error_count == 0
    assert [issue.pointer for issue in typed.issues] == ["version"]


def test_lint_reads_manifest_left_in_source(tmp_path: Path) -> None:
    source = tmp_path / "proj"
    _write(source / "docs" / "README.md", "# Hi")
    _write(source / "manifest.json", "{broken")

    report = lint_source(source)

    assert report.warning_count == 1
    assert _messages(report, IssueSeverity.ERROR) == ["manifest.json is not valid JSON"]


def test_schema_issues_report_optional_field_types() -> None:
    assert schema_issues({"title": "x", "entryFile": "a.md"}) == []
    issues = schema_issues({"title": "x", "entryFile": "a.md", "author": ["a", "b"], "theme": 1})
    assert [pointer for pointer, _ in issues] == ["author", "theme"]
