from __future__ import annotations

import json
import zipfile
from pathlib import Path

from typer.testing import CliRunner

from docufier.cli import app


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _project(tmp_path: Path) -> Path:
    source = tmp_path / "proj"
    _write(source / "docs" / "README.md", "# Hello\n\nWelcome aboard.\n")
    _write(source / "docs" / "guide.md", "## Guide page\n")
    return source


def _config(tmp_path: Path) -> Path:
    config_file = tmp_path / "docufier.yml"
    config_file.write_text("scratch_dir: scratch\n", encoding="utf-8")
    return config_file


def test_pack_creates_package_and_appends_suffix(tmp_path: Path) -> None:
    runner = CliRunner()
    source = _project(tmp_path)

    result = runner.invoke(app, ["pack", str(source), "-o", str(tmp_path / "out")])

    assert result.exit_code == 0, result.output
    assert "Successfully created" in result.output
    assert "Title: proj" in result.output
    assert "Entry: README.md" in result.output
    assert "Complete!" in result.output
    with zipfile.ZipFile(tmp_path / "out.docf") as archive:
        assert "manifest.json" in archive.namelist()


def test_pack_embeds_supplied_manifest(tmp_path: Path) -> None:
    runner = CliRunner()
    source = _project(tmp_path)
    manifest_file = tmp_path / "custom.json"
    manifest_file.write_text(json.dumps({"title": "Custom", "entryFile": "guide.md"}), encoding="utf-8")
    output = tmp_path / "custom.docf"

    result = runner.invoke(app, ["pack", str(source), "-o", str(output), "-m", str(manifest_file)])

    assert result.exit_code == 0, result.output
    assert "Entry: guide.md" in result.output
    with zipfile.ZipFile(output) as archive:
        assert json.loads(archive.read("manifest.json"))["title"] == "Custom"


def test_pack_reports_errors_with_exit_code(tmp_path: Path) -> None:
    runner = CliRunner()
    empty = tmp_path / "empty"
    empty.mkdir()

    result = runner.invoke(app, ["pack", str(empty), "-o", str(tmp_path / "out.docf")])
    assert result.exit_code == 1
    assert "Error" in result.output
    assert not (tmp_path / "out.docf").exists()

    broken = tmp_path / "broken.json"
    broken.write_text("{nope", encoding="utf-8")
    bad_manifest = runner.invoke(
        app, ["pack", str(_project(tmp_path)), "-o", str(tmp_path / "out.docf"), "-m", str(broken)]
    )
    assert bad_manifest.exit_code == 1
    assert "Failed to load manifest" in bad_manifest.output


def test_unpack_extracts_and_validates(tmp_path: Path) -> None:
    runner = CliRunner()
    package = tmp_path / "out.docf"
    assert runner.invoke(app, ["pack", str(_project(tmp_path)), "-o", str(package)]).exit_code == 0
    destination = tmp_path / "unpacked"

    result = runner.invoke(app, ["unpack", str(package), str(destination)])

    assert result.exit_code == 0, result.output
    assert "Extracted" in result.output
    assert (destination / "docs" / "guide.md").exists()
    assert (destination / "manifest.json").exists()


def test_unpack_lists_skipped_entries(tmp_path: Path) -> None:
    runner = CliRunner()
    package = tmp_path / "mixed.docf"
    with zipfile.ZipFile(package, "w") as archive:
        archive.writestr("manifest.json", json.dumps({"title": "Mixed", "entryFile": "README.md"}))
        archive.writestr("docs/README.md", "# Hi")
        archive.writestr("docs/run.bat", "echo")

    result = runner.invoke(app, ["unpack", str(package), str(tmp_path / "out")])

    assert result.exit_code == 0, result.output
    assert "Skipped entries" in result.output
    assert "docs/run.bat" in result.output


def test_inspect_writes_report_and_releases_working_dir(tmp_path: Path) -> None:
    runner = CliRunner()
    package = tmp_path / "out.docf"
    assert runner.invoke(app, ["pack", str(_project(tmp_path)), "-o", str(package)]).exit_code == 0
    report = tmp_path / "summary.json"

    result = runner.invoke(
        app, ["inspect", str(package), "--report", str(report), "-c", str(_config(tmp_path))]
    )

    assert result.exit_code == 0, result.output
    assert "Title: proj" in result.output
    data = json.loads(report.read_text(encoding="utf-8"))
    assert data["markdown_files"] == ["README.md", "guide.md"]
    assert data["entry_file"] == "README.md"
    assert list((tmp_path / "scratch").iterdir()) == []


def test_inspect_reports_unreadable_package(tmp_path: Path) -> None:
    runner = CliRunner()
    package = tmp_path / "broken.docf"
    package.write_bytes(b"not a zip")

    result = runner.invoke(app, ["inspect", str(package), "-c", str(_config(tmp_path))])

    assert result.exit_code == 1
    assert "Cannot open package" in result.output
    assert list((tmp_path / "scratch").iterdir()) == []


def test_view_renders_entry_and_selected_page(tmp_path: Path) -> None:
    runner = CliRunner()
    package = tmp_path / "out.docf"
    assert runner.invoke(app, ["pack", str(_project(tmp_path)), "-o", str(package)]).exit_code == 0

    entry = runner.invoke(app, ["view", str(package)])
    assert entry.exit_code == 0, entry.output
    assert "Hello" in entry.output
    assert "Welcome aboard." in entry.output

    page = runner.invoke(app, ["view", str(package), "--page", "guide.md"])
    assert page.exit_code == 0, page.output
    assert "Guide page" in page.output

    missing = runner.invoke(app, ["view", str(package), "--page", "absent.md"])
    assert missing.exit_code == 1
    assert "Cannot display package" in missing.output
