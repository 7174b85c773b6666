"""CLI entrypoints for Docufier packaging tooling."""

import json
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown

from .archive import SkippedEntry, extract_package
from .config import Config, load_config
from .errors import DocufierError
from .manifests import load_manifest, validate_entry_file
from .packaging import ProgressUpdate, ViewerSession, export_package, read_payload_text
from .reporting import PackageSummary, summarize_package, write_summary
from .scaffold import ScaffoldError, scaffold_project
from .validation import IssueSeverity, PackageIssue, lint_source

console = Console()
app = typer.Typer(help="Package Markdown documentation into .docf archives and open them safely.")

ConfigPathOption = Annotated[
    str | None,
    typer.Option("--config", "-c", help="Path to a docufier.yml file or a folder containing one."),
]
ForceFlag = Annotated[
    bool,
    typer.Option("--force", "-f", help="Overwrite existing files if they already exist."),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """Docufier packaging toolkit."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


@app.command()
def pack(
    folder: Annotated[
        Path,
        typer.Argument(..., help="Source folder containing the docs/ directory."),
    ],
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Output .docf file path."),
    ],
    manifest_path: Annotated[
        Path | None,
        typer.Option("--manifest", "-m", help="Path to an existing manifest.json to embed."),
    ] = None,
    config_path: ConfigPathOption = None,
) -> None:
    """Package a documentation folder into a .docf file."""
    config = _load(config_path)
    source = folder.resolve()
    if not output.suffix:
        output = output.with_suffix(config.package_suffix)
    output = output.resolve()

    manifest: dict[str, Any] | None = None
    if manifest_path is not None:
        try:
            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            console.print(f'[bold red]Error[/]: Failed to load manifest from "{manifest_path}"')
            console.print(str(exc))
            raise typer.Exit(code=1) from exc

    console.print(f'[bold blue]Packaging[/]: "{source}"')
    console.print(f"[bold blue]Output[/]: {output}")

    try:
        result = export_package(source, output, manifest, config=config, progress=_print_progress)
    except DocufierError as exc:
        console.print(f"[bold red]Error[/]: {exc}")
        raise typer.Exit(code=1) from exc

    console.print(f"[bold green]Successfully created[/] {result.path}")
    console.print(f"  Title: {result.manifest.title}")
    console.print(f"  Entry: {result.manifest.entry_file}")


@app.command()
def unpack(
    package: Annotated[Path, typer.Argument(..., help="Package to extract.")],
    destination: Annotated[Path, typer.Argument(..., help="Directory to extract into.")],
    config_path: ConfigPathOption = None,
) -> None:
    """Extract a package into a directory and validate its manifest."""
    config = _load(config_path)
    if not package.is_file():
        console.print(f'[bold red]Error[/]: Package "{package}" not found')
        raise typer.Exit(code=1)

    try:
        result = extract_package(package, destination, config=config)
        manifest = load_manifest(destination, config=config)
        validate_entry_file(destination / config.payload_dir, manifest.entry_file)
    except DocufierError as exc:
        console.print(f"[bold red]Error[/]: {exc}")
        raise typer.Exit(code=1) from exc

    console.print(
        f"[bold green]Extracted[/]: {len(result.files)} file(s) into {result.destination}"
    )
    console.print(f"  Title: {manifest.title}")
    console.print(f"  Entry: {config.payload_dir}/{manifest.entry_file}")
    _print_skipped(result.skipped)


@app.command()
def inspect(
    package: Annotated[Path, typer.Argument(..., help="Package to inspect.")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Emit machine-readable JSON instead of human formatted output."),
    ] = False,
    report_path: Annotated[
        Path | None,
        typer.Option("--report", "-r", help="Optional path to write the JSON summary to."),
    ] = None,
    config_path: ConfigPathOption = None,
) -> None:
    """Open a package, summarize its contents and release it again."""
    config = _load(config_path)
    with ViewerSession(config) as session:
        try:
            opened = session.open(package)
        except DocufierError as exc:
            console.print(f"[bold red]Cannot open package[/]: {exc}")
            raise typer.Exit(code=1) from exc
        summary = summarize_package(package, opened, config=config)

    if report_path is not None:
        write_summary(summary, report_path)
        if not json_output:
            console.print(f"[bold green]Report written[/]: {report_path}")

    if json_output:
        console.print_json(data=summary.model_dump(mode="json"))
        return
    _print_summary(summary)


@app.command()
def view(
    package: Annotated[Path, typer.Argument(..., help="Package to display.")],
    page: Annotated[
        str | None,
        typer.Option("--page", "-p", help="Payload file to show instead of the entry file."),
    ] = None,
    config_path: ConfigPathOption = None,
) -> None:
    """Render a package's entry page in the terminal."""
    config = _load(config_path)
    with ViewerSession(config) as session:
        try:
            opened = session.open(package)
            text = read_payload_text(opened, page or opened.manifest.entry_file)
        except DocufierError as exc:
            console.print(f"[bold red]Cannot display package[/]: {exc}")
            raise typer.Exit(code=1) from exc
        console.rule(opened.manifest.title)
        console.print(Markdown(text))


@app.command()
def lint(
    folder: Annotated[Path, typer.Argument(..., help="Source folder to check.")],
    manifest_path: Annotated[
        Path | None,
        typer.Option("--manifest", "-m", help="Manifest that will be supplied at export time."),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Treat warnings as errors."),
    ] = False,
    config_path: ConfigPathOption = None,
) -> None:
    """Run checks for problems that would break or degrade an export."""
    config = _load(config_path)
    manifest: Any = None
    if manifest_path is not None:
        try:
            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            console.print(f'[bold red]Error[/]: Failed to load manifest from "{manifest_path}"')
            raise typer.Exit(code=1) from exc
        if not isinstance(manifest, dict):
            console.print("[bold red]Error[/]: Manifest must be a valid JSON object")
            raise typer.Exit(code=1)

    report = lint_source(folder, manifest=manifest, config=config)

    if not report.issues:
        console.print("[bold green]Lint clean[/]: no issues detected.")
        raise typer.Exit()

    for issue in sorted(report.issues, key=_lint_sort_key):
        style = "red" if issue.severity is IssueSeverity.ERROR else "yellow"
        location = issue.path
        if issue.pointer:
            location = f"{location} :: {issue.pointer}"
        console.print(f"[bold {style}]{issue.severity.name}[/] {location} - {issue.message}")

    console.print(
        f"[bold blue]Summary[/]: {report.error_count} error(s), {report.warning_count} warning(s) "
        f"across {report.file_count} file(s)."
    )

    exit_code = 0
    if report.error_count > 0 or (strict and report.warning_count > 0):
        exit_code = 1
    raise typer.Exit(code=exit_code)


@app.command()
def init(
    folder: Annotated[Path, typer.Argument(..., help="Folder to scaffold.")],
    title: Annotated[
        str | None,
        typer.Option("--title", "-t", help="Override the default title derived from the folder name."),
    ] = None,
    force: ForceFlag = False,
) -> None:
    """Create a documentation folder ready to be packed."""
    try:
        result = scaffold_project(folder, title=title, force=force)
    except ScaffoldError as exc:
        console.print(f"[bold red]Cannot scaffold[/]: {exc}")
        raise typer.Exit(code=1) from exc

    console.print(f"[bold green]Scaffold ready[/]: {folder}")
    for path in result.created:
        console.print(f"- {path.as_posix()} (new)")
    for path in result.updated:
        console.print(f"- {path.as_posix()} (updated)")
    if result.notes:
        console.print("[bold blue]Next steps[/]:")
        for note in result.notes:
            console.print(f"- {note}")


def _print_progress(update: ProgressUpdate) -> None:
    console.print(f"[dim]\\[{update.stage.value}][/] {update.message}")


def _print_skipped(skipped: list[SkippedEntry]) -> None:
    if not skipped:
        return
    console.print(f"[bold yellow]Skipped entries[/]: {len(skipped)}")
    for entry in skipped:
        console.print(f"- {entry.name} ({entry.reason})")


def _print_summary(summary: PackageSummary) -> None:
    manifest = summary.manifest
    console.print(f"[bold green]Package[/]: {summary.package}")
    console.print(f"  Title: {manifest.get('title')}")
    console.print(f"  Entry: {summary.entry_file}")
    console.print(f"  Version: {manifest.get('version')}")
    if manifest.get("author"):
        console.print(f"  Author: {manifest['author']}")
    if manifest.get("theme"):
        console.print(f"  Theme: {manifest['theme']}")
    console.print(
        f"[bold green]Payload[/]: {len(summary.markdown_files)} Markdown file(s), "
        f"{summary.asset_count} asset(s), {summary.total_bytes} byte(s)"
    )
    for name in summary.markdown_files:
        console.print(f"- {name}")
    if summary.skipped:
        console.print(f"[bold yellow]Skipped entries[/]: {len(summary.skipped)}")
        for entry in summary.skipped:
            console.print(f"- {entry.name} ({entry.reason})")


def _lint_sort_key(issue: PackageIssue) -> tuple[int, str, str]:
    severity_order = 0 if issue.severity is IssueSeverity.ERROR else 1
    pointer = issue.pointer or ""
    return (severity_order, issue.path, pointer)


def _load(path: str | None) -> Config:
    if path is None:
        return Config()
    try:
        return load_config(path)
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Config file not found: {path}") from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
