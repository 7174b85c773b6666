"""Schema validation helpers and lint diagnostics for source folders."""

from __future__ import annotations

import importlib
import json
from dataclasses import dataclass, field
from enum import Enum, auto
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping, Protocol, cast

from .archive import is_denied
from .config import Config
from .manifests import Manifest, list_markdown_files, validate_manifest


class _Validator(Protocol):
    def iter_errors(self, instance: Any) -> Iterator[Any]:
        ...


ValidatorFactory = Callable[[Any], _Validator]

_jsonschema = importlib.import_module("jsonschema")
Draft202012Validator = cast(ValidatorFactory, getattr(_jsonschema, "Draft202012Validator"))

SCHEMA_PACKAGE = "docufier.schemas"
MANIFEST_SCHEMA_NAME = "manifest.schema.json"


class IssueSeverity(Enum):
    """Severity level for lint issues."""

    ERROR = auto()
    WARNING = auto()


@dataclass(slots=True)
class PackageIssue:
    """Represents a lint finding for a source folder."""

    path: str
    message: str
    severity: IssueSeverity
    pointer: str | None = None


@dataclass(slots=True)
class LintReport:
    """Aggregate lint results for a source folder."""

    issues: list[PackageIssue] = field(default_factory=list)
    file_count: int = 0
    markdown_count: int = 0

    def add(self, issue: PackageIssue) -> None:
        self.issues.append(issue)

    def error(self, path: str, message: str, pointer: str | None = None) -> None:
        self.add(PackageIssue(path=path, message=message, severity=IssueSeverity.ERROR, pointer=pointer))

    def warning(self, path: str, message: str, pointer: str | None = None) -> None:
        self.add(PackageIssue(path=path, message=message, severity=IssueSeverity.WARNING, pointer=pointer))

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity is IssueSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity is IssueSeverity.WARNING)


def schema_issues(document: Mapping[str, Any]) -> list[tuple[str, str]]:
    """Return ``(pointer, message)`` pairs for schema violations in ``document``."""
    validator = _get_manifest_validator()
    errors = sorted(validator.iter_errors(dict(document)), key=lambda err: [str(part) for part in err.path])
    return [("/".join(str(part) for part in err.path), err.message) for err in errors]


def lint_source(
    source_folder: Path,
    *,
    manifest: Manifest | Mapping[str, Any] | None = None,
    config: Config | None = None,
) -> LintReport:
    """Check a folder for problems that would break or degrade an export."""
    config = config or Config()
    report = LintReport()
    source = Path(source_folder)

    if not source.is_dir():
        report.error(str(source), "Source folder not found or not a directory.")
        return report

    payload = source / config.payload_dir
    if not payload.is_dir():
        report.error(str(payload), f'Missing "{config.payload_dir}" folder.')
        return report

    markdown_files = list_markdown_files(payload, config)
    report.markdown_count = len(markdown_files)
    if not markdown_files:
        report.error(str(payload), f"No Markdown files found in {config.payload_dir} folder.")

    _lint_manifest(source, payload, manifest, config, report)
    _lint_files(source, payload, config, report)
    return report


def _lint_manifest(
    source: Path,
    payload: Path,
    manifest: Manifest | Mapping[str, Any] | None,
    config: Config,
    report: LintReport,
) -> None:
    manifest_path = source / config.manifest_filename
    label = str(manifest_path)
    document: Any = None

    if manifest is not None:
        label = "<supplied manifest>"
        document = manifest.to_document() if isinstance(manifest, Manifest) else dict(manifest)
    elif manifest_path.is_file():
        report.warning(
            label,
            "Existing manifest is not used unless passed explicitly; export generates one.",
        )
        try:
            document = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            report.error(label, f"{config.manifest_filename} is not valid JSON")
            return
    else:
        return

    outcome = validate_manifest(document)
    if not outcome.valid:
        report.error(label, outcome.error or "Invalid manifest.")
        return

    for pointer, message in schema_issues(document):
        report.warning(label, message, pointer=pointer or None)

    entry = (payload / document["entryFile"]).resolve()
    if not _is_within(entry, payload.resolve()) or not entry.is_file():
        report.error(
            label,
            f'Entry file "{document["entryFile"]}" not found in {config.payload_dir} folder',
            pointer="entryFile",
        )


def _lint_files(source: Path, payload: Path, config: Config, report: LintReport) -> None:
    manifest_path = source / config.manifest_filename
    for path in _iter_files(source):
        report.file_count += 1
        relative = path.relative_to(source).as_posix()
        if path == manifest_path:
            continue
        if is_denied(path.name, config.denied_extensions):
            report.warning(relative, "File type is blocked and will be dropped when the package is opened.")
            continue
        if not _is_within(path, payload):
            report.warning(relative, f"File lies outside the {config.payload_dir} folder but will be packaged.")
            continue
        if path.suffix.lower() not in config.allowed_extensions:
            report.warning(relative, f"Extension '{path.suffix or '(none)'}' is not a recognized documentation asset.")


@lru_cache(maxsize=1)
def _get_manifest_validator() -> _Validator:
    schema = _load_schema(MANIFEST_SCHEMA_NAME)
    return Draft202012Validator(schema)


def _load_schema(name: str) -> dict[str, Any]:
    with resources.files(SCHEMA_PACKAGE).joinpath(name).open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"Schema '{name}' must be a JSON object.")
    return cast(dict[str, Any], payload)


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def _iter_files(root: Path) -> Iterator[Path]:
    directories = sorted(p for p in root.rglob("*") if p.is_dir())
    directories.insert(0, root)

    for directory in directories:
        for path in sorted(directory.iterdir()):
            if path.is_file():
                yield path
