"""Export folders into packages and open packages into working directories."""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping

from .archive import SkippedEntry, create_package, extract_package
from .config import Config
from .errors import DocufierError, InputError, PackageIOError
from .manifests import (
    Manifest,
    coerce_manifest,
    generate_manifest,
    list_markdown_files,
    load_manifest,
    require_payload_dir,
    save_manifest,
    validate_entry_file,
)

logger = logging.getLogger(__name__)


class ExportStage(str, Enum):
    """Named steps reported while exporting a package."""

    SCANNING = "scanning"
    VALIDATING = "validating"
    CREATING = "creating"
    COMPRESSING = "compressing"
    COMPLETE = "complete"

    @property
    def message(self) -> str:
        return _STAGE_MESSAGES[self]


_STAGE_MESSAGES = {
    ExportStage.SCANNING: "Scanning folder structure...",
    ExportStage.VALIDATING: "Validating documentation...",
    ExportStage.CREATING: "Creating manifest...",
    ExportStage.COMPRESSING: "Compressing files...",
    ExportStage.COMPLETE: "Complete!",
}


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    """Stage notification emitted during an export."""

    stage: ExportStage
    message: str


ProgressCallback = Callable[[ProgressUpdate], None]


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Outcome of :func:`export_package`."""

    path: Path
    manifest: Manifest


@dataclass(slots=True)
class OpenedPackage:
    """A package extracted into its own working directory."""

    working_dir: Path
    manifest: Manifest
    payload_path: Path
    skipped: list[SkippedEntry] = field(default_factory=list)

    @property
    def entry_path(self) -> Path:
        return self.payload_path / self.manifest.entry_file


def export_package(
    source_folder: Path | str,
    output_path: Path | str,
    manifest: Manifest | Mapping[str, Any] | None = None,
    *,
    config: Config | None = None,
    progress: ProgressCallback | None = None,
) -> ExportResult:
    """Package ``source_folder`` into ``output_path``.

    When ``manifest`` is omitted one is generated from the folder layout. The
    manifest is written into the source folder only for the duration of the
    archive build.

    Raises:
        InputError: the folder layout or the supplied manifest is unusable.
        PackageIOError: the archive could not be written.
    """
    config = config or Config()
    source = Path(source_folder)
    output = Path(output_path)

    if not source.exists():
        raise InputError(f'Folder "{source}" not found')
    if not source.is_dir():
        raise InputError(f'"{source}" is not a directory')

    _notify(progress, ExportStage.SCANNING)
    try:
        payload = require_payload_dir(source, config)
    except InputError as exc:
        if (source / config.payload_dir).exists():
            raise
        raise InputError(
            f"{config.payload_dir} folder not found. Please ensure your documentation "
            f'is in a "{config.payload_dir}" folder.'
        ) from exc

    _notify(progress, ExportStage.VALIDATING)
    try:
        markdown_files = list_markdown_files(payload, config)
    except OSError as exc:
        raise PackageIOError(f"Unable to scan {payload}: {exc}") from exc
    if not markdown_files:
        raise InputError(f"No Markdown files found in {config.payload_dir} folder")

    _notify(progress, ExportStage.CREATING)
    manifest_path = source / config.manifest_filename
    try:
        if manifest is not None:
            resolved = coerce_manifest(manifest)
            validate_entry_file(payload, resolved.entry_file)
        else:
            resolved = generate_manifest(source, config=config)
        previous = manifest_path.read_bytes() if manifest_path.is_file() else None
    except OSError as exc:
        raise PackageIOError(f"Unable to prepare {config.manifest_filename}: {exc}") from exc

    try:
        try:
            save_manifest(source, resolved, config=config)
        except OSError as exc:
            raise PackageIOError(f"Unable to write {config.manifest_filename}: {exc}") from exc
        _notify(progress, ExportStage.COMPRESSING)
        create_package(source, output, config=config)
    finally:
        _remove_transient_manifest(manifest_path, previous)

    _notify(progress, ExportStage.COMPLETE)
    return ExportResult(path=output, manifest=resolved)


def open_package(package_path: Path | str, *, config: Config | None = None) -> OpenedPackage:
    """Extract ``package_path`` into a fresh working directory and validate it.

    The working directory is removed again if any step fails.

    Raises:
        InputError: the package is missing, or its manifest or entry file is invalid.
        ManifestFormatError: the manifest is not a JSON object.
        PackageIOError: the archive is corrupt or cannot be extracted.
    """
    config = config or Config()
    package = Path(package_path)
    if not package.exists():
        raise InputError(f'Package "{package}" not found')
    if not package.is_file():
        raise InputError(f'"{package}" is not a file')

    working_dir = create_working_dir(config)
    try:
        extraction = extract_package(package, working_dir, config=config)
        manifest = load_manifest(working_dir, config=config)
        payload_path = working_dir / config.payload_dir
        validate_entry_file(payload_path, manifest.entry_file)
    except DocufierError:
        close_working_dir(working_dir, config=config)
        raise
    except OSError as exc:
        close_working_dir(working_dir, config=config)
        raise PackageIOError(f"Failed to open {package}: {exc}") from exc

    logger.info("Opened %s into %s", package, working_dir)
    return OpenedPackage(
        working_dir=working_dir,
        manifest=manifest,
        payload_path=payload_path,
        skipped=list(extraction.skipped),
    )


def create_working_dir(config: Config | None = None) -> Path:
    """Create a uniquely named directory tagged with the reserved prefix."""
    config = config or Config()
    scratch = config.scratch_dir
    try:
        if scratch is not None:
            scratch.mkdir(parents=True, exist_ok=True)
        created = tempfile.mkdtemp(prefix=config.temp_prefix, dir=scratch)
    except OSError as exc:
        raise PackageIOError(f"Unable to create working directory: {exc}") from exc
    return Path(created)


def close_working_dir(working_dir: Path | str | None, *, config: Config | None = None) -> bool:
    """Remove a working directory created by :func:`open_package`.

    Returns True when something was removed. Calling it again, or with a
    directory that is already gone, is a no-op. Directories whose name does
    not carry the reserved prefix are never touched.
    """
    if working_dir is None:
        return False
    config = config or Config()
    path = Path(working_dir)
    if not path.name.startswith(config.temp_prefix):
        logger.warning("Refusing to remove %s: not a working directory", path)
        return False
    if not path.exists():
        return False
    try:
        shutil.rmtree(path)
    except OSError as exc:
        logger.warning("Error cleaning up working directory %s: %s", path, exc)
        return False
    logger.debug("Removed working directory %s", path)
    return True


def read_payload_text(opened: OpenedPackage, relative: str) -> str:
    """Return the text of a payload file, refusing paths outside the payload."""
    target = _payload_target(opened, relative)
    if not target.is_file():
        raise InputError(f'"{relative}" not found in {opened.payload_path.name} folder')
    try:
        return target.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise PackageIOError(f"Unable to read {relative}: {exc}") from exc


def list_payload_files(opened: OpenedPackage, subdir: str = "") -> list[str]:
    """List the names of regular files in a payload subdirectory."""
    target = _payload_target(opened, subdir)
    if not target.is_dir():
        raise InputError(f'"{subdir}" is not a directory in the payload')
    return sorted(entry.name for entry in target.iterdir() if entry.is_file())


class ViewerSession:
    """Tracks the single package a viewer currently has open.

    Opening a package releases the previous working directory first; leaving
    the context manager releases the current one.
    """

    def __init__(self, config: Config | None = None) -> None:
        self._config = config or Config()
        self._current: OpenedPackage | None = None

    @property
    def current(self) -> OpenedPackage | None:
        return self._current

    def open(self, package_path: Path | str) -> OpenedPackage:
        self.close()
        self._current = open_package(package_path, config=self._config)
        return self._current

    def close(self) -> None:
        current, self._current = self._current, None
        if current is not None:
            close_working_dir(current.working_dir, config=self._config)

    def __enter__(self) -> "ViewerSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _payload_target(opened: OpenedPackage, relative: str) -> Path:
    root = opened.payload_path.resolve()
    target = (root / relative).resolve()
    try:
        target.relative_to(root)
    except ValueError:
        raise InputError(f'"{relative}" is outside the {opened.payload_path.name} folder') from None
    return target


def _notify(progress: ProgressCallback | None, stage: ExportStage) -> None:
    logger.info("[%s] %s", stage.value, stage.message)
    if progress is None:
        return
    try:
        progress(ProgressUpdate(stage=stage, message=stage.message))
    except Exception:  # noqa: BLE001
        logger.warning("Progress observer failed during %s", stage.value, exc_info=True)


def _remove_transient_manifest(path: Path, previous: bytes | None = None) -> None:
    # A manifest that was already in the source folder is put back as it was.
    try:
        if previous is None:
            path.unlink(missing_ok=True)
        else:
            path.write_bytes(previous)
    except OSError as exc:
        logger.warning("Could not remove transient manifest %s: %s", path, exc)
