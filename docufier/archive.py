"""Safe extraction and deterministic creation of ``.docf`` ZIP containers.

Extraction visits every entry in central-directory order and never writes:

- entries whose extension is on the configured denylist,
- entries whose target escapes the destination root (``..`` segments,
  absolute paths, drive letters),
- symbolic links.

Such entries are skipped rather than treated as errors so the rest of the
package can still be opened; they are logged and reported on the result.
Anything that breaks the archive stream itself aborts the whole operation.

Creation sorts entries and pins timestamps and permissions so identical
source trees produce byte-identical packages.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable

from .config import Config
from .errors import InputError, PackageIOError

logger = logging.getLogger(__name__)

ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
FILE_MODE = stat.S_IFREG | 0o644
COPY_CHUNK_SIZE = 1024 * 1024

SKIP_DENIED_EXTENSION = "denied-extension"
SKIP_OUTSIDE_DESTINATION = "outside-destination"
SKIP_SYMLINK = "symlink"

# Errors that mean the archive stream or the filesystem failed mid-operation.
_STREAM_ERRORS = (
    zipfile.BadZipFile,
    zipfile.LargeZipFile,
    zlib.error,
    EOFError,
    NotImplementedError,
    OSError,
)


@dataclass(frozen=True, slots=True)
class SkippedEntry:
    """Archive member that extraction refused to write."""

    name: str
    reason: str


@dataclass(slots=True)
class ExtractionResult:
    """Summary of an extraction run."""

    destination: Path
    files: list[Path] = field(default_factory=list)
    directories: list[Path] = field(default_factory=list)
    skipped: list[SkippedEntry] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


@dataclass(slots=True)
class CreationResult:
    """Details about a freshly written package."""

    path: Path
    entries: list[str] = field(default_factory=list)
    size: int = 0


def is_denied(name: str, denied_extensions: Iterable[str]) -> bool:
    """Return True when the entry's extension is on the denylist (case-insensitive)."""
    normalized = name.replace("\\", "/").rstrip("/")
    suffix = PurePosixPath(normalized).suffix.lower()
    return bool(suffix) and suffix in {ext.lower() for ext in denied_extensions}


def is_symlink_entry(info: zipfile.ZipInfo) -> bool:
    """Detect symlinks stored with Unix mode bits in ``external_attr``."""
    unix_mode = (info.external_attr >> 16) & 0xFFFF
    return stat.S_ISLNK(unix_mode)


def resolve_member_path(root: Path, name: str) -> Path | None:
    """Resolve an archive member name under ``root``.

    ``root`` must already be resolved. Returns None when the member would land
    outside ``root``.
    """
    normalized = name.replace("\\", "/")
    if not normalized or normalized.startswith("/"):
        return None
    if len(normalized) > 1 and normalized[1] == ":":
        return None

    target = (root / normalized).resolve()
    try:
        target.relative_to(root)
    except ValueError:
        return None
    return target


def extract_package(
    package_path: Path,
    destination: Path,
    *,
    config: Config | None = None,
) -> ExtractionResult:
    """Extract ``package_path`` into ``destination`` applying the safety checks.

    Raises:
        PackageIOError: the package cannot be read or a file cannot be written.
    """
    config = config or Config()
    package_path = Path(package_path)
    destination = Path(destination)
    try:
        destination.mkdir(parents=True, exist_ok=True)
        root = destination.resolve()
        result = ExtractionResult(destination=root)
        with zipfile.ZipFile(package_path, "r") as archive:
            for info in archive.infolist():
                _extract_member(archive, info, root, config, result)
    except _STREAM_ERRORS as exc:
        raise PackageIOError(f"Failed to extract {package_path}: {exc}") from exc
    except RuntimeError as exc:
        # zipfile signals encrypted members with RuntimeError.
        raise PackageIOError(f"Failed to extract {package_path}: {exc}") from exc

    logger.debug(
        "Extracted %d file(s) from %s into %s (%d skipped)",
        len(result.files),
        package_path,
        root,
        result.skipped_count,
    )
    return result


def _extract_member(
    archive: zipfile.ZipFile,
    info: zipfile.ZipInfo,
    root: Path,
    config: Config,
    result: ExtractionResult,
) -> None:
    name = info.filename

    if is_denied(name, config.denied_extensions):
        _skip(result, name, SKIP_DENIED_EXTENSION)
        return

    target = resolve_member_path(root, name)
    is_directory = name.replace("\\", "/").endswith("/")
    if target is None or (target == root and not is_directory):
        _skip(result, name, SKIP_OUTSIDE_DESTINATION)
        return

    if is_symlink_entry(info):
        _skip(result, name, SKIP_SYMLINK)
        return

    if is_directory:
        target.mkdir(parents=True, exist_ok=True)
        result.directories.append(target)
        return

    target.parent.mkdir(parents=True, exist_ok=True)
    with archive.open(info, "r") as source, target.open("wb") as sink:
        shutil.copyfileobj(source, sink, COPY_CHUNK_SIZE)
    result.files.append(target)


def _skip(result: ExtractionResult, name: str, reason: str) -> None:
    logger.warning("Skipping archive entry %r (%s)", name, reason)
    result.skipped.append(SkippedEntry(name=name, reason=reason))


def create_package(
    source_dir: Path,
    package_path: Path,
    *,
    config: Config | None = None,
) -> CreationResult:
    """Write every file under ``source_dir`` into a new ZIP at ``package_path``.

    Paths are stored relative to ``source_dir`` without a wrapping folder.
    The result is returned only after the archive has been closed.

    Raises:
        InputError: ``source_dir`` is not a directory.
        PackageIOError: reading a source file or writing the archive failed.
    """
    config = config or Config()
    source_dir = Path(source_dir)
    package_path = Path(package_path)
    if not source_dir.is_dir():
        raise InputError(f'"{source_dir}" is not a directory')

    result = CreationResult(path=package_path)
    try:
        package_path.parent.mkdir(parents=True, exist_ok=True)
        excluded = package_path.resolve()
        members = _collect_members(source_dir, excluded)
        with zipfile.ZipFile(
            package_path,
            "w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=config.compression_level,
        ) as archive:
            for arcname, path in members:
                info = _member_info(arcname, config.compression_level)
                large = path.stat().st_size > zipfile.ZIP64_LIMIT
                with path.open("rb") as source, archive.open(info, "w", force_zip64=large) as sink:
                    shutil.copyfileobj(source, sink, COPY_CHUNK_SIZE)
                result.entries.append(arcname)
        result.size = package_path.stat().st_size
    except _STREAM_ERRORS as exc:
        _discard_partial(package_path)
        raise PackageIOError(f"Failed to create {package_path}: {exc}") from exc

    logger.debug("Wrote %d entries to %s (%d bytes)", len(result.entries), package_path, result.size)
    return result


def _collect_members(source_dir: Path, excluded: Path) -> list[tuple[str, Path]]:
    members: list[tuple[str, Path]] = []
    for dirpath, _dirnames, filenames in os.walk(source_dir):
        directory = Path(dirpath)
        for filename in filenames:
            path = directory / filename
            if path.is_symlink() or not path.is_file():
                continue
            if path.resolve() == excluded:
                continue
            arcname = path.relative_to(source_dir).as_posix()
            members.append((arcname, path))
    members.sort(key=lambda item: item[0])
    return members


def _member_info(arcname: str, compression_level: int) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(arcname, date_time=ZIP_EPOCH)
    info.create_system = 3
    info.external_attr = FILE_MODE << 16
    info.compress_type = zipfile.ZIP_DEFLATED
    # ZipFile.open("w") takes the level from the ZipInfo, as writestr does.
    info._compresslevel = compression_level
    return info


def _discard_partial(package_path: Path) -> None:
    try:
        package_path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove partial package %s: %s", package_path, exc)
