"""Load manifests from extracted packages and check their entry files."""

from __future__ import annotations

import json
from pathlib import Path

from ..config import Config
from ..errors import EntryFileError, ManifestFormatError, ManifestNotFoundError
from .models import Manifest, coerce_manifest


def load_manifest(directory: Path, *, config: Config | None = None) -> Manifest:
    """Read and validate the manifest stored in ``directory``.

    Raises:
        ManifestNotFoundError: the manifest document is absent.
        ManifestFormatError: the document is not a JSON object.
        ManifestValidationError: required fields are missing or blank.
    """
    config = config or Config()
    name = config.manifest_filename
    path = Path(directory) / name
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestNotFoundError(f"{name} not found") from exc
    except IsADirectoryError as exc:
        raise ManifestFormatError(f"{name} is not a file") from exc
    except UnicodeDecodeError as exc:
        raise ManifestFormatError(f"{name} is not valid JSON") from exc

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestFormatError(f"{name} is not valid JSON") from exc

    if not isinstance(payload, dict):
        raise ManifestFormatError(f"{name} must contain a JSON object")

    return coerce_manifest(payload)


def validate_entry_file(payload_dir: Path, entry_file: str) -> Path:
    """Ensure ``entry_file`` names a regular file inside ``payload_dir``."""
    root = Path(payload_dir).resolve()
    candidate = (root / entry_file).resolve()
    try:
        candidate.relative_to(root)
    except ValueError:
        raise EntryFileError(f'Entry file "{entry_file}" not found in docs folder') from None

    if not candidate.exists():
        raise EntryFileError(f'Entry file "{entry_file}" not found in docs folder')
    if not candidate.is_file():
        raise EntryFileError(f'Entry file "{entry_file}" is not a file')
    return candidate
