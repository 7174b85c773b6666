"""Synthesize a manifest from the layout of a source folder."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Sequence

from ..config import Config
from ..errors import InputError
from .models import Manifest

logger = logging.getLogger(__name__)

PREFERRED_ENTRY_NAMES = ("readme.md", "index.md")


def _sort_key(name: str) -> tuple[str, str]:
    return (name.casefold(), name)


def require_payload_dir(source_folder: Path, config: Config) -> Path:
    """Return the payload folder inside ``source_folder`` or raise :class:`InputError`."""
    payload = Path(source_folder) / config.payload_dir
    if not payload.exists():
        raise InputError(f"{config.payload_dir} folder not found")
    if not payload.is_dir():
        raise InputError(f"{config.payload_dir} is not a directory")
    return payload


def list_markdown_files(payload_dir: Path, config: Config | None = None) -> list[str]:
    """List Markdown file names directly inside ``payload_dir``.

    Names are ordered case-insensitively, with the exact name breaking ties.
    """
    config = config or Config()
    names = [
        entry.name
        for entry in Path(payload_dir).iterdir()
        if config.is_markdown(entry.name) and entry.is_file()
    ]
    return sorted(names, key=_sort_key)


def select_entry_file(markdown_files: Sequence[str]) -> str:
    """Pick the entry file: README.md, then index.md, then the first name in sort order."""
    if not markdown_files:
        raise InputError("No Markdown files to choose an entry file from")
    ordered = sorted(markdown_files, key=_sort_key)
    for preferred in PREFERRED_ENTRY_NAMES:
        for name in ordered:
            if name.lower() == preferred:
                return name
    return ordered[0]


def generate_manifest(source_folder: Path, *, config: Config | None = None) -> Manifest:
    """Build a manifest for ``source_folder`` when the caller supplied none."""
    config = config or Config()
    source_folder = Path(source_folder)
    payload = require_payload_dir(source_folder, config)

    markdown_files = list_markdown_files(payload, config)
    if not markdown_files:
        raise InputError(f"No Markdown files found in {config.payload_dir} folder")

    entry_file = select_entry_file(markdown_files)
    title = Path(os.path.abspath(source_folder)).name
    logger.debug("Generated manifest for %s with entry file %s", source_folder, entry_file)
    return Manifest(
        title=title,
        entry_file=entry_file,
        version=config.default_version,
        theme=config.default_theme,
    )
