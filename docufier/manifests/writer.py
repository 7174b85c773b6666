"""Persistence helpers for the manifest document."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..config import Config
from .models import Manifest, coerce_manifest


def save_manifest(directory: Path, manifest: Manifest | dict[str, Any], *, config: Config | None = None) -> Path:
    """Validate ``manifest`` and write it as pretty-printed JSON into ``directory``."""
    config = config or Config()
    resolved = coerce_manifest(manifest)
    path = Path(directory) / config.manifest_filename
    with path.open("w", encoding="utf-8") as handle:
        json.dump(resolved.to_document(), handle, ensure_ascii=False, indent=2)
        handle.write("\n")
    return path
