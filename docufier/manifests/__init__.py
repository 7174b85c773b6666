"""Manifest data structures and helpers."""

from .generator import generate_manifest, list_markdown_files, require_payload_dir, select_entry_file
from .models import Manifest, ManifestValidation, coerce_manifest, validate_manifest
from .reader import load_manifest, validate_entry_file
from .writer import save_manifest

__all__ = [
    "Manifest",
    "ManifestValidation",
    "coerce_manifest",
    "generate_manifest",
    "list_markdown_files",
    "load_manifest",
    "require_payload_dir",
    "save_manifest",
    "select_entry_file",
    "validate_entry_file",
    "validate_manifest",
]
