"""Pydantic model and validation rules for the package manifest."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import ManifestValidationError

DEFAULT_VERSION = "1.0.0"
REQUIRED_FIELDS = ("title", "entryFile")


class Manifest(BaseModel):
    """Metadata document stored at the root of every package.

    ``entry_file`` is serialized as ``entryFile``. Unknown keys are kept as
    extra attributes so they survive a save/load cycle.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: str = Field(description="Human-readable package title.")
    entry_file: str = Field(
        alias="entryFile",
        description="Markdown file, relative to the payload folder, shown first.",
    )
    # Optional fields accept any JSON value; lint flags non-text ones.
    version: Any = Field(default=DEFAULT_VERSION)
    theme: Any = Field(default=None, description="Display hint such as 'light' or 'dark'.")
    author: Any = Field(default=None)

    @field_validator("version", mode="before")
    def _default_version(cls, value: Any) -> Any:
        if value is None:
            return DEFAULT_VERSION
        return _numeric_as_text(value)

    @field_validator("theme", "author", mode="before")
    def _coerce_text(cls, value: Any) -> Any:
        return _numeric_as_text(value)

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-ready mapping written to ``manifest.json``.

        Unset ``theme`` and ``author`` are omitted; unknown keys are written
        as stored, ``null`` values included.
        """
        document = self.model_dump(mode="json", by_alias=True)
        for name in ("theme", "author"):
            if document.get(name) is None:
                document.pop(name, None)
        return document


def _numeric_as_text(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


@dataclass(frozen=True, slots=True)
class ManifestValidation:
    """Outcome of :func:`validate_manifest`."""

    valid: bool
    error: str | None = None

    def __bool__(self) -> bool:
        return self.valid


def validate_manifest(candidate: Any) -> ManifestValidation:
    """Check that ``candidate`` carries a usable title and entry file.

    Accepts a mapping or a :class:`Manifest`. Never raises and performs no I/O.
    """
    if isinstance(candidate, Manifest):
        candidate = candidate.to_document()
    if candidate is None or not isinstance(candidate, Mapping):
        return ManifestValidation(False, "Manifest must be a valid JSON object")

    for name in REQUIRED_FIELDS:
        if not candidate.get(name):
            return ManifestValidation(False, f"Missing required field: {name}")

    title = candidate.get("title")
    if not isinstance(title, str) or not title.strip():
        return ManifestValidation(False, "Title must be a non-empty string")

    entry_file = candidate.get("entryFile")
    if not isinstance(entry_file, str) or not entry_file.strip():
        return ManifestValidation(False, "Entry file must be a non-empty string")

    return ManifestValidation(True)


def coerce_manifest(candidate: Any) -> Manifest:
    """Validate ``candidate`` and return it as a :class:`Manifest`.

    Raises:
        ManifestValidationError: when validation rejects the candidate.
    """
    outcome = validate_manifest(candidate)
    if not outcome.valid:
        raise ManifestValidationError(outcome.error)
    if isinstance(candidate, Manifest):
        return candidate
    return Manifest.model_validate(dict(candidate))
