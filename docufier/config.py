from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = "docufier.yml"


def _default_denied_extensions() -> list[str]:
    return [".exe", ".bat", ".cmd", ".sh", ".ps1", ".app", ".dmg", ".pkg", ".msi", ".com"]


def _default_allowed_extensions() -> list[str]:
    return [
        ".md",
        ".markdown",
        ".png",
        ".jpg",
        ".jpeg",
        ".gif",
        ".svg",
        ".webp",
        ".css",
        ".js",
        ".json",
        ".txt",
    ]


def _normalize_extensions(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    normalized: list[str] = []
    for item in value:
        text = str(item).strip().lower()
        if not text:
            continue
        if not text.startswith("."):
            text = f".{text}"
        if text not in normalized:
            normalized.append(text)
    return normalized


class Config(BaseModel):
    """Settings shared by the export, open and lint flows."""

    payload_dir: str = Field(
        default="docs",
        description="Name of the documentation folder inside sources and packages.",
    )
    manifest_filename: str = Field(
        default="manifest.json",
        description="Filename of the manifest document stored at the package root.",
    )
    package_suffix: str = Field(default=".docf")
    temp_prefix: str = Field(
        default="docufier-",
        description="Reserved prefix marking working directories created by open_package.",
    )
    scratch_dir: Path | None = Field(
        default=None,
        description="Parent directory for working directories (system temp dir when unset).",
    )
    compression_level: int = Field(default=9, ge=0, le=9)
    denied_extensions: list[str] = Field(
        default_factory=_default_denied_extensions,
        description="Archive entries with these extensions are never written during extraction.",
    )
    allowed_extensions: list[str] = Field(
        default_factory=_default_allowed_extensions,
        description="Advisory allowlist for payload assets; lint warns about anything else.",
    )
    markdown_extensions: list[str] = Field(default_factory=lambda: [".md", ".markdown"])
    default_version: str = Field(default="1.0.0")
    default_theme: str = Field(default="light")

    @field_validator("denied_extensions", "allowed_extensions", "markdown_extensions", mode="before")
    def _normalize_extension_lists(cls, value: Any) -> list[str]:
        return _normalize_extensions(value)

    @field_validator("payload_dir", "manifest_filename", "temp_prefix")
    def _require_plain_name(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("Value must be a non-empty name.")
        if "/" in text or "\\" in text or text in {".", ".."}:
            raise ValueError(f"'{text}' must be a plain name without path separators.")
        return text

    @field_validator("package_suffix")
    def _normalize_suffix(cls, value: str) -> str:
        text = value.strip().lower()
        if not text:
            return ".docf"
        if not text.startswith("."):
            text = f".{text}"
        return text

    @field_validator("scratch_dir", mode="before")
    def _ensure_optional_path(cls, value: Any) -> Path | None:
        if value is None or value == "":
            return None
        return Path(value)

    def is_markdown(self, name: str) -> bool:
        return Path(name).suffix.lower() in self.markdown_extensions


def load_config(path: str | Path) -> Config:
    """Load configuration and resolve relative paths based on the config location.

    The ``path`` argument may point to a file (e.g., ``/docs/docufier.yml``) or a
    directory containing that file. A directory without a config file yields
    the defaults. A relative ``scratch_dir`` is interpreted relative to the
    directory holding the config file.
    """
    candidate = Path(path)
    data: dict[str, Any] = {}
    if candidate.is_dir():
        config_file = candidate / CONFIG_FILENAME
        if config_file.exists():
            with config_file.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        base_dir = candidate.resolve()
    else:
        if not candidate.exists():
            raise FileNotFoundError(candidate)
        with candidate.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        base_dir = candidate.parent.resolve()

    if not isinstance(data, dict):
        raise ValueError(f"Configuration at {candidate} must be a mapping.")

    cfg = Config(**data)
    if cfg.scratch_dir is not None and not cfg.scratch_dir.is_absolute():
        cfg.scratch_dir = (base_dir / cfg.scratch_dir).resolve()
    return cfg
