"""Utilities for scaffolding a new documentation source folder."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from .config import Config


class ScaffoldError(RuntimeError):
    """Raised when scaffolding cannot continue."""


@dataclass(slots=True)
class ScaffoldResult:
    """Details about filesystem writes performed during scaffolding."""

    created: list[Path] = field(default_factory=list)
    updated: list[Path] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def record(self, path: Path, existed: bool) -> None:
        if existed:
            self.updated.append(path)
        else:
            self.created.append(path)


def default_title(folder: Path) -> str:
    """Generate a human-friendly title from a folder name."""
    words = [word for word in re.split(r"[-_\s]+", folder.name) if word]
    if not words:
        return "Documentation"
    return " ".join(word[:1].upper() + word[1:] for word in words)


def scaffold_project(
    target: Path,
    *,
    title: str | None = None,
    force: bool = False,
    config: Config | None = None,
) -> ScaffoldResult:
    """Create a source folder with a payload directory and entry page."""
    config = config or Config()
    target = Path(target)
    if target.exists() and not target.is_dir():
        raise ScaffoldError(f"Path exists and is not a directory: {target}")

    title = title.strip() if title else ""
    if not title:
        title = default_title(target.resolve())

    payload = target / config.payload_dir
    payload.mkdir(parents=True, exist_ok=True)

    result = ScaffoldResult()
    readme = payload / "README.md"
    result.record(readme, _write_text(readme, _render_readme(title), force=force))

    result.notes.append(
        f"Add Markdown pages and assets under {payload.as_posix()}, then run "
        f"'docufier pack {target.as_posix()} -o {target.name or 'docs'}{config.package_suffix}'."
    )
    return result


def _render_readme(title: str) -> str:
    return (
        f"# {title}\n"
        "\n"
        "Start writing your documentation here.\n"
        "\n"
        "Link to other pages with relative paths, for example [Guide](guide.md).\n"
    )


def _write_text(path: Path, content: str, *, force: bool) -> bool:
    path.parent.mkdir(parents=True, exist_ok=True)
    existed = path.exists()
    if existed and not force:
        raise ScaffoldError(f"Path already exists: {path}")
    path.write_text(content, encoding="utf-8")
    return existed
