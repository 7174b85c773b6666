"""Summaries of opened packages for inspection output."""

from __future__ import annotations

import json
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from .config import Config
from .packaging import OpenedPackage


class SkippedEntryStats(BaseModel):
    name: str
    reason: str


class PackageSummary(BaseModel):
    package: str
    inspected_at: datetime
    manifest: dict[str, Any]
    entry_file: str
    markdown_files: list[str] = Field(default_factory=list)
    asset_count: int = 0
    total_bytes: int = 0
    extensions: dict[str, int] = Field(default_factory=dict)
    skipped: list[SkippedEntryStats] = Field(default_factory=list)

    @property
    def file_count(self) -> int:
        return len(self.markdown_files) + self.asset_count


def summarize_package(
    package_path: Path,
    opened: OpenedPackage,
    *,
    config: Config | None = None,
) -> PackageSummary:
    config = config or Config()
    payload = opened.payload_path
    markdown: list[str] = []
    assets = 0
    total_bytes = 0
    extensions: Counter[str] = Counter()

    for path in sorted(payload.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(payload).as_posix()
        total_bytes += path.stat().st_size
        extensions[path.suffix.lower() or "(none)"] += 1
        if config.is_markdown(path.name):
            markdown.append(relative)
        else:
            assets += 1

    return PackageSummary(
        package=Path(package_path).as_posix(),
        inspected_at=datetime.now(timezone.utc),
        manifest=opened.manifest.to_document(),
        entry_file=opened.manifest.entry_file,
        markdown_files=markdown,
        asset_count=assets,
        total_bytes=total_bytes,
        extensions=dict(sorted(extensions.items())),
        skipped=[SkippedEntryStats(name=entry.name, reason=entry.reason) for entry in opened.skipped],
    )


def write_summary(summary: PackageSummary, target: Path) -> Path:
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        json.dump(summary.model_dump(mode="json"), handle, ensure_ascii=False, indent=2)
    return target
