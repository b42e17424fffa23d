"""
Build models — modes, locations, artifacts and stage results.

Pipeline model
──────────────
The orchestrator declares an ordered list of **named stages** per path
mode. Each stage:
  - Reads only the configuration and the output of earlier stages.
  - Writes only inside its own subtree of the destination directory.
  - Reports its duration, status, warnings and a detail dict.

A fatal stage error stops the pipeline; the remaining stages are
recorded as "skipped".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any


class PathMode(StrEnum):
    """Which coordinate system a build pass targets."""

    DEVELOPMENT = "development"     # root-relative absolute (/assets/...)
    PRODUCTION = "production"       # parent-relative (./assets/, ../assets/)


class FileLocation(StrEnum):
    """Where a document sits in the output tree."""

    ROOT = "root"                   # {dist}/index.html
    PAGE = "page"                   # {dist}/html/*.html


class ArtifactState(StrEnum):
    DECLARED = "declared"
    PRESENT = "present"
    MISSING = "missing"


ENVIRONMENTS = ("development", "production")


@dataclass(frozen=True)
class BuildContext:
    """Per-invocation build settings handed to every stage."""

    mode: PathMode
    environment: str = "development"

    @property
    def is_development(self) -> bool:
        return self.environment != "production"


@dataclass
class BuildArtifact:
    """A file a stage expects its producer to write."""

    path: Path
    expected: bool = True
    state: ArtifactState = ArtifactState.DECLARED

    @property
    def present(self) -> bool:
        return self.state == ArtifactState.PRESENT


@dataclass
class CopyReport:
    """Per-category copy counters for the asset stage."""

    category: str
    copied: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"category": self.category, "copied": self.copied, "failed": self.failed}


@dataclass
class StageInfo:
    """Declaration of a pipeline stage (before execution)."""

    name: str                           # Machine name: "styles", "markup", etc.
    label: str                          # Human label: "Compile style-sheets"


@dataclass
class StageResult:
    """Result of executing one pipeline stage."""

    name: str
    label: str
    status: str = "pending"             # "pending" | "running" | "done" | "error" | "skipped"
    duration_ms: int = 0
    warnings: list[str] = field(default_factory=list)
    error: str = ""
    detail: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "label": self.label,
            "status": self.status,
            "duration_ms": self.duration_ms,
            "warnings": list(self.warnings),
            "error": self.error,
            "detail": self.detail,
        }


@dataclass
class PipelineResult:
    """Result of a full pipeline execution."""

    mode: PathMode
    environment: str
    stages: list[StageResult] = field(default_factory=list)
    ok: bool = False
    total_duration_ms: int = 0
    output_dir: str = ""

    @property
    def warnings(self) -> list[str]:
        return [w for stage in self.stages for w in stage.warnings]

    def stage(self, name: str) -> StageResult | None:
        """Look up a stage result by name."""
        for sr in self.stages:
            if sr.name == name:
                return sr
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "mode": str(self.mode),
            "environment": self.environment,
            "total_duration_ms": self.total_duration_ms,
            "output_dir": self.output_dir,
            "stages": [sr.to_dict() for sr in self.stages],
        }
