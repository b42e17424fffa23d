"""
Build stage base — the unit the orchestrators sequence.

Stage contract
──────────────
Every stage:
  - Reads the frozen BuildConfig and the output of earlier stages only.
  - Writes only inside its own part of the destination tree.
  - Returns a detail dict (counts, outputs) from ``run()``.
  - Records recoverable problems with ``warn()``; they land in the
    StageResult and the log but never change the exit code.
  - Raises for anything fatal. ``execute()`` marks the StageResult as
    "error" and re-raises, so the orchestrator can skip the rest.

Stage names in use:
  "clean"   — Remove the destination tree
  "styles"  — Compile style-sheet entries
  "markup"  — Include pass + path rewrite pass
  "assets"  — Mirror static resources
  "flip"    — Relative url() in compiled style-sheets (production)
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any

from sitepipe.core.models.build import BuildContext, StageInfo, StageResult
from sitepipe.core.models.config import BuildConfig


class MissingSourceError(Exception):
    """A required source document does not exist."""


class BuildStage(ABC):
    """Abstract base for build stages.

    Subclasses set ``name`` / ``label`` and implement ``run()``.
    """

    name: str = ""
    label: str = ""

    def __init__(self, config: BuildConfig) -> None:
        self.config = config
        self.warnings: list[str] = []
        self.logger = logging.getLogger(type(self).__module__)

    def info(self) -> StageInfo:
        return StageInfo(name=self.name, label=self.label)

    @abstractmethod
    async def run(self, ctx: BuildContext) -> dict[str, Any]:
        """Do the stage's work and return its detail dict."""

    def warn(self, message: str, *args: Any) -> None:
        """Record a recoverable problem (logged and kept on the result)."""
        text = message % args if args else message
        self.logger.warning(text)
        self.warnings.append(text)

    async def execute(self, ctx: BuildContext, result: StageResult | None = None) -> StageResult:
        """Run the stage, filling in status, duration, warnings and detail.

        Raises whatever ``run()`` raises, after marking the result.
        """
        result = result or StageResult(name=self.name, label=self.label)
        result.status = "running"
        self.warnings = result.warnings
        start = time.monotonic()
        try:
            result.detail = await self.run(ctx) or {}
            result.status = "done"
        except Exception as e:
            result.status = "error"
            result.error = str(e) or type(e).__name__
            raise
        finally:
            result.duration_ms = int((time.monotonic() - start) * 1000)
        return result
