"""
Build orchestrator — sequences the stages for one PathMode.

Pipelines
─────────
  DEVELOPMENT   clean → styles → (markup ∥ assets)
  PRODUCTION    clean → styles → assets → markup → flip

Markup and assets write disjoint subtrees, so development runs them
concurrently. Production runs strictly in order and finishes by making
the compiled style-sheets' alias url() references relative.

A fatal error marks its stage "error", every stage not yet run
"skipped", and raises :class:`BuildError` carrying the PipelineResult.
Output written by earlier stages stays on disk.

The single-stage entry points (``run_styles``, ``run_markup``,
``run_assets``) are what the watch loop re-invokes.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from sitepipe.core.models.build import (
    BuildContext,
    PathMode,
    PipelineResult,
    StageInfo,
    StageResult,
)
from sitepipe.core.models.config import BuildConfig
from sitepipe.core.services.collaborators.file_include import (
    FileIncludeProcessor,
    TemplateIncluder,
)
from sitepipe.core.services.collaborators.style_compiler import (
    SassCliCompiler,
    StyleCompiler,
)
from sitepipe.core.services.file_waiter import FileWaiter
from sitepipe.core.services.path_rewriter import PathRewriter
from sitepipe.core.services.stages import (
    AssetStage,
    BuildStage,
    CleanStage,
    MarkupBuildStage,
    MissingSourceError,
    StyleBuildStage,
    StylePathFlipStage,
)

logger = logging.getLogger(__name__)

__all__ = ["BuildError", "BuildOrchestrator", "MissingSourceError"]


class BuildError(Exception):
    """A build stopped on a fatal stage error.

    ``result`` holds the per-stage outcome up to and including the
    failing stage (the rest are "skipped").
    """

    def __init__(self, message: str, result: PipelineResult | None = None) -> None:
        super().__init__(message)
        self.result = result


class BuildOrchestrator:
    """Owns the stages of one site and runs them in pipeline order.

    Args:
        config: The loaded site configuration.
        environment: ``development`` or ``production``; controls source
            maps, compressed output and the include context ``env``.
        compiler: Style compiler (default: the ``sass`` executable).
        includer: Include preprocessor (default: FileIncludeProcessor).
        waiter: Output poller shared by the stages.
    """

    def __init__(
        self,
        config: BuildConfig,
        environment: str = "production",
        *,
        compiler: StyleCompiler | None = None,
        includer: TemplateIncluder | None = None,
        waiter: FileWaiter | None = None,
    ) -> None:
        self.config = config
        self.environment = environment
        self.waiter = waiter or FileWaiter()
        self.rewriter = PathRewriter.from_config(config)

        self.clean_stage = CleanStage(config)
        self.styles = StyleBuildStage(config, compiler or SassCliCompiler(), self.waiter)
        self.markup = MarkupBuildStage(
            config, includer or FileIncludeProcessor(config.root), self.waiter, self.rewriter,
        )
        self.assets = AssetStage(config)
        self.flip = StylePathFlipStage(config, self.rewriter)

    # ── Pipeline declaration ────────────────────────────────────

    def _groups(self, mode: PathMode) -> list[list[BuildStage]]:
        """Stages in run order; stages in one group run concurrently."""
        if mode == PathMode.DEVELOPMENT:
            return [[self.clean_stage], [self.styles], [self.markup, self.assets]]
        return [[self.clean_stage], [self.styles], [self.assets], [self.markup], [self.flip]]

    def pipeline_stages(self, mode: PathMode) -> list[StageInfo]:
        """Declare the ordered stages a build in ``mode`` runs."""
        return [stage.info() for group in self._groups(mode) for stage in group]

    def context(self, mode: PathMode) -> BuildContext:
        return BuildContext(mode=mode, environment=self.environment)

    # ── Full build ──────────────────────────────────────────────

    async def build(self, mode: PathMode) -> PipelineResult:
        """Run the whole pipeline for ``mode``.

        Raises:
            BuildError: a stage failed; ``__cause__`` is the original error.
        """
        ctx = self.context(mode)
        groups = self._groups(mode)
        result = PipelineResult(mode=mode, environment=self.environment)
        results: dict[str, StageResult] = {}
        for group in groups:
            for stage in group:
                sr = StageResult(name=stage.name, label=stage.label)
                results[stage.name] = sr
                result.stages.append(sr)

        logger.info("Build started (%s, %s)", mode, self.environment)
        total_start = time.monotonic()

        for group in groups:
            outcomes = await asyncio.gather(
                *(stage.execute(ctx, results[stage.name]) for stage in group),
                return_exceptions=True,
            )
            failures = [
                (stage, exc) for stage, exc in zip(group, outcomes)
                if isinstance(exc, BaseException)
            ]
            if not failures:
                continue

            for sr in result.stages:
                if sr.status == "pending":
                    sr.status = "skipped"
            result.ok = False
            result.total_duration_ms = int((time.monotonic() - total_start) * 1000)

            stage, exc = failures[0]
            if not isinstance(exc, Exception):
                raise exc
            for other, other_exc in failures[1:]:
                logger.error("%s also failed: %s", other.label, other_exc)
            raise BuildError(f"{stage.label} failed: {exc}", result) from exc

        result.ok = True
        result.total_duration_ms = int((time.monotonic() - total_start) * 1000)
        result.output_dir = str(self.config.dist_dir)
        logger.info(
            "Build finished in %dms (%d warning(s))",
            result.total_duration_ms, len(result.warnings),
        )
        return result

    # ── Single-stage entry points ───────────────────────────────

    def clean(self) -> dict[str, Any]:
        return self.clean_stage.clean()

    def flip_style_paths(self) -> dict[str, Any]:
        return self.flip.flip()

    async def run_styles(self) -> StageResult:
        return await self.styles.execute(self.context(PathMode.DEVELOPMENT))

    async def run_markup(self, mode: PathMode = PathMode.DEVELOPMENT) -> StageResult:
        return await self.markup.execute(self.context(mode))

    async def run_assets(self) -> StageResult:
        return await self.assets.execute(self.context(PathMode.DEVELOPMENT))
