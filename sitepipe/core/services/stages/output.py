"""
Output stages — the two stages that act on the destination tree as a
whole rather than on a source tree: removing it before a build, and
flipping alias url() references in compiled style-sheets after a
production build.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Any

from sitepipe.core.config.loader import ConfigError
from sitepipe.core.models.build import BuildContext
from sitepipe.core.models.config import BuildConfig
from sitepipe.core.services.path_rewriter import PathRewriter
from sitepipe.core.services.stages.base import BuildStage


class CleanStage(BuildStage):
    name = "clean"
    label = "Clean output"

    async def run(self, ctx: BuildContext) -> dict[str, Any]:
        return self.clean()

    def clean(self) -> dict[str, Any]:
        """Remove the destination tree.

        Raises:
            ConfigError: the destination is or contains the project root
                or a source directory.
        """
        dist = self.config.dist_dir
        root = self.config.root.resolve()
        if dist == root or dist in root.parents:
            raise ConfigError(
                f"Refusing to clean {dist}: it contains the project root"
            )
        sources = self.config.sources_inside(dist)
        if sources:
            raise ConfigError(
                f"Refusing to clean {dist}: it contains the source directory {sources[0]}"
            )
        if not dist.exists():
            self.logger.debug("Nothing to clean: %s", dist)
            return {"removed": False, "path": str(dist)}

        shutil.rmtree(dist)
        self.logger.info("Removed %s", dist)
        return {"removed": True, "path": str(dist)}


class StylePathFlipStage(BuildStage):
    """Make every ``url({assets}/...)`` in compiled CSS relative."""

    name = "flip"
    label = "Relative style-sheet paths"

    def __init__(self, config: BuildConfig, rewriter: PathRewriter | None = None) -> None:
        super().__init__(config)
        self.rewriter = rewriter or PathRewriter.from_config(config)

    @property
    def assets_dir(self) -> Path:
        """The directory the assets alias stands for."""
        return self.config.dist_dir / self.config.assets_alias.lstrip("/")

    async def run(self, ctx: BuildContext) -> dict[str, Any]:
        return self.flip()

    def flip(self) -> dict[str, Any]:
        css_root = self.config.styles_dest
        if not css_root.is_dir():
            self.warn("No compiled style-sheets to rewrite in %s", css_root)
            return {"files": 0, "rewritten": 0}

        files = sorted(p for p in css_root.rglob("*.css") if p.is_file())
        rewritten = 0
        for css in files:
            content = css.read_text(encoding="utf-8")
            flipped = self.rewriter.to_relative_css(content, css.parent, self.assets_dir)
            if flipped != content:
                css.write_text(flipped, encoding="utf-8")
                rewritten += 1
                self.logger.info(
                    "Relative url() in %s (prefix %s/)",
                    css.relative_to(css_root),
                    Path(os.path.relpath(self.assets_dir, css.parent)).as_posix(),
                )
        return {"files": len(files), "rewritten": rewritten}
