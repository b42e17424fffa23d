"""
Asset stage — mirror static resources into the output tree.

Categories (in copy order):

  scripts      {js.src}/**/*.js            → {js.dest}/<basename>
  fonts        {public.src}/fonts/**        → {public.dest}/fonts/**
  icon-fonts   {iconFont.src}/{pattern}     → {public.dest}/fonts/{iconFont.dest}/
  favicon      {public.src}/{favicon}       → {dist}/{favicon}
  images       {public.src}/img/**          → {public.dest}/img/**

Every file copy stands alone: a failure is logged and counted, and the
loop moves on to the next file.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Any, Iterable

from sitepipe.core.models.build import BuildContext, CopyReport
from sitepipe.core.services.stages.base import BuildStage

logger = logging.getLogger(__name__)

# Sources that live next to images but are not images
_IMAGE_EXCLUDED_SUFFIXES = (".scss", ".js")


class AssetStage(BuildStage):
    name = "assets"
    label = "Copy static assets"

    async def run(self, ctx: BuildContext) -> dict[str, Any]:
        reports = await asyncio.to_thread(self.copy_all)
        return {
            "copied": sum(r.copied for r in reports),
            "failed": sum(r.failed for r in reports),
            "categories": [r.to_dict() for r in reports],
        }

    def copy_all(self) -> list[CopyReport]:
        reports = [
            self.copy_scripts(),
            self.copy_fonts(),
            self.copy_icon_fonts(),
            self.copy_favicon(),
            self.copy_images(),
        ]
        for r in reports:
            if r.failed:
                logger.warning("%s: %d copied, %d failed", r.category, r.copied, r.failed)
            else:
                logger.info("%s: %d copied", r.category, r.copied)
        return reports

    # ── Categories ──────────────────────────────────────────────

    def copy_scripts(self) -> CopyReport:
        report = CopyReport("scripts")
        src = self.config.scripts_src
        if not src.is_dir():
            self.warn("Script source directory not found: %s", src)
            return report
        dest = self.config.scripts_dest
        for path in sorted(src.rglob("*.js")):
            if path.is_file():
                _copy_file(path, dest / path.name, report)
        return report

    def copy_fonts(self) -> CopyReport:
        report = CopyReport("fonts")
        src = self.config.public_src / "fonts"
        dest = self.config.public_dest / "fonts"
        _clear(dest)
        if not src.is_dir():
            self.warn("Font directory not found: %s", src)
            return report
        _mirror(_files(src), src, dest, report)
        return report

    def copy_icon_fonts(self) -> CopyReport:
        report = CopyReport("icon-fonts")
        icon = self.config.build.icon_font
        src = self.config.resolve(icon.src)
        if not src.is_dir():
            self.warn("Icon font package not found: %s", src)
            return report
        dest = self.config.public_dest / "fonts" / icon.dest
        for path in sorted(src.glob(icon.pattern)):
            if path.is_file():
                _copy_file(path, dest / path.name, report)
        return report

    def copy_favicon(self) -> CopyReport:
        report = CopyReport("favicon")
        favicon = self.config.files.favicon
        src = self.config.public_src / favicon
        if not src.is_file():
            self.warn("Favicon not found: %s", src)
            return report
        _copy_file(src, self.config.dist_dir / favicon, report)
        return report

    def copy_images(self) -> CopyReport:
        report = CopyReport("images")
        src = self.config.public_src / "img"
        dest = self.config.public_dest / "img"
        _clear(dest)
        if not src.is_dir():
            self.warn("Image directory not found: %s", src)
            return report
        images = (p for p in _files(src) if p.suffix.lower() not in _IMAGE_EXCLUDED_SUFFIXES)
        _mirror(images, src, dest, report)
        return report


# ── Helpers ─────────────────────────────────────────────────────


def _files(root: Path) -> list[Path]:
    return sorted(p for p in root.rglob("*") if p.is_file())


def _mirror(paths: Iterable[Path], src: Path, dest: Path, report: CopyReport) -> None:
    for path in paths:
        _copy_file(path, dest / path.relative_to(src), report)


def _copy_file(src: Path, dest: Path, report: CopyReport) -> None:
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dest)
    except OSError as e:
        report.failed += 1
        logger.error("Failed to copy %s → %s: %s", src, dest, e)
        return
    report.copied += 1
    logger.debug("Copied %s → %s", src, dest)


def _clear(dest: Path) -> None:
    """Delete a category's destination so removed sources disappear too."""
    if not dest.exists():
        return
    try:
        shutil.rmtree(dest)
    except OSError as e:
        logger.warning("Could not clear %s: %s", dest, e)
