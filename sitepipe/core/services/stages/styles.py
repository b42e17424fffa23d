"""
Style stage — compile every non-partial style-sheet entry.

Entries are ``**/*.scss`` under the style source root whose file name
does not start with ``_``. The configured entry is compiled first and
written under the configured output name; every other entry keeps its
relative sub-path with a ``.css`` suffix. An entry whose output is
already claimed by an earlier one is skipped with a warning.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sitepipe.core.models.build import BuildArtifact, BuildContext
from sitepipe.core.models.config import BuildConfig
from sitepipe.core.services.collaborators.style_compiler import StyleCompiler
from sitepipe.core.services.file_waiter import FileWaiter
from sitepipe.core.services.stages.base import BuildStage


def is_partial(path: Path) -> bool:
    return path.name.startswith("_")


class StyleBuildStage(BuildStage):
    name = "styles"
    label = "Compile style-sheets"

    def __init__(self, config: BuildConfig, compiler: StyleCompiler, waiter: FileWaiter) -> None:
        super().__init__(config)
        self.compiler = compiler
        self.waiter = waiter

    def discover(self) -> list[Path]:
        """Eligible entries, the configured entry first."""
        src = self.config.styles_src
        if not src.is_dir():
            return []
        entries = sorted(p for p in src.rglob("*.scss") if p.is_file() and not is_partial(p))
        main = src / self.config.files.scss.entry
        if main in entries:
            entries.remove(main)
            entries.insert(0, main)
        return entries

    def output_for(self, source: Path) -> Path:
        src = self.config.styles_src
        dest = self.config.styles_dest
        if source == src / self.config.files.scss.entry:
            return dest / self.config.files.scss.output
        return dest / source.relative_to(src).with_suffix(".css")

    async def run(self, ctx: BuildContext) -> dict[str, Any]:
        src = self.config.styles_src
        if not src.is_dir():
            self.warn("Style source directory not found: %s", src)
            return {"compiled": 0, "missing": 0, "outputs": []}

        entries = self.discover()
        if not entries:
            self.warn("No style-sheet entries in %s (partials are not compiled)", src)
            return {"compiled": 0, "missing": 0, "outputs": []}

        output_style = "expanded" if ctx.is_development else "compressed"
        source_map = ctx.is_development
        load_paths = self.config.style_load_paths

        outputs: list[str] = []
        missing = 0
        claimed: dict[Path, Path] = {}
        for source in entries:
            artifact = BuildArtifact(self.output_for(source))
            if artifact.path in claimed:
                self.warn(
                    "Style-sheet entries %s and %s both compile to %s; skipping %s",
                    claimed[artifact.path].relative_to(src),
                    source.relative_to(src),
                    artifact.path.relative_to(self.config.styles_dest),
                    source.relative_to(src),
                )
                continue
            claimed[artifact.path] = source
            self.logger.info("Compiling %s → %s", source.relative_to(src), artifact.path.name)

            await self.compiler.compile(
                source,
                artifact.path,
                output_style=output_style,
                load_paths=load_paths,
                source_map=source_map,
                quiet_deps=True,
            )

            companion = artifact.path.with_name(artifact.path.name + ".map") if source_map else None
            if await self.waiter.confirm(artifact, companion=companion):
                outputs.append(str(artifact.path))
            else:
                missing += 1
                self.warn("Compiled style-sheet was not created: %s", artifact.path)

        return {"compiled": len(outputs), "missing": missing, "outputs": outputs}
