"""
Markup stage — assemble documents, then rewrite their paths.

Two passes per document:

  1. include   the include preprocessor expands ``@@include`` and
               ``@@var`` into the destination file
  2. rewrite   once the file is confirmed on disk, the language
               placeholder is filled in and every href/src is rewritten
               for the build's PathMode

The root document is required. Page documents are optional.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sitepipe.core.models.build import BuildArtifact, BuildContext, FileLocation, PathMode
from sitepipe.core.models.config import BuildConfig
from sitepipe.core.services.collaborators.file_include import TemplateIncluder
from sitepipe.core.services.file_waiter import FileWaiter
from sitepipe.core.services.path_rewriter import PathRewriter
from sitepipe.core.services.stages.base import BuildStage, MissingSourceError


@dataclass
class Document:
    """One markup source and where its output goes."""

    source: Path
    dest: Path
    location: FileLocation


class MarkupBuildStage(BuildStage):
    name = "markup"
    label = "Assemble markup"

    def __init__(
        self,
        config: BuildConfig,
        includer: TemplateIncluder,
        waiter: FileWaiter,
        rewriter: PathRewriter | None = None,
    ) -> None:
        super().__init__(config)
        self.includer = includer
        self.waiter = waiter
        self.rewriter = rewriter or PathRewriter.from_config(config)

    def documents(self) -> list[Document]:
        """The root document followed by every page document.

        Raises:
            MissingSourceError: the root document does not exist.
        """
        index = self.config.index_source
        if not index.is_file():
            raise MissingSourceError(f"Root document not found: {index}")

        docs = [Document(index, self.config.dist_dir / index.name, FileLocation.ROOT)]

        pages_src = self.config.html_src
        if not pages_src.is_dir():
            self.warn("Page source directory not found: %s", pages_src)
            return docs

        pages_dest = self.config.html_dest
        for page in sorted(pages_src.glob("*.html")):
            if page.is_file():
                docs.append(Document(page, pages_dest / page.name, FileLocation.PAGE))
        return docs

    async def run(self, ctx: BuildContext) -> dict[str, Any]:
        docs = self.documents()
        html = self.config.build.html
        context = self.config.include_context(ctx.environment)

        # Pass 1: include
        for doc in docs:
            await self.includer.render(
                doc.source,
                doc.dest,
                prefix=html.prefix,
                basepath=html.basepath,
                context=context,
            )

        # Pass 2: rewrite
        written: list[str] = []
        skipped = 0
        for doc in docs:
            if not await self.waiter.confirm(BuildArtifact(doc.dest)):
                skipped += 1
                self.warn("Included document was not created, skipping rewrite: %s", doc.dest)
                continue
            await asyncio.to_thread(self.rewrite_document, doc, ctx.mode)
            written.append(str(doc.dest))

        return {
            "documents": len(written),
            "pages": sum(1 for d in docs if d.location == FileLocation.PAGE),
            "skipped": skipped,
            "mode": str(ctx.mode),
        }

    def rewrite_document(self, doc: Document, mode: PathMode) -> None:
        content = doc.dest.read_text(encoding="utf-8")
        content = content.replace(self.config.build.html.prefix + "language", self.config.language)
        if mode == PathMode.DEVELOPMENT:
            content = self.rewriter.to_absolute(content, doc.location, source_file=doc.dest)
        else:
            content = self.rewriter.to_relative(content, doc.location)
        doc.dest.write_text(content, encoding="utf-8")
        self.logger.debug("Rewrote %s (%s, %s)", doc.dest, doc.location, mode)
