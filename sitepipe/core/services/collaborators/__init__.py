"""
Collaborators — the external tools the build stages drive.

  - Template inclusion: ``FileIncludeProcessor`` (``@@include`` / ``@@var``)
  - Style compilation:  ``SassCliCompiler`` (Dart Sass executable)

Stages depend on the ``TemplateIncluder`` / ``StyleCompiler`` protocols,
so tests and alternative toolchains can pass their own.
"""

from sitepipe.core.services.collaborators.file_include import (
    FileIncludeProcessor,
    TemplateIncludeError,
    TemplateIncluder,
)
from sitepipe.core.services.collaborators.style_compiler import (
    SassCliCompiler,
    StyleCompileError,
    StyleCompiler,
)

__all__ = [
    "FileIncludeProcessor",
    "SassCliCompiler",
    "StyleCompileError",
    "StyleCompiler",
    "TemplateIncludeError",
    "TemplateIncluder",
]
