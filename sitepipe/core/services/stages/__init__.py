"""
Build stages — one class per pipeline step.

    from sitepipe.core.services.stages import StyleBuildStage, MarkupBuildStage
"""

from sitepipe.core.services.stages.assets import AssetStage
from sitepipe.core.services.stages.base import BuildStage, MissingSourceError
from sitepipe.core.services.stages.markup import MarkupBuildStage
from sitepipe.core.services.stages.output import CleanStage, StylePathFlipStage
from sitepipe.core.services.stages.styles import StyleBuildStage

__all__ = [
    "AssetStage",
    "BuildStage",
    "CleanStage",
    "MarkupBuildStage",
    "MissingSourceError",
    "StyleBuildStage",
    "StylePathFlipStage",
]
