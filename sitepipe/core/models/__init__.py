"""
Domain models — configuration schema and build pipeline types.

All models are re-exported here for convenient access:

    from sitepipe.core.models import BuildConfig, PathMode, FileLocation
"""

from sitepipe.core.models.build import (
    ArtifactState,
    BuildArtifact,
    BuildContext,
    CopyReport,
    FileLocation,
    PathMode,
    PipelineResult,
    StageInfo,
    StageResult,
)
from sitepipe.core.models.config import BuildConfig

__all__ = [
    # build.py
    "ArtifactState",
    "BuildArtifact",
    "BuildContext",
    "CopyReport",
    "FileLocation",
    "PathMode",
    "PipelineResult",
    "StageInfo",
    "StageResult",
    # config.py
    "BuildConfig",
]
