"""
File waiter — bounded polling for outputs of stream-based producers.

The include preprocessor and the style compiler report "finished" before
the destination entry is guaranteed to be visible. Stages therefore
declare the file they expect and poll for it on a fixed schedule.

Exhaustion is never an exception: ``wait_for`` returns False and logs a
warning; the calling stage decides how severe a missing output is.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from sitepipe.core.models.build import ArtifactState, BuildArtifact

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_INTERVAL_MS = 100


def _path_exists(path: Path) -> bool:
    """Existence check; filesystem errors count as "not there yet"."""
    try:
        return path.exists()
    except OSError:
        return False


def _size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError:
        return 0


class FileWaiter:
    """Polls for a file until it exists or the attempts run out.

    With the defaults the worst case is 10 polls and 9 sleeps of 100ms.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval_ms: int = DEFAULT_INTERVAL_MS,
    ) -> None:
        self.max_attempts = max(1, max_attempts)
        self.interval_ms = max(0, interval_ms)

    async def wait_for(self, path: Path, *, companion: Path | None = None) -> bool:
        """Return True as soon as ``path`` exists, False after the last attempt.

        Args:
            path: File the producer is expected to write.
            companion: Optional secondary file (e.g. a source map) whose
                presence is logged once ``path`` shows up.
        """
        for attempt in range(self.max_attempts):
            if _path_exists(path):
                logger.info("✓ Created: %s (%d bytes)", path, _size(path))
                if companion is not None:
                    if _path_exists(companion):
                        logger.info("✓ Companion created: %s (%d bytes)", companion, _size(companion))
                    else:
                        logger.warning("⚠ Companion not found: %s", companion)
                return True

            # No sleep after the final poll
            if attempt < self.max_attempts - 1:
                await asyncio.sleep(self.interval_ms / 1000)

        logger.warning("⚠ Output not created: %s", path)
        logger.warning("  Output directory: %s", path.parent)
        logger.warning("  Output file name: %s", path.name)
        logger.warning("  Directory exists: %s", _path_exists(path.parent))
        return False

    async def confirm(self, artifact: BuildArtifact, *, companion: Path | None = None) -> bool:
        """Poll for a declared artifact and record the outcome on it."""
        present = await self.wait_for(artifact.path, companion=companion)
        artifact.state = ArtifactState.PRESENT if present else ArtifactState.MISSING
        return present


async def wait_for(
    path: Path,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    interval_ms: int = DEFAULT_INTERVAL_MS,
    *,
    companion: Path | None = None,
) -> bool:
    """Module-level shortcut for a one-off :meth:`FileWaiter.wait_for`."""
    return await FileWaiter(max_attempts, interval_ms).wait_for(path, companion=companion)
