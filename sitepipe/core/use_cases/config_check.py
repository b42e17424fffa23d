"""
Config check use case — validate site.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from sitepipe.core.config.loader import ConfigError, find_config_file, load_config
from sitepipe.core.models.config import BuildConfig

_VIEWPORT_MODES = ("responsive", "fixed", "adaptive")
_DEV_LOG_LEVELS = ("debug", "info", "warning", "error", "silent")


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: BuildConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "root": str(self.config.root) if self.config else None,
            "dist": str(self.config.dist_dir) if self.config else None,
            "errors": self.errors,
            "warnings": self.warnings,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate the site configuration and the source tree it points at.

    Args:
        config_path: Optional explicit path to site.yml.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
        if config_path is None:
            result.warnings.append("No site.yml found; every setting takes its default.")
    result.config_path = config_path

    try:
        config = load_config(config_path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result
    result.config = config

    # Semantic checks
    dist = config.dist_dir
    if dist == config.root or dist in config.root.parents:
        result.errors.append(f"paths.dist ({dist}) must not contain the project root.")
    else:
        for source in config.sources_inside(dist):
            result.errors.append(
                f"paths.dist ({dist}) must not contain the source directory {source}."
            )

    if not config.index_source.is_file():
        result.errors.append(f"Root document not found: {config.index_source}")

    if not config.html_src.is_dir():
        result.warnings.append(f"Page source directory not found: {config.html_src}")

    if not config.styles_src.is_dir():
        result.warnings.append(f"Style source directory not found: {config.styles_src}")
    elif not (config.styles_src / config.files.scss.entry).is_file():
        result.warnings.append(
            f"Style entry not found: {config.styles_src / config.files.scss.entry}"
        )

    if not config.assets_alias:
        result.errors.append("pathAliases.assetsPath must not be empty.")
    if not config.pages_alias:
        result.errors.append("pathAliases.pagesPath must not be empty.")

    if config.viewport.mode not in _VIEWPORT_MODES:
        result.warnings.append(
            f"Unknown viewport.mode '{config.viewport.mode}' "
            f"(expected one of: {', '.join(_VIEWPORT_MODES)})"
        )

    if config.dev.log_level.lower() not in _DEV_LOG_LEVELS:
        result.warnings.append(
            f"Unknown dev.logLevel '{config.dev.log_level}', INFO will be used."
        )

    result.valid = not result.errors
    return result
