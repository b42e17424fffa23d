"""
Configuration loader — reads site.yml into the BuildConfig model.

This is the primary entry point for loading build configuration.
It reads YAML, validates against the Pydantic schema, and anchors
every path on the directory that holds the file.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from sitepipe.core.models.config import BuildConfig

logger = logging.getLogger(__name__)

# Default config filename
SITE_CONFIG_FILE = "site.yml"


class ConfigError(Exception):
    """Raised when site configuration is invalid or missing."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for site.yml starting from the given directory, walking up.

    This allows running commands from subdirectories and still finding
    the project root.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to site.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SITE_CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path | None = None, *, root: Path | None = None) -> BuildConfig:
    """Load and validate the build configuration.

    Args:
        path: Explicit path to site.yml. If None, searches upward; when
            nothing is found every key takes its default.
        root: Project root for the defaults-only case (default: cwd).

    Returns:
        Validated, frozen BuildConfig.

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid.
    """
    explicit = path is not None
    if path is None:
        path = find_config_file(root)

    if path is None:
        project_root = (root or Path.cwd()).resolve()
        logger.info("No %s found, using defaults (root=%s)", SITE_CONFIG_FILE, project_root)
        return BuildConfig(root=project_root)

    if not path.is_file():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        raise ConfigError(f"Not a file: {path}")

    logger.debug("Loading site config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "site" key or be flat
    site_data = dict(data["site"]) if isinstance(data.get("site"), dict) else dict(data)
    site_data["root"] = config_root(path)

    try:
        config = BuildConfig.model_validate(site_data)
    except Exception as e:
        raise ConfigError(f"Invalid site configuration: {e}") from e

    logger.info("Loaded site config from %s (dist=%s)", path, config.dist_dir)
    return config


def config_root(config_path: Path) -> Path:
    """Get the project root directory from a config file path."""
    return config_path.parent.resolve()
