"""
Configuration loader — reads copperbuild.yml into a BuildConfig.

The file is optional. When none is found the defaults describe the
conventional repository layout and the run proceeds with them.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from copperbuild.core.errors import ConfigError
from copperbuild.core.models.config import BuildConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "copperbuild.yml"


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for copperbuild.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to copperbuild.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path | None = None, *, search: bool = True) -> BuildConfig:
    """Load and validate build configuration.

    Args:
        path: Explicit path to copperbuild.yml. If None, searches upward
            from the cwd (unless ``search`` is False).
        search: Whether to look for a config file when ``path`` is None.

    Returns:
        Validated BuildConfig. Defaults rooted at the cwd when no file
        exists.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None and search:
        path = find_config_file()

    if path is None:
        logger.debug("No %s found, using defaults rooted at %s", CONFIG_FILE, Path.cwd())
        return BuildConfig(project_root=Path.cwd().resolve())

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading build config from %s", path)

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

    # Relative paths in the file are relative to the file, not the cwd
    data.setdefault("project_root", str(path.parent.resolve()))

    try:
        config = BuildConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid build configuration: {e}") from e

    logger.info("Loaded build config from %s", path)
    return config
