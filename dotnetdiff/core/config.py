"""
User settings for dotnet-diff.

Settings are assembled from three layers, later layers winning:

1. Built-in defaults
2. An optional YAML file (``<app dir>/config.yaml``)
3. Environment variables

Example config.yaml:

    jit_search:
      depth: 20
      prefer_later_commits: true
    network:
      request_timeout: 15
      download_timeout: 600
    keep_temp_files: false
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from dotnetdiff.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """
    Effective dotnet-diff settings.

    Attributes:
        jit_search_depth: Candidate commits tried per search direction
        prefer_later_commits: Search commits after the SDK's before those under it
        request_timeout: Timeout in seconds for API queries and build-store lookups
        download_timeout: Timeout in seconds for package downloads
        commits_per_page: Page size requested from the commit history API
        keep_temp_files: Leave downloaded packages in the temp directory
        debug_log: Enable debug logging
        github_token: Optional token for authenticated GitHub API requests
    """

    jit_search_depth: int = 10
    prefer_later_commits: bool = False
    request_timeout: float = 30
    download_timeout: float = 300
    commits_per_page: int = 30
    keep_temp_files: bool = False
    debug_log: bool = False
    github_token: Optional[str] = None


def load_settings(
    config_file: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """
    Load settings from defaults, the YAML file and the environment.

    Args:
        config_file: Optional path to config.yaml (missing file is not an error)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Effective settings

    Raises:
        ConfigurationError: If the YAML file is malformed or holds invalid values
    """
    if environ is None:
        environ = os.environ

    settings = Settings()

    if config_file is not None:
        _apply_file(settings, load_yaml_config(config_file))

    _apply_environment(settings, environ)

    if settings.jit_search_depth < 1:
        raise ConfigurationError(
            f"jit_search.depth must be a positive number, got {settings.jit_search_depth}"
        )

    logger.debug(f"Effective settings: {settings}")
    return settings


def load_yaml_config(config_file: Path) -> Dict[str, Any]:
    """
    Load and parse a YAML configuration file.

    Args:
        config_file: Path to YAML configuration file

    Returns:
        Configuration dictionary (empty dict if the file doesn't exist)

    Raises:
        ConfigurationError: If YAML parsing fails or the document is not a mapping
    """
    if not config_file.exists():
        logger.debug(f"Config file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e

    config = config or {}
    if not isinstance(config, dict):
        raise ConfigurationError(
            f"Expected a mapping at the top of {config_file}, got {type(config).__name__}"
        )

    return config


def _apply_file(settings: Settings, config: Dict[str, Any]) -> None:
    """Copy recognised keys from a parsed config file onto settings."""
    jit_search = _section(config, "jit_search")
    network = _section(config, "network")

    if "depth" in jit_search:
        settings.jit_search_depth = _as_int("jit_search.depth", jit_search["depth"])
    if "prefer_later_commits" in jit_search:
        settings.prefer_later_commits = bool(jit_search["prefer_later_commits"])

    if "request_timeout" in network:
        settings.request_timeout = _as_float(
            "network.request_timeout", network["request_timeout"]
        )
    if "download_timeout" in network:
        settings.download_timeout = _as_float(
            "network.download_timeout", network["download_timeout"]
        )
    if "commits_per_page" in network:
        settings.commits_per_page = _as_int(
            "network.commits_per_page", network["commits_per_page"]
        )

    if "keep_temp_files" in config:
        settings.keep_temp_files = bool(config["keep_temp_files"])


def _apply_environment(settings: Settings, environ: Mapping[str, str]) -> None:
    """Apply environment variable overrides onto settings."""
    if environ.get("DOTNET_DIFF_DEBUG_LOG") == "1":
        settings.debug_log = True
    if environ.get("DOTNET_DIFF_KEEP_TEMP_FILES") == "1":
        settings.keep_temp_files = True
    if environ.get("DOTNET_DIFF_PREFER_LATER_COMMITS") == "1":
        settings.prefer_later_commits = True

    depth = environ.get("DOTNET_DIFF_SEARCH_DEPTH")
    if depth:
        settings.jit_search_depth = _as_int("DOTNET_DIFF_SEARCH_DEPTH", depth)

    token = environ.get("GITHUB_TOKEN")
    if token:
        settings.github_token = token


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{name}' must be a mapping")
    return section


def _as_int(key: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"'{key}' must be an integer, got {value!r}") from e


def _as_float(key: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}") from e
