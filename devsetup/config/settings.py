"""YAML configuration for devsetup.

Two kinds of configuration drive a setup run:

- ``RunConfig``: the flags given on the command line, fixed for the whole run
- ``SetupSettings``: optional per-project overrides read from ``devsetup.yaml``

Example ``devsetup.yaml``::

    viper_tools:
      url: https://example.org/ViperToolsLinux.zip
      sha256: 3f1c...
      directory: viper_tools
    toolchain:
      pin_file: rust-toolchain.toml
      components: [rust-analyzer]
      optional_components: [rustfmt, clippy]
    native:
      extra_packages:
        linux: [z3]
        macos: []
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from devsetup.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "devsetup.yaml"

KNOWN_SECTIONS = {
    "viper_tools": {"url", "sha256", "directory"},
    "toolchain": {"pin_file", "components", "optional_components"},
    "native": {"extra_packages"},
}


@dataclass(frozen=True)
class RunConfig:
    """Command-line flags of a single setup invocation."""

    rustup_only: bool = False
    dry_run: bool = False
    force: bool = False  # Re-download Viper tools even when up to date


@dataclass
class SetupSettings:
    """Per-project overrides. ``None`` means use the built-in default."""

    viper_tools_url: Optional[str] = None
    viper_tools_sha256: Optional[str] = None
    viper_tools_dir: str = "viper_tools"
    pin_file: Optional[str] = None
    extra_components: List[str] = field(default_factory=list)
    optional_components: Optional[List[str]] = None
    extra_packages: Dict[str, List[str]] = field(default_factory=dict)


def load_yaml_config(config_file: Path, required: bool = False) -> Dict[str, Any]:
    """
    Load and parse a YAML configuration file.

    Args:
        config_file: Path to YAML configuration file
        required: If True, raise error if file doesn't exist

    Returns:
        Configuration dictionary (empty dict if file doesn't exist and not required)

    Raises:
        ConfigError: If the file is required but missing, or not valid YAML
    """
    if not config_file.exists():
        if required:
            raise ConfigError(f"Configuration file not found: {config_file}")
        logger.debug(f"Config file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    config = config or {}
    if not isinstance(config, dict):
        raise ConfigError(f"Top level of {config_file} must be a mapping")
    return config


def load_settings(
    project_root: Path, config_file: Optional[Path] = None
) -> SetupSettings:
    """
    Load SetupSettings for a project.

    Args:
        project_root: Project root directory
        config_file: Explicit config file (must exist); defaults to
            ``devsetup.yaml`` in the project root if present

    Returns:
        Parsed settings

    Raises:
        ConfigError: If the configuration is invalid
    """
    if config_file is not None:
        data = load_yaml_config(Path(config_file), required=True)
    else:
        data = load_yaml_config(project_root / DEFAULT_CONFIG_FILE)

    return parse_settings(data)


def parse_settings(data: Dict[str, Any]) -> SetupSettings:
    """Build SetupSettings from a parsed configuration mapping."""
    _warn_unknown_keys(data)

    viper = _section(data, "viper_tools")
    toolchain = _section(data, "toolchain")
    native = _section(data, "native")

    settings = SetupSettings(
        viper_tools_url=_optional_str(viper, "url", "viper_tools"),
        viper_tools_sha256=_optional_str(viper, "sha256", "viper_tools"),
        pin_file=_optional_str(toolchain, "pin_file", "toolchain"),
        extra_components=_str_list(toolchain, "components", "toolchain") or [],
        optional_components=_str_list(toolchain, "optional_components", "toolchain"),
    )

    directory = _optional_str(viper, "directory", "viper_tools")
    if directory:
        if Path(directory).is_absolute() or ".." in Path(directory).parts:
            raise ConfigError(
                f"viper_tools.directory must be relative to the project root: {directory}"
            )
        settings.viper_tools_dir = directory

    extra_packages = native.get("extra_packages") or {}
    if not isinstance(extra_packages, dict):
        raise ConfigError("native.extra_packages must be a mapping of OS to packages")
    for os_name in extra_packages:
        settings.extra_packages[str(os_name)] = (
            _str_list(extra_packages, os_name, "native.extra_packages") or []
        )

    return settings


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    return section


def _optional_str(section: Dict[str, Any], key: str, where: str) -> Optional[str]:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{where}.{key} must be a non-empty string")
    return value.strip()


def _str_list(section: Dict[str, Any], key: str, where: str) -> Optional[List[str]]:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where}.{key} must be a list of strings")
    return list(value)


def _warn_unknown_keys(data: Dict[str, Any]):
    for name, value in data.items():
        if name not in KNOWN_SECTIONS:
            logger.debug(f"Ignoring unknown configuration section: {name}")
            continue
        if isinstance(value, dict):
            for key in value:
                if key not in KNOWN_SECTIONS[name]:
                    logger.debug(f"Ignoring unknown configuration key: {name}.{key}")


__all__ = [
    "RunConfig",
    "SetupSettings",
    "load_yaml_config",
    "load_settings",
    "parse_settings",
    "DEFAULT_CONFIG_FILE",
]
