"""Configuration module for devsetup.

Provides the run flags, the optional ``devsetup.yaml`` project settings and
the Rust toolchain pin file parser.
"""

from devsetup.config.settings import (
    RunConfig,
    SetupSettings,
    load_yaml_config,
    load_settings,
    parse_settings,
    DEFAULT_CONFIG_FILE,
)
from devsetup.config.toolchain import (
    ToolchainSpec,
    find_pin_file,
    load_toolchain_spec,
    PIN_FILE_CANDIDATES,
)

__all__ = [
    "RunConfig",
    "SetupSettings",
    "load_yaml_config",
    "load_settings",
    "parse_settings",
    "DEFAULT_CONFIG_FILE",
    "ToolchainSpec",
    "find_pin_file",
    "load_toolchain_spec",
    "PIN_FILE_CANDIDATES",
]
