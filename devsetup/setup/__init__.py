"""
Setup phases for devsetup.

Each phase lives in its own module; the Bootstrapper runs them in order.
"""

from .bootstrapper import (
    Bootstrapper,
    SetupReport,
    PhaseOutcome,
    run_setup,
)
from .native import install_native_dependencies, NATIVE_DEPENDENCIES
from .viper_tools import acquire_viper_tools, DownloadTarget
from .rustup import configure_toolchain, REQUIRED_COMPONENTS, OPTIONAL_COMPONENTS

__all__ = [
    "Bootstrapper",
    "SetupReport",
    "PhaseOutcome",
    "run_setup",
    "install_native_dependencies",
    "NATIVE_DEPENDENCIES",
    "acquire_viper_tools",
    "DownloadTarget",
    "configure_toolchain",
    "REQUIRED_COMPONENTS",
    "OPTIONAL_COMPONENTS",
]
