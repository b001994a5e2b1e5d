"""
Core functionality for devsetup.

This package contains the foundational modules the setup phases depend on.
"""

from .exceptions import (
    DevSetupError,
    ConfigError,
    CommandError,
    CommandNotFoundError,
    SetupError,
    NativeInstallError,
    DownloadError,
    ChecksumError,
    ExtractError,
    InsecureArchiveError,
    ToolchainConfigError,
    UnsupportedOSWarning,
)

from .executor import (
    CommandResult,
    CommandExecutor,
    SubprocessExecutor,
    RecordingExecutor,
    create_executor,
)

from .platform import (
    OSFamily,
    detect_os_family,
    clear_os_family_cache,
)

__all__ = [
    "DevSetupError",
    "ConfigError",
    "CommandError",
    "CommandNotFoundError",
    "SetupError",
    "NativeInstallError",
    "DownloadError",
    "ChecksumError",
    "ExtractError",
    "InsecureArchiveError",
    "ToolchainConfigError",
    "UnsupportedOSWarning",
    "CommandResult",
    "CommandExecutor",
    "SubprocessExecutor",
    "RecordingExecutor",
    "create_executor",
    "OSFamily",
    "detect_os_family",
    "clear_os_family_cache",
]
