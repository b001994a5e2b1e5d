"""
Centralized exception hierarchy for devsetup.

Every phase of the bootstrap raises a subclass of SetupError carrying the
name of the phase that failed, so the CLI can report it without knowing
which module raised it.
"""

from typing import Optional, Sequence


# ============================================================================
# Base Exceptions
# ============================================================================


class DevSetupError(Exception):
    """Base exception for all devsetup errors."""

    pass


class ConfigError(DevSetupError):
    """Raised when a configuration file cannot be read or is malformed."""

    pass


# ============================================================================
# Command Execution Exceptions
# ============================================================================


class CommandError(DevSetupError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(
        self, command: Sequence[str], returncode: int, stderr: Optional[str] = None
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr or ""
        msg = f"Command '{' '.join(self.command)}' exited with status {returncode}"
        if self.stderr.strip():
            msg += f": {self.stderr.strip().splitlines()[-1]}"
        super().__init__(msg)


class CommandNotFoundError(CommandError):
    """Raised when the executable of a command cannot be found."""

    def __init__(self, command: Sequence[str]):
        self.command = list(command)
        self.returncode = 127
        self.stderr = ""
        DevSetupError.__init__(self, f"Executable not found: {self.command[0]}")


# ============================================================================
# Phase Exceptions
# ============================================================================


class SetupError(DevSetupError):
    """Base exception for a fatal failure in one of the setup phases."""

    phase = "setup"


class NativeInstallError(SetupError):
    """The OS package manager is missing or failed to install packages."""

    phase = "native-dependencies"


class DownloadError(SetupError):
    """The Viper tools archive could not be downloaded."""

    phase = "viper-tools"


class ChecksumError(DownloadError):
    """The downloaded archive does not match the expected SHA-256."""

    pass


class ExtractError(SetupError):
    """The Viper tools archive is corrupt or could not be extracted."""

    phase = "viper-tools"


class InsecureArchiveError(ExtractError):
    """Archive contains paths escaping the destination directory."""

    pass


class ToolchainConfigError(SetupError):
    """The pin file is missing/malformed or rustup rejected a request."""

    phase = "rust-toolchain"


# ============================================================================
# Warnings
# ============================================================================


class UnsupportedOSWarning(UserWarning):
    """Host OS has no automatic native dependency installation."""

    pass


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
]
