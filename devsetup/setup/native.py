"""
Native dependency installation.

Installs the OS packages needed to build the verifier and run Viper
(compilers, OpenSSL headers, a JDK) with the host's package manager.
Packages that are already installed are detected first and left alone,
so running this twice installs nothing the second time.
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from devsetup.core.exceptions import CommandError, NativeInstallError
from devsetup.core.executor import CommandExecutor
from devsetup.core.platform import OSFamily

logger = logging.getLogger(__name__)


NATIVE_DEPENDENCIES: Dict[OSFamily, Tuple[str, ...]] = {
    OSFamily.LINUX: (
        "build-essential",
        "pkg-config",
        "wget",
        "gcc",
        "libssl-dev",
        "openjdk-11-jdk",
    ),
    OSFamily.MACOS: (
        "pkg-config",
        "openssl",
        "openjdk@11",
    ),
}


@dataclass(frozen=True)
class PackageManager:
    """How to drive one OS package manager."""

    name: str
    executable: str
    is_installed: Callable[[CommandExecutor, str], bool]
    install_command: Callable[[Sequence[str]], List[str]]
    refresh_command: Optional[List[str]] = None
    needs_root: bool = False


def _dpkg_installed(executor: CommandExecutor, package: str) -> bool:
    result = executor.query(["dpkg-query", "-W", "-f=${Status}", package])
    return result.ok and "install ok installed" in result.stdout


def _brew_installed(executor: CommandExecutor, package: str) -> bool:
    result = executor.query(["brew", "list", "--versions", package])
    return result.ok and bool(result.stdout.strip())


PACKAGE_MANAGERS: Dict[OSFamily, PackageManager] = {
    OSFamily.LINUX: PackageManager(
        name="apt",
        executable="apt-get",
        is_installed=_dpkg_installed,
        install_command=lambda pkgs: ["apt-get", "install", "-y", *pkgs],
        refresh_command=["apt-get", "update"],
        needs_root=True,
    ),
    OSFamily.MACOS: PackageManager(
        name="Homebrew",
        executable="brew",
        is_installed=_brew_installed,
        install_command=lambda pkgs: ["brew", "install", *pkgs],
    ),
}


def dependency_list(
    os_family: OSFamily, extra_packages: Optional[Dict[str, List[str]]] = None
) -> List[str]:
    """
    Resolve the ordered package list for an OS family.

    Args:
        os_family: Supported OS family
        extra_packages: Additional packages keyed by OS family name

    Returns:
        Package names without duplicates, built-in packages first
    """
    packages = list(NATIVE_DEPENDENCIES[os_family])
    for package in (extra_packages or {}).get(os_family.value, []):
        if package not in packages:
            packages.append(package)
    return packages


def install_native_dependencies(
    os_family: OSFamily,
    executor: CommandExecutor,
    extra_packages: Optional[Dict[str, List[str]]] = None,
) -> List[str]:
    """
    Install missing native dependencies for a supported OS family.

    Args:
        os_family: OSFamily.LINUX or OSFamily.MACOS
        executor: Executor used for probes and installation
        extra_packages: Additional packages keyed by OS family name

    Returns:
        Packages that were installed (or would be, in a dry run)

    Raises:
        NativeInstallError: If the package manager is unavailable or fails
        ValueError: If os_family is not supported
    """
    if not os_family.is_supported:
        raise ValueError(f"No package manager known for OS family '{os_family}'")

    manager = PACKAGE_MANAGERS[os_family]
    if executor.which(manager.executable) is None:
        message = f"Package manager '{manager.executable}' ({manager.name}) not found on PATH"
        if not executor.dry_run:
            raise NativeInstallError(message)
        logger.warning(f"{message}; listing every package")

    packages = dependency_list(os_family, extra_packages)
    missing = [pkg for pkg in packages if not manager.is_installed(executor, pkg)]

    if not missing:
        logger.info(f"All {len(packages)} native dependencies are already installed")
        return []

    logger.info(f"Installing native dependencies with {manager.name}: {', '.join(missing)}")

    prefix = _privilege_prefix(executor) if manager.needs_root else []
    try:
        if manager.refresh_command:
            executor.run(prefix + manager.refresh_command)
        executor.run(prefix + manager.install_command(missing))
    except CommandError as e:
        raise NativeInstallError(f"{manager.name} failed: {e}") from e

    return missing


def _privilege_prefix(executor: CommandExecutor) -> List[str]:
    """Return ``["sudo"]`` when not root and sudo is available."""
    if not hasattr(os, "geteuid") or os.geteuid() == 0:
        return []
    if executor.which("sudo") is None:
        logger.warning("Not running as root and sudo is not available")
        return []
    return ["sudo"]


__all__ = [
    "NATIVE_DEPENDENCIES",
    "PACKAGE_MANAGERS",
    "PackageManager",
    "dependency_list",
    "install_native_dependencies",
]
