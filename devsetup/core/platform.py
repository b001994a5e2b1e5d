"""
Host OS family detection for devsetup.

The bootstrap only needs to know which package manager it may drive, so the
host is classified once into a closed set of families:

- ``OSFamily.LINUX``: Debian-like Linux (apt-based)
- ``OSFamily.MACOS``: macOS (Homebrew)
- ``OSFamily.UNSUPPORTED``: everything else (other Linux distributions,
  BSDs, Windows). Native dependencies must be installed by hand there.

Usage:
    from devsetup.core.platform import detect_os_family, OSFamily

    family = detect_os_family()
    if family is OSFamily.UNSUPPORTED:
        print("Install native dependencies manually")
"""

import functools
import logging
import platform
from enum import Enum

import distro

logger = logging.getLogger(__name__)

# Distribution IDs handled by apt-get
DEBIAN_LIKE_IDS = frozenset({"debian", "ubuntu"})


class OSFamily(Enum):
    """Operating system families known to the bootstrapper."""

    LINUX = "linux"
    MACOS = "macos"
    UNSUPPORTED = "unsupported"

    @property
    def is_supported(self) -> bool:
        """Whether native dependencies can be installed automatically."""
        return self is not OSFamily.UNSUPPORTED

    def __str__(self) -> str:
        return self.value


@functools.lru_cache(maxsize=1)
def detect_os_family() -> OSFamily:
    """
    Detect the OS family of the current host.

    This function is cached - it only runs detection once per process.

    Returns:
        OSFamily of the host

    Example:
        >>> detect_os_family()
        <OSFamily.LINUX: 'linux'>
    """
    system = platform.system().lower()

    if system == "darwin":
        return OSFamily.MACOS

    if system == "linux":
        if _is_debian_like(distro.id(), distro.like()):
            return OSFamily.LINUX
        logger.debug(
            f"Linux distribution '{distro.id() or 'unknown'}' is not Debian-like"
        )
        return OSFamily.UNSUPPORTED

    logger.debug(f"Operating system '{system}' has no supported package manager")
    return OSFamily.UNSUPPORTED


def _is_debian_like(distro_id: str, distro_like: str) -> bool:
    """
    Check whether a distribution uses apt.

    Args:
        distro_id: Distribution ID (e.g., 'ubuntu', 'linuxmint')
        distro_like: Space-separated ID_LIKE value (e.g., 'ubuntu debian')

    Returns:
        True if the distribution or one of its parents is Debian-like
    """
    ids = {distro_id.lower()} | set(distro_like.lower().split())
    return bool(ids & DEBIAN_LIKE_IDS)


def clear_os_family_cache():
    """
    Clear the OS family detection cache.

    Forces the next call to detect_os_family() to re-detect. Useful for tests.
    """
    detect_os_family.cache_clear()


__all__ = [
    "OSFamily",
    "detect_os_family",
    "clear_os_family_cache",
]
