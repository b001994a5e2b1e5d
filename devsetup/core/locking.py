"""
File locking for devsetup.

Two setup runs in the same checkout would otherwise race on the Viper tools
directory. The lock file sits next to the directory it protects and is
released automatically when the process dies.

Usage:
    from devsetup.core.locking import install_lock

    with install_lock(project_root / "viper_tools"):
        # Download and extract
        pass
"""

import logging
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)


def lock_path_for(directory: Path) -> Path:
    """Return the lock file guarding ``directory``."""
    return directory.with_name(f"{directory.name}.lock")


@contextmanager
def install_lock(directory: Path, timeout: int = 300):
    """
    Acquire the install lock for a directory.

    Args:
        directory: Directory about to be (re)installed
        timeout: Maximum wait time in seconds (default: 300 for long downloads)

    Yields:
        None

    Raises:
        LockTimeout: If lock can't be acquired within timeout
    """
    lock_path = lock_path_for(directory)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock = FileLock(lock_path, timeout=timeout)

    try:
        lock.acquire()
    except LockTimeout as e:
        logger.error(
            f"Could not acquire install lock for {directory} after {timeout}s. "
            "Another setup process may be running."
        )
        raise LockTimeout(lock_path) from e

    try:
        logger.debug(f"Acquired install lock: {lock_path}")
        yield
    finally:
        lock.release()
        logger.debug(f"Released install lock: {lock_path}")


__all__ = ["install_lock", "lock_path_for", "LockTimeout"]
