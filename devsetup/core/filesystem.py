"""
File system utilities for devsetup.

This module provides:
- Archive extraction (zip, tar.gz, tar.xz, tar.bz2) with path validation
- Atomic replacement of an installed directory
- Safe directory removal

Extraction never writes directly into the final location: archives are
unpacked into a temporary sibling directory which is then swapped into
place, so an interrupted run leaves either the old or the new contents.
"""

import logging
import os
import shutil
import stat
import sys
import tarfile
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Optional, Union

from devsetup.core.exceptions import ExtractError, InsecureArchiveError

logger = logging.getLogger(__name__)


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Args:
        path: Member path from archive
        destination: Extraction destination

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()

    if not member_path.is_relative_to(destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def extract_archive(archive_path: Union[str, Path], destination: Union[str, Path]):
    """
    Extract an archive to a destination directory.

    Supported formats: .zip, .tar.gz/.tgz, .tar.xz, .tar.bz2

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to

    Raises:
        ExtractError: If the archive is missing, corrupt or unsupported
        InsecureArchiveError: If archive contains malicious paths

    Example:
        >>> extract_archive('ViperToolsLinux.zip', '/tmp/viper_tools')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.exists():
        raise ExtractError(f"Archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)
    archive_name = archive_path.name.lower()

    try:
        if archive_name.endswith(".zip"):
            _extract_zip(archive_path, destination)
        elif archive_name.endswith((".tar.gz", ".tgz")):
            _extract_tar(archive_path, destination, "r:gz")
        elif archive_name.endswith(".tar.xz"):
            _extract_tar(archive_path, destination, "r:xz")
        elif archive_name.endswith((".tar.bz2", ".tbz2")):
            _extract_tar(archive_path, destination, "r:bz2")
        else:
            raise ExtractError(
                f"Unsupported archive format: {archive_path.name}. "
                "Supported: .zip, .tar.gz, .tar.xz, .tar.bz2"
            )
    except ExtractError:
        raise
    except (OSError, EOFError, zipfile.BadZipFile, tarfile.TarError) as e:
        raise ExtractError(f"Failed to extract {archive_path}: {e}") from e


def _extract_zip(archive_path: Path, destination: Path):
    """Extract a ZIP archive, keeping unix permission bits."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.infolist()

        # Validate all paths first
        for member in members:
            _validate_archive_path(member.filename, destination)

        for member in members:
            extracted = Path(zf.extract(member, destination))
            # zipfile drops the mode; solver binaries need their exec bit
            mode = (member.external_attr >> 16) & 0o777
            if mode and not member.is_dir():
                extracted.chmod(mode | stat.S_IRUSR)


def _extract_tar(archive_path: Path, destination: Path, mode: str):
    """Extract a tar archive with specified compression."""
    with tarfile.open(archive_path, mode) as tar:
        for member in tar.getmembers():
            _validate_archive_path(member.name, destination)

        if sys.version_info >= (3, 12):
            tar.extractall(destination, filter="data")
        else:
            tar.extractall(destination)


def extract_archive_atomic(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    prepare: Optional[Callable[[Path], None]] = None,
):
    """
    Extract an archive so that it replaces ``destination`` atomically.

    The archive is unpacked into a temporary directory next to
    ``destination`` and then swapped in with replace_directory(). Any
    previous contents of ``destination`` are discarded.

    Args:
        archive_path: Path to the archive file
        destination: Directory to (re)populate
        prepare: Optional callback run on the staged directory before the
            swap; raising from it aborts the install

    Raises:
        ExtractError: If extraction fails (destination is left untouched)
    """
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    with staging_directory(destination) as staging:
        extract_archive(archive_path, staging)
        if prepare is not None:
            prepare(staging)
        replace_directory(staging, destination)


@contextmanager
def staging_directory(target: Path):
    """
    Temporary directory on the same file system as ``target``.

    Yields:
        Path to the staging directory; removed on exit if still present
    """
    staging = Path(
        tempfile.mkdtemp(prefix=f".{target.name}.tmp-", dir=target.parent)
    )
    # mkdtemp creates 0700; the installed directory must stay readable
    staging.chmod(0o755)
    try:
        yield staging
    finally:
        if staging.exists():
            safe_rmtree(staging)


def replace_directory(source: Path, target: Path):
    """
    Move ``source`` to ``target``, replacing any existing directory.

    The old directory is first renamed aside so ``target`` is never missing
    half-written contents; it is deleted once the new one is in place.
    """
    backup: Optional[Path] = None
    if target.exists():
        backup = target.with_name(f".{target.name}.old-{os.getpid()}")
        if backup.exists():
            safe_rmtree(backup)
        target.rename(backup)

    try:
        source.rename(target)
    except OSError:
        if backup is not None:
            backup.rename(target)
        raise

    if backup is not None:
        safe_rmtree(backup)


def safe_rmtree(path: Union[str, Path]):
    """Remove a directory tree; a missing path is ignored."""
    path = Path(path)

    if not path.exists():
        return

    shutil.rmtree(path)


__all__ = [
    "extract_archive",
    "extract_archive_atomic",
    "staging_directory",
    "replace_directory",
    "safe_rmtree",
]
