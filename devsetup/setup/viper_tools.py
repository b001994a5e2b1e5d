"""
Viper tools acquisition.

Downloads the prebuilt Viper tools bundle (verification backends, Z3,
Boogie) and installs it into ``viper_tools/`` under the project root, where
the verifier looks for its solver binaries and libraries.

An install stamp inside the directory records which archive it came from,
so a second run with the same inputs skips the download entirely.
"""

import contextlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from devsetup.config.settings import SetupSettings
from devsetup.core.download import DownloadProgress, download_file, format_progress
from devsetup.core.exceptions import DownloadError, ExtractError
from devsetup.core.executor import CommandExecutor
from devsetup.core.filesystem import extract_archive_atomic
from devsetup.core.locking import LockTimeout, install_lock
from devsetup.core.platform import OSFamily

logger = logging.getLogger(__name__)

VIPER_TOOLS_RELEASE = "v-2023-08-31-1419"
VIPER_TOOLS_BASE_URL = "https://github.com/viperproject/viper-ide/releases/download"

VIPER_TOOLS_ARCHIVES = {
    OSFamily.LINUX: "ViperToolsLinux.zip",
    OSFamily.MACOS: "ViperToolsMac.zip",
}
# Hosts without automatic native installs still get a usable bundle
FALLBACK_ARCHIVE = VIPER_TOOLS_ARCHIVES[OSFamily.LINUX]

STAMP_FILE = ".devsetup-stamp.json"

# Entries the verifier expects at the top of viper_tools/
REQUIRED_ENTRIES = ("backends",)


@dataclass(frozen=True)
class DownloadTarget:
    """Where the Viper tools archive comes from and where it goes."""

    url: str
    destination_dir: Path
    sha256: Optional[str] = None

    @property
    def archive_name(self) -> str:
        """File name of the archive, taken from the URL path."""
        return Path(urlparse(self.url).path).name or "viper_tools.zip"

    @property
    def archive_path(self) -> Path:
        """Temporary location of the downloaded archive."""
        return self.destination_dir.with_name(self.archive_name)

    @property
    def stamp_path(self) -> Path:
        return self.destination_dir / STAMP_FILE


def default_url(os_family: OSFamily) -> str:
    """Versioned download URL of the Viper tools for an OS family."""
    archive = VIPER_TOOLS_ARCHIVES.get(os_family, FALLBACK_ARCHIVE)
    return f"{VIPER_TOOLS_BASE_URL}/{VIPER_TOOLS_RELEASE}/{archive}"


def resolve_target(
    os_family: OSFamily, project_root: Path, settings: SetupSettings
) -> DownloadTarget:
    """Build the DownloadTarget from defaults and project settings."""
    return DownloadTarget(
        url=settings.viper_tools_url or default_url(os_family),
        destination_dir=project_root / settings.viper_tools_dir,
        sha256=settings.viper_tools_sha256,
    )


def read_stamp(target: DownloadTarget) -> Optional[dict]:
    """Return the install stamp of the destination, or None if absent/invalid."""
    try:
        stamp = json.loads(target.stamp_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return stamp if isinstance(stamp, dict) else None


def is_up_to_date(target: DownloadTarget) -> bool:
    """
    Check whether the destination already holds this archive's contents.

    The stamp must name the same URL and, when a checksum is configured,
    the same SHA-256.
    """
    stamp = read_stamp(target)
    if stamp is None or stamp.get("url") != target.url:
        return False
    if target.sha256 and str(stamp.get("sha256", "")).lower() != target.sha256.lower():
        return False
    return all((target.destination_dir / entry).exists() for entry in REQUIRED_ENTRIES)


def acquire_viper_tools(
    target: DownloadTarget, executor: CommandExecutor, force: bool = False
) -> bool:
    """
    Download and install the Viper tools.

    Args:
        target: Download URL and destination
        executor: Executor performing (or recording) the mutations
        force: Reinstall even if the install stamp matches

    Returns:
        True if the archive was (or would be) installed, False if skipped

    Raises:
        DownloadError: On network/HTTP failure, empty body or bad checksum
        ExtractError: If the archive is corrupt or has an unexpected layout
    """
    if not force and is_up_to_date(target):
        logger.info(f"Viper tools already installed in {target.destination_dir}")
        return False

    # A dry run must not even create the lock file
    lock = (
        contextlib.nullcontext() if executor.dry_run else install_lock(target.destination_dir)
    )

    try:
        with lock:
            # Another process may have finished the install while we waited
            if not force and not executor.dry_run and is_up_to_date(target):
                logger.info(
                    f"Viper tools were installed in {target.destination_dir} "
                    "by another setup process"
                )
                return False
            _install(target, executor)
    except LockTimeout as e:
        raise DownloadError(
            f"Another setup process is installing {target.destination_dir}"
        ) from e

    return True


def _install(target: DownloadTarget, executor: CommandExecutor):
    archive = target.archive_path
    downloaded = False

    try:
        try:
            digest = executor.perform(
                f"download {target.url} to {archive}",
                download_file,
                target.url,
                archive,
                expected_sha256=target.sha256,
                progress_callback=_log_progress,
            )
        except OSError as e:
            raise DownloadError(f"Cannot write {archive}: {e}") from e
        downloaded = not executor.dry_run

        try:
            executor.perform(
                f"extract {archive.name} into {target.destination_dir}",
                extract_archive_atomic,
                archive,
                target.destination_dir,
                prepare=lambda staging: _finalize_staging(staging, target, digest),
            )
        except OSError as e:
            raise ExtractError(
                f"Cannot install Viper tools into {target.destination_dir}: {e}"
            ) from e
    finally:
        if downloaded:
            archive.unlink(missing_ok=True)

    logger.info(f"Viper tools installed in {target.destination_dir}")


def _log_progress(progress: DownloadProgress):
    logger.info(f"  {format_progress(progress)}")


def _finalize_staging(staging: Path, target: DownloadTarget, digest: Optional[str]):
    """Check the extracted layout and write the stamp before the swap."""
    missing = [entry for entry in REQUIRED_ENTRIES if not (staging / entry).exists()]
    if missing:
        raise ExtractError(
            f"Archive {target.archive_name} does not contain the expected "
            f"Viper tools layout (missing: {', '.join(missing)})"
        )

    stamp = {"url": target.url, "sha256": digest}
    (staging / STAMP_FILE).write_text(json.dumps(stamp, indent=2), encoding="utf-8")


__all__ = [
    "VIPER_TOOLS_RELEASE",
    "VIPER_TOOLS_ARCHIVES",
    "DownloadTarget",
    "default_url",
    "resolve_target",
    "is_up_to_date",
    "acquire_viper_tools",
]
