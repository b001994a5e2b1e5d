"""
Network download with progress tracking and checksum verification.

Downloads are streamed into a ``.part`` file next to the destination and
only renamed into place once complete, so an interrupted download never
leaves a truncated archive behind. Failures are not retried: the user
re-runs setup once the underlying problem is fixed.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import RequestException

from devsetup.core.exceptions import ChecksumError, DownloadError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second

    def __str__(self) -> str:
        """Format progress for display."""
        return format_progress(self)


def download_file(
    url: str,
    destination: Path,
    expected_sha256: Optional[str] = None,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = 30,
) -> str:
    """
    Download file from URL to destination.

    Args:
        url: URL to download from
        destination: Local path to save file
        expected_sha256: Expected SHA256 hash, verified while streaming
        progress_callback: Optional callback for progress updates
        timeout: Request timeout in seconds

    Returns:
        SHA256 hex digest of the downloaded file

    Raises:
        DownloadError: On network failure, HTTP error or empty body
        ChecksumError: If checksum doesn't match expected value
        ValueError: If URL or destination is invalid

    Example:
        >>> digest = download_file(
        ...     "https://example.com/ViperToolsLinux.zip",
        ...     Path("ViperToolsLinux.zip"),
        ... )
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if not destination:
        raise ValueError("Destination path cannot be empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(destination.name + ".part")

    logger.info(f"Downloading from {url}")

    try:
        with requests.get(
            url, stream=True, timeout=timeout, allow_redirects=True
        ) as response:
            response.raise_for_status()
            digest, size = _stream_to_file(response, partial, progress_callback)
    except RequestException as e:
        partial.unlink(missing_ok=True)
        raise DownloadError(f"Download of {url} failed: {e}") from e
    except BaseException:
        partial.unlink(missing_ok=True)
        raise

    if size == 0:
        partial.unlink()
        raise DownloadError(f"Download of {url} returned an empty file")

    if expected_sha256 and digest.lower() != expected_sha256.lower():
        partial.unlink()
        raise ChecksumError(
            f"Checksum mismatch for {destination.name}: "
            f"expected {expected_sha256}, got {digest}"
        )

    partial.replace(destination)
    logger.info(f"Download complete: {destination} ({size} bytes)")
    return digest


def _stream_to_file(
    response: requests.Response,
    path: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]],
) -> tuple:
    """
    Write a streaming response to disk while hashing it.

    Returns:
        Tuple of (sha256 hex digest, number of bytes written)
    """
    content_length = response.headers.get("content-length")
    total_size = int(content_length) if content_length else 0

    hasher = hashlib.sha256()
    downloaded = 0
    start_time = time.time()
    last_progress_time = start_time

    with open(path, "wb") as f:
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if not chunk:
                continue
            f.write(chunk)
            hasher.update(chunk)
            downloaded += len(chunk)

            # Report progress (max once per 0.5 seconds to avoid spam)
            current_time = time.time()
            if progress_callback and (
                current_time - last_progress_time >= 0.5 or downloaded == total_size
            ):
                elapsed = current_time - start_time
                progress_callback(
                    DownloadProgress(
                        bytes_downloaded=downloaded,
                        total_bytes=total_size,
                        percentage=(downloaded / total_size * 100)
                        if total_size > 0
                        else 0,
                        speed_bps=downloaded / elapsed if elapsed > 0 else 0,
                    )
                )
                last_progress_time = current_time

    return hasher.hexdigest(), downloaded


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.total_bytes > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s"
        )
    return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"


__all__ = [
    "DownloadProgress",
    "download_file",
    "format_progress",
]
