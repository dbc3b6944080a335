"""Artifact download to the staging area.

An artifact is staged under the last path segment of its URL, replacing
whatever an earlier run left there. Bytes are streamed into a ``.part``
file that only takes the final name once the download is complete and,
when a SHA256 checksum is given, matches it. An empty checksum means no
integrity check beyond signature verification.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

import httpx

from archlinux_rootfs.sources.errors import DownloadError, VerificationError

logger = logging.getLogger(__name__)

# Timeout for downloads (seconds)
DOWNLOAD_TIMEOUT = 3600

# Chunk size for downloads (bytes)
DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64 KB

PARTIAL_SUFFIX = ".part"


def staging_path_for(url: str, staging_dir: Path) -> Path:
    """Return the staging path for a URL: its last path segment in ``staging_dir``."""
    name = httpx.URL(url).path.rsplit("/", 1)[-1]
    if not name:
        raise DownloadError(f"URL {url} does not name a file", code="invalid_url")
    return staging_dir / name


def transport_error(url: str, exc: httpx.HTTPError) -> DownloadError:
    """Translate an httpx failure into a DownloadError with a stable code."""
    if isinstance(exc, httpx.HTTPStatusError):
        return DownloadError(
            f"HTTP {exc.response.status_code} fetching {url}", code="http_error"
        )
    if isinstance(exc, httpx.TimeoutException):
        return DownloadError(f"Timeout fetching {url}", code="timeout")
    return DownloadError(f"Network error fetching {url}: {exc}", code="network_error")


def fetch_to_staging(
    client: httpx.Client,
    url: str,
    staging_dir: Path,
    expected_checksum: str = "",
    timeout: float = DOWNLOAD_TIMEOUT,
) -> Path:
    """Download ``url`` into the staging directory.

    Args:
        client: HTTPX client instance.
        url: URL to download.
        staging_dir: Staging directory.
        expected_checksum: SHA256 checksum, or empty for none.
        timeout: Download timeout in seconds.

    Returns:
        Path of the staged file.

    Raises:
        DownloadError: If the download fails.
        VerificationError: If a checksum was given and does not match.
    """
    dest_path = staging_path_for(url, staging_dir)
    part_path = dest_path.with_name(dest_path.name + PARTIAL_SUFFIX)
    sha256 = hashlib.sha256()
    logger.info("Downloading %s to %s", url, dest_path)

    try:
        staging_dir.mkdir(parents=True, exist_ok=True)
        with client.stream("GET", url, timeout=timeout) as response:
            response.raise_for_status()
            with part_path.open("wb") as f:
                for chunk in response.iter_bytes(DOWNLOAD_CHUNK_SIZE):
                    f.write(chunk)
                    sha256.update(chunk)
    except httpx.HTTPError as e:
        part_path.unlink(missing_ok=True)
        raise transport_error(url, e) from e
    except OSError as e:
        part_path.unlink(missing_ok=True)
        raise DownloadError(f"OS error writing {part_path}: {e}", code="os_error") from e

    digest = sha256.hexdigest()
    if expected_checksum and digest != expected_checksum.lower():
        part_path.unlink(missing_ok=True)
        raise VerificationError(
            f"Checksum mismatch for {url}: expected {expected_checksum}, got {digest}",
            code="checksum_mismatch",
        )

    try:
        part_path.replace(dest_path)
    except OSError as e:
        raise DownloadError(f"OS error staging {dest_path}: {e}", code="os_error") from e

    logger.debug("Staged %s (sha256 %s)", dest_path.name, digest)
    return dest_path


def discard_staged(*paths: Path) -> None:
    """Delete staged files that must not be trusted or reused."""
    for path in paths:
        path.unlink(missing_ok=True)
        logger.debug("Discarded staged file %s", path)


__all__ = [
    "DOWNLOAD_TIMEOUT",
    "discard_staged",
    "fetch_to_staging",
    "staging_path_for",
    "transport_error",
]
