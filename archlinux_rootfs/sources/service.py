"""Rootfs acquisition service.

This module provides the high-level entry point around ``ArchLinuxHTTP``:
- acquire_rootfs(): run the source with settings, a managed HTTP client and
  a staging lock
- staging_lock(): serialize runs that would share a staging file

The source itself provides no synchronization. Two runs staging the same
tarball on one host would otherwise race on it, whether they asked for the
release explicitly or resolved it as the latest one.
"""

from __future__ import annotations

import fcntl
import logging
import os
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from archlinux_rootfs.config import get_settings
from archlinux_rootfs.sources.archlinux import ArchLinuxHTTP
from archlinux_rootfs.sources.definition import SourceSpec
from archlinux_rootfs.sources.errors import SourceError
from archlinux_rootfs.types import SourceResult

if TYPE_CHECKING:
    from archlinux_rootfs.config import Settings

logger = logging.getLogger(__name__)


@contextmanager
def staging_lock(
    staging_dir: Path,
    artifact_name: str,
    timeout: float | None = None,
) -> Iterator[None]:
    """Acquire the lock guarding one staged artifact and its signature.

    Args:
        staging_dir: Staging directory.
        artifact_name: File name the artifact is staged under.
        timeout: Lock acquisition timeout in seconds (None = blocking).

    Yields:
        None when lock is acquired.

    Raises:
        TimeoutError: If lock cannot be acquired within timeout.
    """
    lock_dir = staging_dir / ".locks"
    lock_dir.mkdir(parents=True, exist_ok=True)
    lock_file = lock_dir / f"{artifact_name}.lock"

    logger.debug("Acquiring staging lock %s", lock_file.name)

    fd = os.open(str(lock_file), os.O_RDWR | os.O_CREAT, 0o600)
    try:
        if timeout is not None:
            start = time.monotonic()
            while True:
                try:
                    fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError as e:
                    if time.monotonic() - start >= timeout:
                        raise TimeoutError(
                            f"Timeout waiting for staging lock {lock_file.name}"
                        ) from e
                    time.sleep(0.1)
        else:
            fcntl.flock(fd, fcntl.LOCK_EX)

        logger.debug("Staging lock acquired %s", lock_file.name)
        yield
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)
        logger.debug("Staging lock released %s", lock_file.name)


def acquire_rootfs(
    spec: SourceSpec,
    rootfs_dir: Path,
    settings: Settings | None = None,
    client: httpx.Client | None = None,
    lock_timeout: float | None = None,
) -> SourceResult:
    """Fetch, verify and unpack an Arch Linux rootfs into ``rootfs_dir``.

    The release is resolved before the staging lock is taken; only the
    download, verification and extraction run under it.

    Args:
        spec: Source definition.
        rootfs_dir: Destination directory.
        settings: Application settings (uses defaults if not provided).
        client: HTTPX client (creates one if not provided).
        lock_timeout: Staging lock timeout in seconds (None = blocking).

    Returns:
        SourceResult describing what was installed.

    Raises:
        SourceError: If any step of the source fails.
        TimeoutError: If the staging lock cannot be acquired in time.
    """
    if settings is None:
        settings = get_settings()

    staging_dir = settings.staging_dir
    staging_dir.mkdir(parents=True, exist_ok=True)

    manage_client = client is None
    http_client: httpx.Client = (
        httpx.Client(follow_redirects=True, timeout=settings.http_timeout)
        if manage_client
        else client  # type: ignore[assignment]
    )

    source = ArchLinuxHTTP(
        http_client,
        staging_dir,
        index_url=settings.index_url,
        default_keyserver=settings.default_keyserver,
        download_timeout=settings.download_timeout,
    )

    try:
        # Pin the release first so the lock names the file actually staged
        source.check_policy(spec)
        release = source.resolve_release(spec)
        pinned = spec.model_copy(update={"release": release})
        artifact = source.locate(pinned, release)

        with staging_lock(staging_dir, artifact.filename, timeout=lock_timeout):
            return source.run(pinned, rootfs_dir)

    except SourceError as e:
        logger.error("Failed to acquire Arch Linux rootfs (%s): %s", e.code, e)
        raise

    finally:
        if manage_client:
            http_client.close()


__all__ = ["acquire_rootfs", "staging_lock"]
