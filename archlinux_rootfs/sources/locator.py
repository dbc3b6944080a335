"""Artifact location for Arch Linux bootstrap tarballs.

Everything here is pure: the same (base URL, release, architecture,
staging directory) always yields the same reference, and nothing touches
the network.
"""

from dataclasses import dataclass
from pathlib import Path

import httpx

from archlinux_rootfs.sources.errors import SourceConfigError

SIGNATURE_SUFFIX = ".sig"


@dataclass(frozen=True)
class ArtifactReference:
    """Where a bootstrap tarball lives remotely and where it is staged."""

    filename: str
    url: str
    staging_path: Path

    @property
    def signature_url(self) -> str:
        return self.url + SIGNATURE_SUFFIX

    @property
    def signature_path(self) -> Path:
        return self.staging_path.with_name(self.filename + SIGNATURE_SUFFIX)


def build_artifact_filename(release: str, architecture: str) -> str:
    """Return the bootstrap tarball name for a release and architecture."""
    if not release or "/" in release:
        raise SourceConfigError(f"invalid release {release!r}", code="invalid_release")
    if not architecture:
        raise SourceConfigError(
            "architecture must not be empty", code="invalid_architecture"
        )
    return f"archlinux-bootstrap-{release}-{architecture}.tar.gz"


def parse_base_url(base_url: str) -> httpx.URL:
    """Parse a mirror base URL, rejecting anything without scheme and host.

    Raises:
        SourceConfigError: If the URL is malformed.
    """
    try:
        url = httpx.URL(base_url)
    except (httpx.InvalidURL, TypeError) as e:
        raise SourceConfigError(
            f"Invalid source URL {base_url!r}: {e}", code="invalid_url"
        ) from e
    if not url.scheme or not url.host:
        raise SourceConfigError(
            f"Invalid source URL {base_url!r}: scheme and host are required",
            code="invalid_url",
        )
    return url


def build_artifact_url(base_url: str, release: str, architecture: str) -> str:
    """Build the download URL of a bootstrap tarball.

    Args:
        base_url: Mirror base URL, e.g. 'https://example.org/arch'.
        release: Release, e.g. '2024.01.01'.
        architecture: Arch Linux architecture, e.g. 'x86_64'.

    Returns:
        '{base_url}/{release}/archlinux-bootstrap-{release}-{architecture}.tar.gz'

    Raises:
        SourceConfigError: If the base URL, release or architecture is invalid.
    """
    filename = build_artifact_filename(release, architecture)
    parse_base_url(base_url)
    base = base_url[:-1] if base_url.endswith("/") else base_url
    url = f"{base}/{release}/{filename}"
    # The release is interpolated into the path, so re-check the result
    parse_base_url(url)
    return url


def build_artifact_reference(
    base_url: str,
    release: str,
    architecture: str,
    staging_dir: Path,
) -> ArtifactReference:
    """Build the full artifact reference, including staging paths.

    The staging path is named after the last path segment of the URL, so two
    runs for the same release and architecture share it.
    """
    url = build_artifact_url(base_url, release, architecture)
    filename = url.rsplit("/", 1)[-1]
    return ArtifactReference(
        filename=filename,
        url=url,
        staging_path=staging_dir / filename,
    )


__all__ = [
    "ArtifactReference",
    "SIGNATURE_SUFFIX",
    "build_artifact_filename",
    "build_artifact_reference",
    "build_artifact_url",
    "parse_base_url",
]
