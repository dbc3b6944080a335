"""Rootfs source module.

This module handles:
- Resolving the latest Arch Linux release from the download page
- Locating the bootstrap tarball for a release and architecture
- Deciding, downloading and checking signatures
- Extracting the tarball and flattening its nested root directory
"""

from archlinux_rootfs.sources.archlinux import ArchLinuxHTTP
from archlinux_rootfs.sources.definition import (
    SourceSpec,
    load_definition,
    map_architecture,
)
from archlinux_rootfs.sources.errors import (
    DownloadError,
    ExtractionError,
    LayoutError,
    PolicyError,
    ResolutionError,
    SignatureCheckError,
    SourceConfigError,
    SourceError,
    VerificationError,
)
from archlinux_rootfs.sources.locator import ArtifactReference, build_artifact_url
from archlinux_rootfs.sources.policy import decide_verification
from archlinux_rootfs.sources.service import acquire_rootfs, staging_lock

__all__ = [
    # Source
    "ArchLinuxHTTP",
    "ArtifactReference",
    "SourceSpec",
    "build_artifact_url",
    "decide_verification",
    "load_definition",
    "map_architecture",
    # Errors
    "DownloadError",
    "ExtractionError",
    "LayoutError",
    "PolicyError",
    "ResolutionError",
    "SignatureCheckError",
    "SourceConfigError",
    "SourceError",
    "VerificationError",
    # Service
    "acquire_rootfs",
    "staging_lock",
]
