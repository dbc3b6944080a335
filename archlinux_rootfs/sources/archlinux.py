"""Arch Linux bootstrap tarball source.

``ArchLinuxHTTP.run`` is the whole pipeline:

1. validate the base URL and decide whether the signature must be checked
2. resolve the release (latest from the download page if not configured)
3. locate the tarball
4. download it, and its signature when required, and verify
5. extract it into the rootfs directory and flatten ``root.{arch}``

Every step is terminal on failure. Nothing is retried, locked, or cached
here; see ``archlinux_rootfs.sources.service`` for the locked entry point.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

import httpx

from archlinux_rootfs.config import ARCHLINUX_DOWNLOAD_PAGE, DEFAULT_KEYSERVER
from archlinux_rootfs.sources.definition import SourceSpec
from archlinux_rootfs.sources.errors import VerificationError
from archlinux_rootfs.sources.extract import extract_archive, normalize_layout
from archlinux_rootfs.sources.fetch import (
    DOWNLOAD_TIMEOUT,
    discard_staged,
    fetch_to_staging,
)
from archlinux_rootfs.sources.locator import (
    ArtifactReference,
    build_artifact_reference,
    parse_base_url,
)
from archlinux_rootfs.sources.policy import decide_verification, requires_signature
from archlinux_rootfs.sources.release import get_latest_release
from archlinux_rootfs.sources.verify import verify_signature
from archlinux_rootfs.types import (
    SourceResult,
    VerificationDecision,
    VerificationResult,
)

logger = logging.getLogger(__name__)

SignatureVerifier = Callable[[Path, Path, Sequence[str], str | None], bool]
ArchiveExtractor = Callable[[Path, Path], None]


class ArchLinuxHTTP:
    """Downloader for Arch Linux bootstrap tarballs.

    Args:
        client: HTTPX client used for every request.
        staging_dir: Where the tarball and its signature are downloaded to.
        index_url: Page scraped for the latest release.
        verifier: Detached signature check, ``verify_signature`` by default.
        extractor: Archive extraction, ``extract_archive`` by default.
        default_keyserver: Keyserver used when the definition names none.
        download_timeout: Timeout for each download, in seconds.
    """

    def __init__(
        self,
        client: httpx.Client,
        staging_dir: Path,
        index_url: str = ARCHLINUX_DOWNLOAD_PAGE,
        verifier: SignatureVerifier = verify_signature,
        extractor: ArchiveExtractor = extract_archive,
        default_keyserver: str = DEFAULT_KEYSERVER,
        download_timeout: float = DOWNLOAD_TIMEOUT,
    ) -> None:
        self.client = client
        self.staging_dir = staging_dir
        self.index_url = index_url
        self.verifier = verifier
        self.extractor = extractor
        self.default_keyserver = default_keyserver
        self.download_timeout = download_timeout

    def check_policy(self, spec: SourceSpec) -> VerificationDecision:
        """Validate the base URL and decide verification, without any request.

        The artifact URL always has the base URL's scheme, so the decision
        made here holds for the artifact.

        Raises:
            SourceConfigError: If the base URL is malformed.
            PolicyError: If the transport is insecure and no keys are given.
        """
        parse_base_url(spec.url)
        decision = decide_verification(spec.url, spec.skip_verification, spec.keys)
        logger.debug("Verification decision for %s: %s", spec.url, decision.value)
        return decision

    def resolve_release(self, spec: SourceSpec) -> str:
        """Return the configured release, or the latest one."""
        if spec.release:
            return spec.release
        return get_latest_release(self.client, self.index_url)

    def locate(self, spec: SourceSpec, release: str) -> ArtifactReference:
        return build_artifact_reference(
            spec.url, release, spec.architecture_mapped, self.staging_dir
        )

    def fetch_and_verify(
        self,
        spec: SourceSpec,
        artifact: ArtifactReference,
        decision: VerificationDecision,
    ) -> VerificationResult:
        """Download the tarball and, when required, check its signature.

        Raises:
            DownloadError: If the tarball or its signature cannot be fetched.
            SignatureCheckError: If the signature check cannot be carried out.
            VerificationError: If the signature is not valid.
        """
        fetch_to_staging(
            self.client, artifact.url, self.staging_dir, timeout=self.download_timeout
        )

        if not requires_signature(decision):
            if decision is VerificationDecision.SKIP:
                logger.warning(
                    "Using %s without signature verification", artifact.filename
                )
                return VerificationResult.SKIPPED
            return VerificationResult.NOT_REQUIRED

        fetch_to_staging(
            self.client,
            artifact.signature_url,
            self.staging_dir,
            timeout=self.download_timeout,
        )

        valid = self.verifier(
            artifact.staging_path,
            artifact.signature_path,
            spec.keys,
            spec.keyserver or self.default_keyserver,
        )
        if not valid:
            discard_staged(artifact.staging_path, artifact.signature_path)
            raise VerificationError("Failed to verify tarball")

        return VerificationResult.PASSED

    def run(self, spec: SourceSpec, rootfs_dir: Path) -> SourceResult:
        """Populate ``rootfs_dir`` with the Arch Linux root filesystem.

        Args:
            spec: Source definition.
            rootfs_dir: Destination directory.

        Returns:
            SourceResult describing what was installed.

        Raises:
            SourceError: On any failure. If the failure happens after
                extraction started, ``rootfs_dir`` is left unusable.
        """
        decision = self.check_policy(spec)
        release = self.resolve_release(spec)
        artifact = self.locate(spec, release)

        verification = self.fetch_and_verify(spec, artifact, decision)

        self.extractor(artifact.staging_path, rootfs_dir)
        normalize_layout(rootfs_dir, spec.architecture_mapped)

        logger.info("Arch Linux %s rootfs ready in %s", release, rootfs_dir)
        return SourceResult(
            release=release,
            artifact_url=artifact.url,
            verification=verification,
            rootfs_dir=rootfs_dir,
        )


__all__ = ["ArchLinuxHTTP"]
