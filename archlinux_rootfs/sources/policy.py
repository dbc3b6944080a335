"""Signature verification policy.

The decision is made once, before anything is downloaded:

1. verification skipped by configuration -> SKIP
2. secure transport (https) -> NOT_REQUIRED, the transport is trusted
3. insecure transport -> MANDATORY, and at least one trusted key is required

Plain HTTP without a trust anchor is never attempted.
"""

import logging
from collections.abc import Sequence

import httpx

from archlinux_rootfs.sources.errors import PolicyError, SourceConfigError
from archlinux_rootfs.types import VerificationDecision

logger = logging.getLogger(__name__)

SECURE_SCHEMES = frozenset({"https"})


def is_secure_transport(url: str) -> bool:
    """Return True if the URL's scheme encrypts the transport."""
    try:
        scheme = httpx.URL(url).scheme
    except httpx.InvalidURL as e:
        raise SourceConfigError(f"Invalid URL {url!r}: {e}", code="invalid_url") from e
    return scheme.lower() in SECURE_SCHEMES


def decide_verification(
    url: str,
    skip_verification: bool,
    keys: Sequence[str],
) -> VerificationDecision:
    """Decide whether the artifact at ``url`` must be signature-checked.

    Args:
        url: Artifact URL.
        skip_verification: Configuration flag disabling verification.
        keys: Trusted key fingerprints.

    Returns:
        The verification decision.

    Raises:
        PolicyError: If the transport is insecure and no keys are configured.
    """
    if skip_verification:
        logger.debug("Signature verification disabled by configuration")
        return VerificationDecision.SKIP

    if is_secure_transport(url):
        return VerificationDecision.NOT_REQUIRED

    if not keys:
        raise PolicyError("GPG keys are required if downloading from HTTP")

    return VerificationDecision.MANDATORY


def requires_signature(decision: VerificationDecision) -> bool:
    """Return True if the signature file must be fetched and checked."""
    return decision is VerificationDecision.MANDATORY


__all__ = [
    "SECURE_SCHEMES",
    "decide_verification",
    "is_secure_transport",
    "requires_signature",
]
