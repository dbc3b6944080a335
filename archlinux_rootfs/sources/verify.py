"""Detached GPG signature verification.

Each check runs against a throwaway GnuPG home that only contains the keys
received for it, so a signature is valid only if it was made by one of the
configured keys.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Sequence
from pathlib import Path

import gnupg

from archlinux_rootfs.config import DEFAULT_KEYSERVER
from archlinux_rootfs.sources.errors import SignatureCheckError

logger = logging.getLogger(__name__)


def _receive_keys(gpg: gnupg.GPG, keys: Sequence[str], keyserver: str) -> None:
    result = gpg.recv_keys(keyserver, *keys)
    if not result.fingerprints:
        raise SignatureCheckError(
            f"Failed to receive keys {', '.join(keys)} from {keyserver}"
        )
    logger.debug("Received %d key(s) from %s", len(result.fingerprints), keyserver)


def verify_signature(
    data_path: Path,
    sig_path: Path,
    keys: Sequence[str],
    keyserver: str | None = None,
) -> bool:
    """Verify a detached signature against a set of trusted keys.

    Args:
        data_path: Signed file.
        sig_path: Detached signature of ``data_path``.
        keys: Fingerprints or key ids of the trusted signers.
        keyserver: Keyserver to receive ``keys`` from.

    Returns:
        True if the signature is good and made by one of ``keys``.

    Raises:
        SignatureCheckError: If the check cannot be carried out (gpg missing,
            no keys, keys not received, signature file unreadable).
    """
    if not keys:
        raise SignatureCheckError("No keys given to verify against")
    keyserver = keyserver or DEFAULT_KEYSERVER

    with tempfile.TemporaryDirectory(prefix="archlinux-rootfs-gnupg-") as gnupghome:
        try:
            gpg = gnupg.GPG(gnupghome=gnupghome)
        except (OSError, ValueError) as e:
            raise SignatureCheckError(f"gpg is not usable: {e}") from e

        _receive_keys(gpg, keys, keyserver)

        try:
            with sig_path.open("rb") as sig:
                verified = gpg.verify_file(sig, str(data_path))
        except OSError as e:
            raise SignatureCheckError(f"Cannot read signature {sig_path}: {e}") from e

    if verified.valid:
        logger.info(
            "Good signature on %s from %s", data_path.name, verified.fingerprint
        )
        return True

    logger.warning("Bad signature on %s: %s", data_path.name, verified.status)
    return False


__all__ = ["verify_signature"]
