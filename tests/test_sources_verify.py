"""Tests for detached signature verification.

python-gnupg is patched out; these tests check how its results are
interpreted, not GnuPG itself.
"""

from unittest.mock import MagicMock, patch

import pytest

from archlinux_rootfs.config import DEFAULT_KEYSERVER
from archlinux_rootfs.sources.errors import SignatureCheckError
from archlinux_rootfs.sources.verify import verify_signature

KEY = "4AA4767BBC9C4B1D18AE28B77F2D434B9741E8AC"


@pytest.fixture
def signed_files(tmp_path):
    """Create a data file and its (fake) detached signature."""
    data = tmp_path / "archlinux-bootstrap-2024.01.01-x86_64.tar.gz"
    sig = tmp_path / "archlinux-bootstrap-2024.01.01-x86_64.tar.gz.sig"
    data.write_bytes(b"tarball")
    sig.write_bytes(b"signature")
    return data, sig


@pytest.fixture
def mock_gpg():
    """Patch gnupg.GPG and return the instance the code under test gets."""
    with patch("archlinux_rootfs.sources.verify.gnupg.GPG") as gpg_cls:
        gpg = gpg_cls.return_value
        gpg.recv_keys.return_value = MagicMock(fingerprints=[KEY])
        gpg.verify_file.return_value = MagicMock(
            valid=True, fingerprint=KEY, status="signature valid"
        )
        yield gpg


class TestVerifySignature:
    """Tests for verify_signature function."""

    def test_valid_signature(self, signed_files, mock_gpg):
        """Should return True for a good signature."""
        data, sig = signed_files

        assert verify_signature(data, sig, [KEY], "hkps://keys.example.org") is True

        mock_gpg.recv_keys.assert_called_once_with("hkps://keys.example.org", KEY)
        args, _ = mock_gpg.verify_file.call_args
        assert args[1] == str(data)

    def test_invalid_signature(self, signed_files, mock_gpg):
        """Should return False for a bad signature."""
        data, sig = signed_files
        mock_gpg.verify_file.return_value = MagicMock(
            valid=False, fingerprint=None, status="signature bad"
        )

        assert verify_signature(data, sig, [KEY], "hkps://keys.example.org") is False

    def test_default_keyserver(self, signed_files, mock_gpg):
        """Should use the default keyserver when none is given."""
        data, sig = signed_files

        verify_signature(data, sig, [KEY])

        mock_gpg.recv_keys.assert_called_once_with(DEFAULT_KEYSERVER, KEY)

    def test_throwaway_gnupghome(self, signed_files):
        """Should not use the caller's GnuPG home."""
        data, sig = signed_files
        with patch("archlinux_rootfs.sources.verify.gnupg.GPG") as gpg_cls:
            gpg = gpg_cls.return_value
            gpg.recv_keys.return_value = MagicMock(fingerprints=[KEY])
            gpg.verify_file.return_value = MagicMock(valid=True, fingerprint=KEY)

            verify_signature(data, sig, [KEY], "hkps://keys.example.org")

        _, kwargs = gpg_cls.call_args
        assert "archlinux-rootfs-gnupg-" in kwargs["gnupghome"]

    def test_keys_not_received(self, signed_files, mock_gpg):
        """Should raise SignatureCheckError when no key could be received."""
        data, sig = signed_files
        mock_gpg.recv_keys.return_value = MagicMock(fingerprints=[])

        with pytest.raises(SignatureCheckError) as exc_info:
            verify_signature(data, sig, [KEY], "hkps://keys.example.org")

        assert exc_info.value.code == "signature_check_error"
        mock_gpg.verify_file.assert_not_called()

    def test_no_keys(self, signed_files, mock_gpg):
        """Should refuse to verify against an empty key list."""
        data, sig = signed_files

        with pytest.raises(SignatureCheckError):
            verify_signature(data, sig, [], "hkps://keys.example.org")

    def test_gpg_unavailable(self, signed_files):
        """Should raise SignatureCheckError when gpg cannot be started."""
        data, sig = signed_files
        with (
            patch(
                "archlinux_rootfs.sources.verify.gnupg.GPG",
                side_effect=OSError("Unable to run gpg"),
            ),
            pytest.raises(SignatureCheckError) as exc_info,
        ):
            verify_signature(data, sig, [KEY], "hkps://keys.example.org")

        assert "gpg is not usable" in str(exc_info.value)

    def test_missing_signature_file(self, signed_files, mock_gpg):
        """Should raise SignatureCheckError when the signature is missing."""
        data, sig = signed_files
        sig.unlink()

        with pytest.raises(SignatureCheckError):
            verify_signature(data, sig, [KEY], "hkps://keys.example.org")
