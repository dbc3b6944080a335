"""Tests for the signature verification policy gate."""

import pytest

from archlinux_rootfs.sources.errors import PolicyError
from archlinux_rootfs.sources.policy import (
    decide_verification,
    is_secure_transport,
    requires_signature,
)
from archlinux_rootfs.types import VerificationDecision

HTTP_URL = "http://mirror.example.com/iso/2024.01.01/archlinux-bootstrap-2024.01.01-x86_64.tar.gz"
HTTPS_URL = "https://mirror.example.com/iso/2024.01.01/archlinux-bootstrap-2024.01.01-x86_64.tar.gz"
KEY = "4AA4767BBC9C4B1D18AE28B77F2D434B9741E8AC"


class TestIsSecureTransport:
    """Tests for is_secure_transport function."""

    def test_https(self):
        assert is_secure_transport(HTTPS_URL) is True

    def test_http(self):
        assert is_secure_transport(HTTP_URL) is False

    def test_uppercase_scheme(self):
        assert is_secure_transport("HTTPS://mirror.example.com/x") is True

    def test_other_scheme(self):
        assert is_secure_transport("ftp://mirror.example.com/x") is False


class TestDecideVerification:
    """Tests for decide_verification function."""

    @pytest.mark.parametrize("url", [HTTP_URL, HTTPS_URL])
    @pytest.mark.parametrize("keys", [[], [KEY]])
    def test_skip_wins(self, url, keys):
        """Should skip regardless of scheme and keys when configured."""
        assert decide_verification(url, True, keys) is VerificationDecision.SKIP

    @pytest.mark.parametrize("keys", [[], [KEY]])
    def test_https_not_required(self, keys):
        """Should not require verification over HTTPS, even without keys."""
        assert (
            decide_verification(HTTPS_URL, False, keys)
            is VerificationDecision.NOT_REQUIRED
        )

    def test_http_with_keys_mandatory(self):
        """Should require verification over HTTP."""
        assert (
            decide_verification(HTTP_URL, False, [KEY])
            is VerificationDecision.MANDATORY
        )

    def test_http_without_keys_fails(self):
        """Should refuse HTTP without keys."""
        with pytest.raises(PolicyError) as exc_info:
            decide_verification(HTTP_URL, False, [])

        assert exc_info.value.code == "keys_required"
        assert "GPG keys are required if downloading from HTTP" in str(exc_info.value)


class TestRequiresSignature:
    """Tests for requires_signature function."""

    @pytest.mark.parametrize(
        ("decision", "expected"),
        [
            (VerificationDecision.SKIP, False),
            (VerificationDecision.NOT_REQUIRED, False),
            (VerificationDecision.MANDATORY, True),
        ],
    )
    def test_requires_signature(self, decision, expected):
        assert requires_signature(decision) is expected
