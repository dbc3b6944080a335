"""Tests for the rootfs acquisition service."""

import io
import tarfile

import httpx
import pytest
import respx

from archlinux_rootfs.config import Settings
from archlinux_rootfs.sources.definition import SourceSpec
from archlinux_rootfs.sources.errors import PolicyError
from archlinux_rootfs.sources.service import acquire_rootfs, staging_lock
from archlinux_rootfs.types import VerificationResult

BASE_URL = "https://mirror.example.org/iso"
FILENAME = "archlinux-bootstrap-2024.01.01-x86_64.tar.gz"
TARBALL_URL = f"{BASE_URL}/2024.01.01/{FILENAME}"


def bootstrap_tarball() -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        info = tarfile.TarInfo(name="root.x86_64/etc/hostname")
        info.size = 4
        tar.addfile(info, io.BytesIO(b"arch"))
    return buf.getvalue()


@pytest.fixture
def settings(tmp_path):
    return Settings(tmp_dir=tmp_path / "staging")


class TestStagingLock:
    """Tests for staging_lock context manager."""

    def test_creates_lock_file(self, tmp_path):
        """Should create a lock file named after the staged artifact."""
        with staging_lock(tmp_path, FILENAME):
            assert (tmp_path / ".locks" / f"{FILENAME}.lock").exists()

    def test_reacquire_after_release(self, tmp_path):
        """Should be acquirable again once released."""
        with staging_lock(tmp_path, FILENAME, timeout=1):
            pass
        with staging_lock(tmp_path, FILENAME, timeout=1):
            pass

    def test_same_artifact_contends(self, tmp_path):
        """Should not be held twice for the same artifact."""
        with staging_lock(tmp_path, FILENAME):
            with pytest.raises(TimeoutError):
                with staging_lock(tmp_path, FILENAME, timeout=0):
                    pass

    def test_other_artifact_independent(self, tmp_path):
        """Should not block runs staging a different artifact."""
        other = "archlinux-bootstrap-2024.01.01-aarch64.tar.gz"
        with staging_lock(tmp_path, FILENAME):
            with staging_lock(tmp_path, other, timeout=0):
                pass


class TestAcquireRootfs:
    """Tests for acquire_rootfs function."""

    @respx.mock
    def test_latest_and_explicit_release_share_lock(self, tmp_path, settings):
        """Should lock on the resolved release, not on "latest"."""
        respx.get(settings.index_url).mock(
            return_value=httpx.Response(
                200,
                text='<div id="arch-downloads"><ul><li>2024.01.01</li></ul></div>',
            )
        )
        spec = SourceSpec(url=BASE_URL)

        # An explicit-release run of the same artifact holds the lock
        with staging_lock(settings.staging_dir, FILENAME):
            with pytest.raises(TimeoutError):
                acquire_rootfs(
                    spec, tmp_path / "rootfs", settings=settings, lock_timeout=0
                )

        assert not (tmp_path / "rootfs").exists()

    @respx.mock
    def test_with_client(self, tmp_path, settings):
        """Should run the source with the given client."""
        respx.get(TARBALL_URL).mock(
            return_value=httpx.Response(200, content=bootstrap_tarball())
        )
        spec = SourceSpec(url=BASE_URL, release="2024.01.01")
        rootfs = tmp_path / "rootfs"

        with httpx.Client() as client:
            result = acquire_rootfs(spec, rootfs, settings=settings, client=client)

        assert result.verification is VerificationResult.NOT_REQUIRED
        assert result.rootfs_dir == rootfs
        assert (rootfs / "etc" / "hostname").read_bytes() == b"arch"
        assert (settings.staging_dir / FILENAME).exists()

    @respx.mock
    def test_managed_client(self, tmp_path, settings):
        """Should create its own client when none is given."""
        respx.get(TARBALL_URL).mock(
            return_value=httpx.Response(200, content=bootstrap_tarball())
        )
        spec = SourceSpec(url=BASE_URL, release="2024.01.01")

        result = acquire_rootfs(spec, tmp_path / "rootfs", settings=settings)

        assert result.release == "2024.01.01"

    @respx.mock
    def test_uses_index_url_from_settings(self, tmp_path):
        """Should resolve the latest release from the configured index."""
        settings = Settings(
            tmp_dir=tmp_path / "staging", index_url="https://index.example.org/"
        )
        respx.get("https://index.example.org/").mock(
            return_value=httpx.Response(
                200,
                text='<div id="arch-downloads"><ul><li>2024.01.01</li></ul></div>',
            )
        )
        respx.get(TARBALL_URL).mock(
            return_value=httpx.Response(200, content=bootstrap_tarball())
        )
        spec = SourceSpec(url=BASE_URL)

        result = acquire_rootfs(spec, tmp_path / "rootfs", settings=settings)

        assert result.release == "2024.01.01"

    @respx.mock
    def test_error_propagates(self, tmp_path, settings):
        """Should re-raise source errors."""
        spec = SourceSpec(url="http://mirror.example.org/iso", release="2024.01.01")

        with pytest.raises(PolicyError):
            acquire_rootfs(spec, tmp_path / "rootfs", settings=settings)

        assert len(respx.calls) == 0
