"""Arch Linux rootfs source - fetch, verify and unpack Arch Linux bootstrap images.

This package provides the Arch Linux "source" of an image-building pipeline:
resolving the release, downloading the bootstrap tarball, verifying it when
required, and unpacking it into a flat root filesystem directory.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
