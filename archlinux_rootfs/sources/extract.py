"""Bootstrap tarball extraction and rootfs layout normalization.

The Arch Linux bootstrap tarball nests the whole root filesystem under a
single ``root.{architecture}`` directory. After extraction the nested
directory's children are moved up one level and the nested directory is
removed, in three separately callable phases:

- list_nested_children(): enumerate what has to move
- relocate_children(): move each child into the rootfs top level
- remove_nested_dir(): remove the emptied nested directory
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
from pathlib import Path

from archlinux_rootfs.sources.errors import ExtractionError, LayoutError

logger = logging.getLogger(__name__)


def nested_dir_name(architecture: str) -> str:
    """Return the name of the directory the tarball nests everything under."""
    return f"root.{architecture}"


def _check_inside(path: str, dest_path: str) -> bool:
    return os.path.commonpath([path, dest_path]) == dest_path


def _rootfs_filter(member: tarfile.TarInfo, dest_path: str) -> tarfile.TarInfo:
    """Extraction filter keeping permission bits but not ownership.

    Unlike ``tarfile.tar_filter`` this keeps setuid/setgid bits and absolute
    symlink targets, both of which a root filesystem needs. Members written
    through an earlier symlink and hard links are still confined to
    ``dest_path``.
    """
    dest_path = os.path.realpath(dest_path)
    target = os.path.realpath(os.path.join(dest_path, member.name))
    if not _check_inside(target, dest_path):
        raise tarfile.OutsideDestinationError(member, target)
    if member.islnk():
        link_target = os.path.realpath(os.path.join(dest_path, member.linkname))
        if not _check_inside(link_target, dest_path):
            raise tarfile.LinkOutsideDestinationError(member, link_target)
    return member.replace(uid=None, gid=None, uname=None, gname=None, deep=False)


def extract_archive(archive_path: Path, dest_dir: Path) -> None:
    """Extract a tarball into ``dest_dir``.

    Permission bits recorded in the archive are preserved, ownership is not
    applied, and no member may escape ``dest_dir``.

    Args:
        archive_path: Path to the tarball (any compression tarfile reads).
        dest_dir: Destination directory, created if missing.

    Raises:
        ExtractionError: If extraction fails or a member escapes ``dest_dir``.
    """
    logger.info("Extracting %s to %s", archive_path.name, dest_dir)

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)

        with tarfile.open(archive_path, "r:*") as tar:
            members = tar.getmembers()
            if not members:
                raise ExtractionError(
                    f"Archive {archive_path} is empty",
                    code="empty_archive",
                )

            for member in members:
                # Security: prevent path traversal
                member_path = Path(member.name)
                if member_path.is_absolute() or ".." in member_path.parts:
                    raise ExtractionError(
                        f"Refusing to extract {member.name}: path traversal detected",
                        code="path_traversal",
                    )

            tar.extractall(dest_dir, members=members, filter=_rootfs_filter)

    except tarfile.FilterError as e:
        raise ExtractionError(
            f"Refusing to extract from {archive_path}: {e}",
            code="path_traversal",
        ) from e
    except tarfile.TarError as e:
        raise ExtractionError(
            f"Failed to extract {archive_path}: {e}",
            code="tar_error",
        ) from e
    except OSError as e:
        raise ExtractionError(
            f"OS error extracting {archive_path}: {e}",
            code="os_error",
        ) from e

    logger.info("Extracted %d entries to %s", len(members), dest_dir)


def list_nested_children(rootfs_dir: Path, architecture: str) -> list[Path]:
    """List the direct children of the nested ``root.{architecture}`` directory.

    Returns:
        Children sorted by name; empty if the nested directory is empty.

    Raises:
        LayoutError: If the nested directory does not exist.
    """
    nested = rootfs_dir / nested_dir_name(architecture)
    if not nested.is_dir() or nested.is_symlink():
        raise LayoutError(
            f"Expected directory {nested} not found in extracted archive",
            code="nested_dir_missing",
        )
    try:
        return sorted(nested.iterdir(), key=lambda p: p.name)
    except OSError as e:
        raise LayoutError(f"Cannot list {nested}: {e}", code="os_error") from e


def relocate_children(children: list[Path], rootfs_dir: Path) -> None:
    """Move each child into ``rootfs_dir`` under its own base name.

    Raises:
        LayoutError: If a target name already exists or a move fails.
    """
    for child in children:
        target = rootfs_dir / child.name
        if target.exists() or target.is_symlink():
            raise LayoutError(
                f"Cannot move {child} to {target}: target already exists",
                code="name_collision",
            )
        try:
            child.rename(target)
        except OSError as e:
            raise LayoutError(
                f"Failed to move {child} to {target}: {e}",
                code="os_error",
            ) from e
    logger.debug("Moved %d entries into %s", len(children), rootfs_dir)


def remove_nested_dir(rootfs_dir: Path, architecture: str) -> None:
    """Recursively remove the nested directory and anything left in it.

    Raises:
        LayoutError: If removal fails.
    """
    nested = rootfs_dir / nested_dir_name(architecture)
    try:
        shutil.rmtree(nested)
    except FileNotFoundError:
        return
    except OSError as e:
        raise LayoutError(f"Failed to remove {nested}: {e}", code="os_error") from e


def normalize_layout(rootfs_dir: Path, architecture: str) -> list[Path]:
    """Flatten ``rootfs_dir/root.{architecture}`` into ``rootfs_dir``.

    Returns:
        The new top-level paths of the moved entries.

    Raises:
        LayoutError: If the nested directory is missing or a move fails.
    """
    children = list_nested_children(rootfs_dir, architecture)
    if not children:
        logger.warning(
            "Nested directory %s is empty", rootfs_dir / nested_dir_name(architecture)
        )
    relocate_children(children, rootfs_dir)
    remove_nested_dir(rootfs_dir, architecture)
    return [rootfs_dir / child.name for child in children]


__all__ = [
    "extract_archive",
    "list_nested_children",
    "nested_dir_name",
    "normalize_layout",
    "relocate_children",
    "remove_nested_dir",
]
