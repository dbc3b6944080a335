"""Shared type definitions for archlinux_rootfs.

This module contains enums and dataclasses shared across subpackages to
avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class VerificationDecision(str, Enum):
    """Outcome of the verification policy gate, decided before any download."""

    SKIP = "skip"
    NOT_REQUIRED = "not-required"
    MANDATORY = "mandatory"


class VerificationResult(str, Enum):
    """What actually happened to the artifact's signature."""

    SKIPPED = "skipped"
    NOT_REQUIRED = "not-required"
    PASSED = "passed"


@dataclass
class SourceResult:
    """Result of a successful source run."""

    release: str
    artifact_url: str
    verification: VerificationResult
    rootfs_dir: Path


__all__ = [
    "SourceResult",
    "VerificationDecision",
    "VerificationResult",
]
