"""Source definition loading and validation.

An image definition is a YAML or JSON file with ``image`` and ``source``
sections. Only the fields the Arch Linux source needs are read; the
resulting ``SourceSpec`` is frozen and never mutated by the pipeline.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Definition architecture names -> Arch Linux architecture names
ARCHITECTURE_MAP = {
    "amd64": "x86_64",
    "x86_64": "x86_64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
}


def map_architecture(architecture: str) -> str:
    """Map a definition architecture name to the Arch Linux name.

    Unknown names are passed through unchanged.
    """
    return ARCHITECTURE_MAP.get(architecture, architecture)


class SourceSpec(BaseModel):
    """Read-only input of the Arch Linux source.

    Attributes:
        url: Mirror base URL (the directory holding one folder per release).
        release: Release to fetch; empty means "latest".
        architecture: Architecture as written in the definition.
        skip_verification: Never verify signatures when True.
        keys: Fingerprints of keys trusted to sign the tarball.
        keyserver: Keyserver to fetch ``keys`` from (optional).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str = Field(description="Mirror base URL")
    release: str | None = Field(default=None, description="Release, e.g. 2024.01.01")
    architecture: str = Field(default="x86_64", description="Target architecture")
    skip_verification: bool = Field(default=False)
    keys: list[str] = Field(default_factory=list)
    keyserver: str | None = Field(default=None)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate the URL is not blank."""
        v = v.strip()
        if not v:
            raise ValueError("url must not be empty")
        return v

    @field_validator("release", mode="before")
    @classmethod
    def validate_release(cls, v: object) -> str | None:
        """Normalize a blank release to None; reject path separators."""
        if v is None:
            return v
        # YAML may hand us a number for releases like 2024.01
        release = str(v).strip()
        if "/" in release:
            raise ValueError(f"invalid release '{release}'")
        return release or None

    @field_validator("architecture")
    @classmethod
    def validate_architecture(cls, v: str) -> str:
        """Validate the architecture is a single path-safe word."""
        v = v.strip()
        if not v or "/" in v:
            raise ValueError(f"invalid architecture '{v}'")
        return v

    @property
    def architecture_mapped(self) -> str:
        """Architecture name as used in Arch Linux file names."""
        return map_architecture(self.architecture)


def _load_mapping(path: Path) -> dict[str, Any]:
    suffix = path.suffix.lower()
    with open(path, encoding="utf-8") as f:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        elif suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(
                f"Unsupported file extension '{suffix}'. Use .yaml, .yml, or .json"
            )
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping, got {type(data).__name__}")
    return data


def parse_definition(data: dict[str, Any]) -> SourceSpec:
    """Build a SourceSpec from a parsed image definition.

    Args:
        data: Mapping with ``source`` and optional ``image`` sections.

    Returns:
        Validated SourceSpec.

    Raises:
        ValueError: If the ``source`` section is missing.
        pydantic.ValidationError: If fields do not validate.
    """
    source = data.get("source")
    if not isinstance(source, dict):
        raise ValueError("definition has no 'source' section")
    image = data.get("image") or {}

    fields: dict[str, Any] = dict(source)
    # The release and architecture belong to the image section
    if "release" in image:
        fields["release"] = image["release"]
    if "architecture" in image:
        fields["architecture"] = image["architecture"]
    return SourceSpec.model_validate(fields)


def load_definition(path: Path) -> SourceSpec:
    """Load and validate a source definition from a YAML or JSON file.

    Args:
        path: Path to the definition file.

    Returns:
        Validated SourceSpec.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a mapping or has no source section.
        pydantic.ValidationError: If fields do not validate.
    """
    return parse_definition(_load_mapping(path))


__all__ = [
    "ARCHITECTURE_MAP",
    "SourceSpec",
    "load_definition",
    "map_architecture",
    "parse_definition",
]
