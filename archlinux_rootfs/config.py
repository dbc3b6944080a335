"""Configuration settings for archlinux_rootfs.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

import tempfile
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ARCHLINUX_DOWNLOAD_PAGE = "https://archlinux.org/download/"

DEFAULT_KEYSERVER = "hkps://keyserver.ubuntu.com"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the ARCH_ROOTFS_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="ARCH_ROOTFS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    tmp_dir: Path | None = Field(
        default=None,
        description="Staging directory for downloads (uses system default if not set)",
    )

    # Upstream
    index_url: str = Field(
        default=ARCHLINUX_DOWNLOAD_PAGE,
        description="Page scraped to find the latest release",
    )
    default_keyserver: str = Field(
        default=DEFAULT_KEYSERVER,
        description="Keyserver used when the definition does not name one",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Timeouts (in seconds)
    http_timeout: int = Field(
        default=30,
        ge=1,
        description="Timeout for small requests (index page, signatures)",
    )
    download_timeout: int = Field(
        default=3600,
        ge=60,
        description="Timeout for tarball downloads",
    )

    @property
    def staging_dir(self) -> Path:
        """Directory where artifacts and signatures are staged."""
        if self.tmp_dir is not None:
            return self.tmp_dir
        return Path(tempfile.gettempdir())


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = [
    "ARCHLINUX_DOWNLOAD_PAGE",
    "DEFAULT_KEYSERVER",
    "Settings",
    "get_settings",
    "print_settings_json",
]
