"""Errors raised by the rootfs sources.

Every error carries a ``code`` for structured error handling. Errors are
never retried or recovered locally; they propagate to the caller of the
source run.
"""


class SourceError(Exception):
    """Base class for all source errors."""

    default_code = "source_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        """Initialize SourceError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code or self.default_code


class SourceConfigError(SourceError):
    """Raised when the source definition is unusable (e.g. malformed URL)."""

    default_code = "invalid_config"


class PolicyError(SourceError):
    """Raised when the verification policy forbids the download."""

    default_code = "keys_required"


class ResolutionError(SourceError):
    """Raised when the latest release cannot be determined."""

    default_code = "release_not_found"


class DownloadError(SourceError):
    """Raised when a download fails."""

    default_code = "download_error"


class VerificationError(SourceError):
    """Raised when a downloaded artifact fails an integrity check."""

    default_code = "verification_failed"


class SignatureCheckError(SourceError):
    """Raised when a signature check cannot be carried out at all."""

    default_code = "signature_check_error"


class ExtractionError(SourceError):
    """Raised when archive extraction fails."""

    default_code = "extraction_error"


class LayoutError(SourceError):
    """Raised when the extracted tree cannot be normalized."""

    default_code = "layout_error"


__all__ = [
    "DownloadError",
    "ExtractionError",
    "LayoutError",
    "PolicyError",
    "ResolutionError",
    "SignatureCheckError",
    "SourceConfigError",
    "SourceError",
    "VerificationError",
]
