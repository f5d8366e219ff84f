"""Custom exceptions used across pdfdelta."""

__all__ = [
    "PdfDeltaError",
    "ScanError",
    "LoadError",
    "RenderError",
    "ModifyError",
    "SaveError",
    "CommitError",
    "ConfigError",
    "EventParseError",
    "EventQueryError",
]


class PdfDeltaError(Exception):
    """Base class for every error raised by pdfdelta."""

    pass


class ScanError(PdfDeltaError):
    """Raised when a directory tree cannot be traversed."""

    pass


class LoadError(PdfDeltaError):
    """Raised when a PDF cannot be opened or parsed."""

    pass


class RenderError(PdfDeltaError):
    """Raised when a page fails to rasterize."""

    pass


class ModifyError(PdfDeltaError):
    """Raised when deleting a page or inserting an overlay fails."""

    pass


class SaveError(PdfDeltaError):
    """Raised when the annotated document cannot be written."""

    pass


class CommitError(PdfDeltaError):
    """Raised when the current file cannot be promoted to baseline."""

    pass


class ConfigError(PdfDeltaError):
    """Raised for missing or invalid configuration."""

    pass


class EventParseError(PdfDeltaError):
    """Raised when a diff file name does not follow the expected pattern."""

    pass


class EventQueryError(PdfDeltaError):
    """Raised when a diff output directory cannot be listed."""

    pass
