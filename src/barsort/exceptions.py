"""Error taxonomy for the barcode sorting pipeline."""

from pathlib import Path
from typing import Optional


class BarsortError(Exception):
    """Base error for pipeline failures."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ScanError(BarsortError):
    """Raised when the input folder cannot be listed."""


class RenderError(BarsortError):
    """Raised when a PDF cannot be opened or its first page cannot be rendered."""


class DecodeMiss(BarsortError):
    """No barcode was found, or the decoder reported an error."""


class DispositionError(BarsortError):
    """Raised when a document cannot be moved to its destination."""


class CleanupError(BarsortError):
    """Raised when the temporary raster artifact cannot be deleted."""
