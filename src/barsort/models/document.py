"""Document and page image models."""

from pathlib import Path

from pydantic import ConfigDict, Field

from .base import BaseIRModel

PDF_SUFFIX = ".pdf"
ARTIFACT_SUFFIX = ".jpg"


class SourceDocument(BaseIRModel):
    """
    A PDF discovered in the input folder.

    Immutable once discovered. Only files whose suffix is exactly ``.pdf``
    (lowercase) are eligible.
    """

    source_path: str = Field(..., description="Original file path")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_path(cls, path: Path) -> "SourceDocument":
        return cls(source_path=str(path))

    @staticmethod
    def is_eligible(path: Path) -> bool:
        """Check whether a directory entry should be processed."""
        return path.suffix == PDF_SUFFIX and path.is_file()

    @property
    def source_path_obj(self) -> Path:
        """Return source path as Path object."""
        return Path(self.source_path)

    @property
    def filename(self) -> str:
        return self.source_path_obj.name

    @property
    def artifact_path(self) -> Path:
        """Temporary raster file beside the source, same base name, ``.jpg``."""
        return self.source_path_obj.with_suffix(ARTIFACT_SUFFIX)


class RenderedPage(BaseIRModel):
    """First page of a document rasterized to the temporary artifact."""

    image_path: str
    width_pixels: int = Field(..., gt=0)
    height_pixels: int = Field(..., gt=0)
    dpi: int = Field(default=200, gt=0)
    page_number: int = Field(default=1, ge=1, description="Always the first page")

    @property
    def image_path_obj(self) -> Path:
        """Return image path as Path object."""
        return Path(self.image_path)


class PreprocessedImage(BaseIRModel):
    """Rendered page after the enhancement chain, stored at the same path."""

    image_path: str
    width_pixels: int = Field(..., gt=0)
    height_pixels: int = Field(..., gt=0)

    @property
    def image_path_obj(self) -> Path:
        """Return image path as Path object."""
        return Path(self.image_path)
