"""PDF Rendering Stage - Rasterize the first page of a PDF.

This is the first stage of the pipeline.
Uses PyMuPDF (fitz) for fast, high-quality rendering.
"""

from typing import Optional

import fitz  # PyMuPDF

from barsort.config import settings
from barsort.exceptions import RenderError
from barsort.logging import get_logger
from barsort.models import RenderedPage, SourceDocument

logger = get_logger(__name__)

# PDF user space is 72 points per inch
PDF_BASE_DPI = 72.0


class PDFRenderer:
    """Renders page 1 of a PDF to a JPEG beside the source file.

    The output file shares the source's base name with a ``.jpg``
    extension and is the handle later passed to preprocessing, decoding
    and cleanup.
    """

    def __init__(self, dpi: Optional[int] = None):
        """Initialize renderer.

        Args:
            dpi: Rendering DPI (default from settings, typically 200)
        """
        self.dpi = dpi or settings.render_dpi

    def render_first_page(self, document: SourceDocument) -> RenderedPage:
        """Render the first page of a document.

        Args:
            document: Source PDF

        Returns:
            RenderedPage describing the temporary JPEG

        Raises:
            RenderError: The PDF cannot be opened, has no pages, or the
                artifact path is already taken by another file.
        """
        pdf_path = document.source_path_obj
        output_path = document.artifact_path

        if output_path.exists():
            raise RenderError(
                f"Refusing to overwrite existing file {output_path}",
                path=pdf_path,
            )

        try:
            pdf_doc = fitz.open(str(pdf_path))
        except (RuntimeError, ValueError, OSError) as exc:
            raise RenderError(f"Cannot open PDF {pdf_path}: {exc}", path=pdf_path) from exc

        try:
            if len(pdf_doc) < 1:
                raise RenderError(f"PDF has no pages: {pdf_path}", path=pdf_path)

            pixmap = self._render_page(pdf_doc[0])
            pixmap.save(str(output_path))
        except (RuntimeError, ValueError, OSError) as exc:
            raise RenderError(
                f"Cannot render first page of {pdf_path}: {exc}", path=pdf_path
            ) from exc
        finally:
            pdf_doc.close()

        logger.debug(
            "Rendered %s -> %s (%dx%d)",
            pdf_path, output_path, pixmap.width, pixmap.height,
        )

        return RenderedPage(
            image_path=str(output_path),
            width_pixels=pixmap.width,
            height_pixels=pixmap.height,
            dpi=self.dpi,
        )

    def _render_page(self, pdf_page: "fitz.Page") -> "fitz.Pixmap":
        # Calculate zoom factor for target DPI
        zoom = self.dpi / PDF_BASE_DPI
        matrix = fitz.Matrix(zoom, zoom)
        return pdf_page.get_pixmap(matrix=matrix, alpha=False)
