"""Pytest configuration and fixtures."""

import io
from pathlib import Path
from typing import Optional

import fitz
import pytest

# Letter size in PDF points
PAGE_WIDTH = 612
PAGE_HEIGHT = 792


def barcode_png(text: str) -> bytes:
    """Render a Code128 barcode as PNG bytes."""
    import barcode
    from barcode.writer import ImageWriter

    code = barcode.get("code128", text, writer=ImageWriter())
    buffer = io.BytesIO()
    code.write(
        buffer,
        options={
            "module_width": 0.4,
            "module_height": 15.0,
            "quiet_zone": 6.5,
            "write_text": False,
        },
    )
    return buffer.getvalue()


def write_pdf(path: Path, barcode_text: Optional[str] = None, pages: int = 1) -> Path:
    """Write a PDF, optionally with a barcode near the top of page 1."""
    pdf_doc = fitz.open()
    for page_num in range(pages):
        page = pdf_doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        if page_num == 0 and barcode_text is not None:
            page.insert_image(
                fitz.Rect(72, 24, 540, 132),
                stream=barcode_png(barcode_text),
                keep_proportion=False,
            )
        else:
            page.insert_text((72, 300), "Scanned page without barcode", fontsize=14)
    pdf_doc.save(str(path))
    pdf_doc.close()
    return path


@pytest.fixture
def input_dir(tmp_path):
    """Create a temporary input folder for scanned PDFs."""
    pdf_dir = tmp_path / "input"
    pdf_dir.mkdir()
    return pdf_dir


@pytest.fixture
def output_dir(tmp_path):
    """Create a temporary output directory."""
    out_dir = tmp_path / "output"
    out_dir.mkdir()
    return out_dir


@pytest.fixture
def make_pdf(input_dir):
    """Factory writing PDFs into the input folder."""

    def _make(name: str, barcode_text: Optional[str] = None, pages: int = 1) -> Path:
        return write_pdf(input_dir / name, barcode_text=barcode_text, pages=pages)

    return _make
