"""Pipeline stages for barcode-based PDF sorting.

Stages, run in order for each document:
1. stage_render - First PDF page to JPEG
2. stage_preprocess - Resize, crop, grayscale, contrast, sharpen
3. stage_decode - Barcode detection and decoding
4. stage_dispose - Move to ``<output>/<text>.pdf`` or leave in place

``runner.DocumentPipeline`` chains the stages for one document and
``scanner.DirectoryScanner`` drives it over a folder.
"""

from .runner import DocumentPipeline
from .scanner import DirectoryScanner
from .stage_decode import BarcodeDecoder
from .stage_dispose import DocumentDisposer, validate_barcode_name
from .stage_preprocess import ImagePreprocessor
from .stage_render import PDFRenderer

__all__ = [
    # Render
    "PDFRenderer",
    # Preprocess
    "ImagePreprocessor",
    # Decode
    "BarcodeDecoder",
    # Dispose
    "DocumentDisposer",
    "validate_barcode_name",
    # Orchestration
    "DocumentPipeline",
    "DirectoryScanner",
]
