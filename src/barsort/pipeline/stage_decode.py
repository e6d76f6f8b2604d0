"""Decode Stage - Read one barcode from the preprocessed image.

Uses zxing-cpp, which detects every supported symbology (1D and 2D).
A single attempt is made per document; a miss and a decoder error both
yield a not-found result and differ only in the log line.
"""

from pathlib import Path

import zxingcpp
from PIL import Image

from barsort.exceptions import DecodeMiss
from barsort.logging import get_logger
from barsort.models import DecodeResult, PreprocessedImage

logger = get_logger(__name__)


def symbology_name(result) -> str:
    """Human-readable symbology name for a zxing-cpp result."""
    barcode_format = result.format
    return getattr(barcode_format, "name", None) or str(barcode_format)


class BarcodeDecoder:
    """Extracts symbology and text from an image file."""

    def decode(self, image: PreprocessedImage) -> DecodeResult:
        """Decode the barcode in a preprocessed image.

        Args:
            image: Preprocessed page backed by the temporary artifact.

        Returns:
            Decoded result, or not found.
        """
        return self.decode_file(image.image_path_obj)

    def decode_file(self, image_path: Path) -> DecodeResult:
        """Decode the barcode in an image file."""
        try:
            symbology, text = self._read(image_path)
        except DecodeMiss as miss:
            logger.info("Could not read barcode from %s: %s", image_path, miss)
            return DecodeResult.not_found(str(miss))

        logger.info("%s -> %s", symbology, text)
        return DecodeResult.decoded(symbology=symbology, text=text)

    def _read(self, image_path: Path) -> tuple[str, str]:
        try:
            with Image.open(image_path) as image:
                image.load()
                result = zxingcpp.read_barcode(image)
        except (OSError, RuntimeError, ValueError) as exc:
            raise DecodeMiss(f"decoder error: {exc}", path=image_path) from exc

        if result is None or not getattr(result, "valid", True):
            raise DecodeMiss("no barcode detected", path=image_path)

        return symbology_name(result), result.text
