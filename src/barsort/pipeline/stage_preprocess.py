"""Preprocessing Stage - Enhance the rendered page for barcode decoding.

Applies a fixed, order-sensitive transform chain:

1. Resize to 3072x3072 (Lanczos, aspect ratio not preserved)
2. Crop the top strip where the barcode is expected
3. Convert to grayscale
4. Strong contrast increase
5. 3x3 sharpening convolution

Reordering the steps changes decode outcomes. The result overwrites the
rendered JPEG in place.
"""

from typing import Optional

import cv2
import numpy as np
from PIL import Image

from barsort.exceptions import RenderError
from barsort.logging import get_logger
from barsort.models import PreprocessedImage, RenderedPage

logger = get_logger(__name__)

RESIZE_WIDTH = 3072
RESIZE_HEIGHT = 3072
CROP_HEIGHT = 615
CONTRAST = 50.0
JPEG_QUALITY = 95

# Discrete Laplacian sharpen
SHARPEN_KERNEL = np.array(
    [
        [0.0, -1.0, 0.0],
        [-1.0, 5.0, -1.0],
        [0.0, -1.0, 0.0],
    ],
    dtype=np.float32,
)


def adjust_contrast(gray: np.ndarray, contrast: float) -> np.ndarray:
    """Stretch intensities around mid-gray.

    ``contrast`` is on a percent-like scale: 0 leaves the image unchanged,
    positive values widen the range, negative values compress it. Each
    pixel maps to ``((v / 255 - 0.5) * ((100 + contrast) / 100) ** 2 + 0.5) * 255``
    clamped to 0-255.

    Args:
        gray: Single-channel uint8 image.
        contrast: Contrast amount.

    Returns:
        Contrast-adjusted uint8 image.
    """
    percent = np.float32(((100.0 + contrast) / 100.0) ** 2)
    values = gray.astype(np.float32) / np.float32(255.0)
    stretched = ((values - np.float32(0.5)) * percent + np.float32(0.5)) * np.float32(255.0)
    return np.clip(stretched, 0.0, 255.0).astype(np.uint8)


def sharpen(gray: np.ndarray, kernel: np.ndarray = SHARPEN_KERNEL) -> np.ndarray:
    """Convolve with a 3x3 kernel, replicating edge pixels."""
    filtered = cv2.filter2D(
        gray.astype(np.float32),
        ddepth=-1,
        kernel=kernel,
        borderType=cv2.BORDER_REPLICATE,
    )
    return np.clip(filtered, 0.0, 255.0).astype(np.uint8)


class ImagePreprocessor:
    """Deterministic enhancement chain tuned for barcode legibility."""

    def __init__(
        self,
        width: int = RESIZE_WIDTH,
        height: int = RESIZE_HEIGHT,
        crop_height: int = CROP_HEIGHT,
        contrast: float = CONTRAST,
        kernel: Optional[np.ndarray] = None,
        jpeg_quality: int = JPEG_QUALITY,
    ):
        """Initialize preprocessor.

        Args:
            width: Target width of the resize step.
            height: Target height of the resize step.
            crop_height: Height of the top strip kept by the crop step.
            contrast: Contrast amount, see ``adjust_contrast``.
            kernel: 3x3 sharpening kernel (default Laplacian sharpen).
            jpeg_quality: Quality used when writing the result.
        """
        if not 0 < crop_height <= height:
            raise ValueError(f"crop_height must be in (0, {height}], got {crop_height}")

        self.width = width
        self.height = height
        self.crop_height = crop_height
        self.contrast = contrast
        self.kernel = SHARPEN_KERNEL if kernel is None else np.asarray(kernel, dtype=np.float32)
        self.jpeg_quality = jpeg_quality

    def apply(self, image: Image.Image) -> Image.Image:
        """Run the transform chain on an in-memory image.

        Args:
            image: Rendered page.

        Returns:
            Grayscale image of size ``width x crop_height``.
        """
        resized = image.convert("RGB").resize(
            (self.width, self.height),
            Image.Resampling.LANCZOS,
        )
        cropped = resized.crop((0, 0, self.width, self.crop_height))
        gray = np.asarray(cropped.convert("L"))
        contrasted = adjust_contrast(gray, self.contrast)
        sharpened = sharpen(contrasted, self.kernel)
        return Image.fromarray(sharpened)

    def process(self, page: RenderedPage) -> PreprocessedImage:
        """Enhance a rendered page, overwriting its file as JPEG.

        Args:
            page: Rendered page backed by the temporary artifact.

        Returns:
            PreprocessedImage stored at the same path.
        """
        image_path = page.image_path_obj

        try:
            with Image.open(image_path) as image:
                enhanced = self.apply(image)
            enhanced.save(image_path, format="JPEG", quality=self.jpeg_quality)
        except OSError as exc:
            raise RenderError(
                f"Cannot preprocess rendered page {image_path}: {exc}",
                path=image_path,
            ) from exc

        logger.debug("Preprocessed %s (%dx%d)", image_path, enhanced.width, enhanced.height)

        return PreprocessedImage(
            image_path=str(image_path),
            width_pixels=enhanced.width,
            height_pixels=enhanced.height,
        )
