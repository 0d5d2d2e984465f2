"""Silhouette mask loading and logo protection.

Masks are authored with the garment painted black. Loading inverts them so
the garment becomes white (255 = editable) and everything else black
(0 = locked). Logo boxes are then painted back to black so printed logos
stay untouched by recoloring.
"""

import logging
import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import cv2
import numpy as np

from .config import MASK_WHITE_THRESHOLD, RECTANGLE_MASK_PADDING
from .errors import DegenerateMask, InvalidMaskDimensions
from .raster import ImageSource, RasterImage, as_raster

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogoBox:
    """Axis-aligned rectangle in pixel coordinates that must stay locked."""
    x: float
    y: float
    w: float
    h: float

    def clamp(self, width: int, height: int) -> Tuple[int, int, int, int]:
        """Clamp [x, x+w) x [y, y+h) to the image.

        Returns:
            (x1, y1, x2, y2) with 0 <= x1 <= x2 <= width, same for y.
            Fractional edges are expanded outward to whole pixels.
        """
        x1 = min(width, max(0, math.floor(self.x)))
        y1 = min(height, max(0, math.floor(self.y)))
        x2 = max(x1, min(width, math.ceil(self.x + self.w)))
        y2 = max(y1, min(height, math.ceil(self.y + self.h)))
        return x1, y1, x2, y2

    @classmethod
    def parse(cls, text: str) -> "LogoBox":
        """Parse "x,y,w,h"."""
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Logo box must be 'x,y,w,h', got {text!r}")
        x, y, w, h = (float(p) for p in parts)
        return cls(x, y, w, h)

    @classmethod
    def from_dict(cls, data: dict) -> "LogoBox":
        return cls(data["x"], data["y"], data["w"], data["h"])

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}


def resize_mask_nearest(mask: RasterImage, width: int, height: int) -> RasterImage:
    """Resize a mask with nearest-neighbor sampling, cover-fit and centre-cropped.

    Nearest-neighbor is required here, not a style choice: smoothing
    filters (bilinear, bicubic, area) invent intermediate values along the
    hard mask edge, and those values become partial alpha in the color
    layer. Only source values ever appear in the output.

    When the aspect ratio differs, the mask is scaled to cover the target
    and the overflow is cropped equally from both sides.

    Raises:
        InvalidMaskDimensions: If the mask or the target size is empty
    """
    if width <= 0 or height <= 0:
        raise InvalidMaskDimensions(f"Invalid target size {width}x{height}")
    if mask.width <= 0 or mask.height <= 0:
        raise InvalidMaskDimensions(f"Invalid mask size {mask.width}x{mask.height}")

    if (mask.width, mask.height) == (width, height):
        return mask

    scale = max(width / mask.width, height / mask.height)
    scaled_w = max(width, int(round(mask.width * scale)))
    scaled_h = max(height, int(round(mask.height * scale)))

    resized = cv2.resize(mask.pixels, (scaled_w, scaled_h), interpolation=cv2.INTER_NEAREST)
    # cv2 drops the channel axis for single-channel input
    if resized.ndim == 2:
        resized = resized[:, :, np.newaxis]

    left = (scaled_w - width) // 2
    top = (scaled_h - height) // 2
    cropped = resized[top:top + height, left:left + width]
    return RasterImage.from_array(cropped)


def invert_mask(mask: RasterImage) -> RasterImage:
    """Negate every channel (255 - value). Applying it twice is the identity."""
    return RasterImage.from_array(255 - mask.pixels)


def load_silhouette_mask(mask: ImageSource, target_width: int, target_height: int) -> RasterImage:
    """Load a silhouette mask at the template's size and invert it.

    Args:
        mask: Encoded mask bytes (garment black) or a decoded RasterImage
        target_width: Template width in pixels
        target_height: Template height in pixels

    Returns:
        Mask with the garment white (editable) and the rest black (locked),
        keeping the decoded channel count

    Raises:
        InvalidMaskDimensions: If the mask or target size is empty
    """
    logger.debug(f"Loading silhouette mask, target size: {target_width}x{target_height}")
    raster = as_raster(mask)
    logger.debug(f"Original mask size: {raster.width}x{raster.height}")

    if (raster.width, raster.height) != (target_width, target_height):
        logger.debug("Resizing mask to match template (nearest-neighbor)")
    raster = resize_mask_nearest(raster, target_width, target_height)

    return invert_mask(raster)


def apply_logo_boxes(
    mask: ImageSource,
    logo_boxes: Sequence[LogoBox],
) -> ImageSource:
    """Paint logo boxes as locked (0) on every channel of a mask.

    Returns the input object itself when there are no boxes. Otherwise the
    caller's mask is left untouched and a new RasterImage is returned.
    Overlapping boxes are fine; painting 0 twice is idempotent.

    Raises:
        InvalidMaskDimensions: If the mask decodes to an empty image
    """
    if not logo_boxes:
        return mask

    logger.debug(f"Applying {len(logo_boxes)} logo protection box(es)")

    raster = as_raster(mask)
    if raster.width <= 0 or raster.height <= 0:
        raise InvalidMaskDimensions("Invalid mask dimensions")

    pixels = raster.pixels.copy()
    for box in logo_boxes:
        x1, y1, x2, y2 = box.clamp(raster.width, raster.height)
        logger.debug(
            f"Protecting logo box x={box.x}, y={box.y}, w={box.w}, h={box.h} "
            f"-> [{x1}:{x2}, {y1}:{y2}]"
        )
        pixels[y1:y2, x1:x2, :] = 0

    return RasterImage.from_array(pixels)


def create_rectangle_mask(width: int, height: int, padding: int = RECTANGLE_MASK_PADDING) -> RasterImage:
    """Create a 3-channel mask: white rectangle inside `padding`, black border."""
    if width <= 0 or height <= 0:
        raise InvalidMaskDimensions(f"Invalid mask size {width}x{height}")
    logger.debug(f"Creating rectangle mask: {width}x{height}, padding={padding}")

    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[padding:max(padding, height - padding), padding:max(padding, width - padding)] = 255
    return RasterImage.from_array(pixels)


def mask_coverage(mask: RasterImage, threshold: int = MASK_WHITE_THRESHOLD) -> float:
    """Fraction of pixels whose first channel is above threshold."""
    total = mask.width * mask.height
    if total == 0:
        return 0.0
    return float(np.count_nonzero(mask.pixels[:, :, 0] > threshold)) / total


def validate_mask(mask: ImageSource, threshold: int = MASK_WHITE_THRESHOLD) -> float:
    """Check that a mask has at least one editable pixel.

    Returns:
        Fraction of white (editable) pixels

    Raises:
        DegenerateMask: If no pixel is above threshold
    """
    raster = as_raster(mask)
    coverage = mask_coverage(raster, threshold)
    logger.debug(f"Mask validation: {coverage * 100:.1f}% white pixels")

    if coverage == 0.0:
        raise DegenerateMask("Mask is completely black - no editable area defined")
    if coverage == 1.0:
        logger.warning("Mask is completely white - no locked areas")
    return coverage
