"""Solid color layers driven by a mask."""

import logging
from typing import Tuple, Union

import numpy as np

from .color_codec import ColorTriplet, hex_to_rgb
from .errors import InvalidMaskDimensions
from .masks import resize_mask_nearest
from .raster import ImageSource, RasterImage, as_raster

logger = logging.getLogger(__name__)

ColorSpec = Union[str, ColorTriplet, Tuple[int, int, int]]


def to_triplet(color: ColorSpec) -> ColorTriplet:
    if isinstance(color, str):
        return hex_to_rgb(color)
    return ColorTriplet(*(int(c) for c in color))


def create_color_layer(mask: ImageSource, color: ColorSpec, width: int, height: int) -> RasterImage:
    """Create a full-size RGBA layer of `color` with alpha taken from the mask.

    The mask's first channel is copied verbatim into the alpha byte, so
    white (255) is opaque, black (0) is transparent and soft mask edges
    give partial opacity.

    Args:
        mask: Mask bytes or RasterImage (255 = editable)
        color: Hex string or RGB triplet
        width: Layer width (template width)
        height: Layer height (template height)

    Returns:
        RGBA RasterImage of size width x height

    Raises:
        InvalidMaskDimensions: If the mask or requested size is empty
        InvalidColorFormat: If color is not a valid hex string
    """
    if width <= 0 or height <= 0:
        raise InvalidMaskDimensions(f"Invalid layer size {width}x{height}")

    rgb = to_triplet(color)
    raster = as_raster(mask)
    if raster.width <= 0 or raster.height <= 0:
        raise InvalidMaskDimensions(f"Invalid mask size {raster.width}x{raster.height}")

    raster = resize_mask_nearest(raster, width, height)

    layer = np.empty((height, width, 4), dtype=np.uint8)
    layer[:, :, 0] = rgb.r
    layer[:, :, 1] = rgb.g
    layer[:, :, 2] = rgb.b
    layer[:, :, 3] = raster.pixels[:, :, 0]

    logger.debug(f"Color layer {rgb.hex}: {np.count_nonzero(layer[:, :, 3])} visible pixels")
    return RasterImage.from_array(layer)
