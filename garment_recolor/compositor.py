"""Multiply-blend compositing of region color layers over a template.

Multiply keeps the template's texture, wrinkles and shading while shifting
its color toward the layer color. Layers go on one after another (body,
then sleeves, then trims); each is blended against the result of the
previous one, so the order is part of the output and must not change.
"""

import logging

import numpy as np

from .errors import InvalidTemplateDimensions
from .layers import create_color_layer
from .raster import ImageSource, RasterImage, as_raster
from .regions import ColorsArg, MasksArg, coerce_colors, coerce_masks, iter_regions, require_regions

logger = logging.getLogger(__name__)


def multiply_composite(base: RasterImage, layer: RasterImage) -> RasterImage:
    """Composite one RGBA layer over an RGBA base with multiply blending.

    The layer is placed source-atop: the base alpha passes through
    unchanged, so the silhouette (including soft antialiased edges) is
    never altered. Per pixel, with colors and alphas normalised to [0, 1]:

        B   = Cb * Cs
        Cs' = (1 - ab) * Cs + ab * B
        ao  = ab
        Co  = as * Cs' + (1 - as) * Cb

    Pixels where the layer alpha is 0 are copied from the base byte for
    byte, so locked areas (logo boxes, outside the mask) stay identical.

    Args:
        base: RGBA image being recolored
        layer: RGBA color layer of the same size

    Returns:
        New RGBA RasterImage
    """
    if base.channels != 4 or layer.channels != 4:
        raise ValueError(
            f"multiply_composite needs RGBA inputs, got {base.channels} and {layer.channels} channels"
        )
    if base.size != layer.size:
        raise ValueError(f"Layer size {layer.size} does not match base size {base.size}")

    b = base.pixels.astype(np.float32) / 255.0
    s = layer.pixels.astype(np.float32) / 255.0
    cb, ab = b[:, :, :3], b[:, :, 3:]
    cs, a_s = s[:, :, :3], s[:, :, 3:]

    blended = cb * cs
    cs_mixed = (1.0 - ab) * cs + ab * blended
    color = a_s * cs_mixed + (1.0 - a_s) * cb

    out = np.empty_like(base.pixels)
    out[:, :, :3] = np.clip(np.rint(color * 255.0), 0, 255).astype(np.uint8)
    out[:, :, 3] = base.pixels[:, :, 3]

    untouched = layer.pixels[:, :, 3] == 0
    out[untouched] = base.pixels[untouched]

    return RasterImage.from_array(out)


def composite_regions(template: ImageSource, colors: ColorsArg, masks: MasksArg) -> RasterImage:
    """Recolor a template and return the decoded RGBA result.

    Masks are used as given (255 = editable); see pipeline.prepare_region_masks
    for inverting and logo-protecting authored silhouettes first.

    Raises:
        MissingRegionMask: If body/sleeves or their colors are missing
        InvalidColorFormat: If any supplied color is malformed
        InvalidTemplateDimensions: If the template is empty
    """
    colors = coerce_colors(colors)
    masks = coerce_masks(masks)

    # Contract checks first; nothing is decoded until these pass
    require_regions(colors, masks)
    colors.parsed()

    logger.debug(f"Starting recolor with masks: {list(masks.present())}")

    base = as_raster(template, ensure_alpha=True)
    if not base.width or not base.height:
        raise InvalidTemplateDimensions("Invalid template image dimensions")
    logger.debug(f"Template size: {base.width}x{base.height}")

    result = base
    layer_count = 0
    for region, mask, color in iter_regions(colors, masks):
        logger.debug(f"Creating {region} layer with color {color}")
        layer = create_color_layer(mask, color, base.width, base.height)
        result = multiply_composite(result, layer)
        layer_count += 1

    logger.debug(f"Composited {layer_count} layers")
    return result


def recolor_template(template: ImageSource, colors: ColorsArg, masks: MasksArg) -> bytes:
    """Recolor a template with one multiply layer per region.

    Args:
        template: Template image bytes or RasterImage
        colors: RegionColors or mapping with primary/secondary[/tertiary]
        masks: RegionMasks or mapping with body/sleeves[/trims]

    Returns:
        PNG-encoded RGBA bytes
    """
    return composite_regions(template, colors, masks).to_png()
