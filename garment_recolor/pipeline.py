"""End-to-end recolor: masks -> logo protection -> layers -> composite -> guards."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Sequence, Tuple

from .compositor import composite_regions
from .config import COLOR_DISTANCE_THRESHOLD, GEOMETRY_DIFF_THRESHOLD, REGION_NAMES
from .errors import InvalidTemplateDimensions
from .guards import (
    GuardOutcome,
    GuardStatus,
    assert_color_targets,
    check_geometry_locked,
    raise_for_geometry,
)
from .masks import LogoBox, apply_logo_boxes, load_silhouette_mask, mask_coverage, resize_mask_nearest
from .raster import ImageSource, as_raster
from .regions import (
    ColorsArg,
    MasksArg,
    RegionColors,
    RegionMasks,
    coerce_colors,
    coerce_masks,
    iter_regions,
    require_regions,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecolorResult:
    """Validated output of recolor_garment.

    Fields:
        image: PNG-encoded RGBA bytes
        width: Output width (same as template)
        height: Output height (same as template)
        outcomes: Geometry outcome followed by one color outcome per region
        colors: Colorway that was applied
        regions: Regions that received a color layer, in composite order
        logo_boxes: Protected rectangles
        created_at: UTC timestamp
    """
    image: bytes
    width: int
    height: int
    outcomes: Tuple[GuardOutcome, ...]
    colors: RegionColors
    regions: Tuple[str, ...]
    logo_boxes: Tuple[LogoBox, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def warnings(self) -> List[GuardOutcome]:
        return [o for o in self.outcomes if o.status is GuardStatus.WARNING]

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def to_render_spec(self) -> dict:
        """JSON-ready record of how this image was produced."""
        return {
            "mode": "template",
            "colorway": self.colors.to_dict(),
            "regions": list(self.regions),
            "logo_boxes": [box.to_dict() for box in self.logo_boxes],
            "size": {"width": self.width, "height": self.height},
            "guards": [o.to_dict() for o in self.outcomes],
            "timestamp": self.created_at.isoformat(),
        }


def prepare_region_masks(
    masks: MasksArg,
    width: int,
    height: int,
    logo_boxes: Sequence[LogoBox] = (),
    invert: bool = True,
) -> RegionMasks:
    """Load each supplied mask at template size and lock the logo boxes.

    Args:
        masks: Authored masks per region
        width: Template width
        height: Template height
        logo_boxes: Rectangles forced to locked in every mask
        invert: Masks are authored garment-black and need inverting. Pass
            False for masks that are already white = editable.

    Returns:
        RegionMasks of RasterImages, white = editable
    """
    masks = coerce_masks(masks)
    prepared = {}
    for region in REGION_NAMES:
        mask = masks.get(region)
        if mask is None:
            continue
        if invert:
            raster = load_silhouette_mask(mask, width, height)
        else:
            raster = resize_mask_nearest(as_raster(mask), width, height)
        raster = apply_logo_boxes(raster, logo_boxes)

        coverage = mask_coverage(raster)
        if coverage == 0.0:
            logger.warning(f"{region} mask has no editable pixels")
        elif coverage == 1.0:
            logger.warning(f"{region} mask is completely white - no locked areas")
        prepared[region] = raster
    return RegionMasks(**prepared)


def recolor_garment(
    template: ImageSource,
    colors: ColorsArg,
    masks: MasksArg,
    logo_boxes: Sequence[LogoBox] = (),
    invert_masks: bool = True,
    geometry_threshold: float = GEOMETRY_DIFF_THRESHOLD,
    color_threshold: float = COLOR_DISTANCE_THRESHOLD,
) -> RecolorResult:
    """Recolor a garment template and validate the result.

    Args:
        template: Template image bytes
        colors: primary/secondary[/tertiary] hex colors
        masks: body/sleeves[/trims] silhouette masks
        logo_boxes: Rectangles that must stay identical to the template
        invert_masks: Whether masks are authored garment-black
        geometry_threshold: Allowed fraction of alpha changes
        color_threshold: RGB distance above which a region is flagged

    Returns:
        RecolorResult; color misses appear as WARNING outcomes

    Raises:
        MissingRegionMask: Body/sleeves mask or color missing
        InvalidColorFormat: Malformed hex color
        InvalidTemplateDimensions: Empty template
        GeometryChanged: Output silhouette drifted from the template
    """
    colors = coerce_colors(colors)
    masks = coerce_masks(masks)
    logo_boxes = tuple(logo_boxes)

    require_regions(colors, masks)
    colors.parsed()

    base = as_raster(template, ensure_alpha=True)
    if not base.width or not base.height:
        raise InvalidTemplateDimensions("Invalid template image dimensions")
    logger.debug(f"Recoloring {base.width}x{base.height} template, {len(logo_boxes)} logo box(es)")

    prepared = prepare_region_masks(masks, base.width, base.height, logo_boxes, invert=invert_masks)
    regions = tuple(region for region, _, _ in iter_regions(colors, prepared))

    composite = composite_regions(base, colors, prepared)

    geometry = check_geometry_locked(base, composite, threshold=geometry_threshold)
    raise_for_geometry(geometry)

    color_outcomes = assert_color_targets(composite, prepared, colors, threshold=color_threshold)

    logger.debug("Recolor complete")
    return RecolorResult(
        image=composite.to_png(),
        width=composite.width,
        height=composite.height,
        outcomes=(geometry,) + tuple(color_outcomes),
        colors=colors,
        regions=regions,
        logo_boxes=logo_boxes,
    )
