"""Region sets: up to three masks, each paired with a target color."""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, Mapping, Optional, Tuple, Union

from .color_codec import ColorTriplet, hex_to_rgb
from .config import REGION_COLOR_SLOTS, REGION_NAMES, REQUIRED_REGIONS
from .errors import MissingRegionMask
from .raster import ImageSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionColors:
    """Target colors as hex strings: primary -> body, secondary -> sleeves,
    tertiary -> trims."""
    primary: Optional[str] = None
    secondary: Optional[str] = None
    tertiary: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Optional[str]]) -> "RegionColors":
        return cls(data.get("primary"), data.get("secondary"), data.get("tertiary"))

    def for_region(self, region: str) -> Optional[str]:
        return getattr(self, REGION_COLOR_SLOTS[region])

    def parsed(self) -> Dict[str, ColorTriplet]:
        """Parse every color present, keyed by slot name.

        Raises:
            InvalidColorFormat: On the first malformed color
        """
        result = {}
        for slot in ("primary", "secondary", "tertiary"):
            value = getattr(self, slot)
            if value is not None:
                result[slot] = hex_to_rgb(value)
        return result

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"primary": self.primary, "secondary": self.secondary, "tertiary": self.tertiary}


@dataclass(frozen=True)
class RegionMasks:
    """Mask per region; body and sleeves are required, trims optional."""
    body: Optional[ImageSource] = None
    sleeves: Optional[ImageSource] = None
    trims: Optional[ImageSource] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Optional[ImageSource]]) -> "RegionMasks":
        return cls(data.get("body"), data.get("sleeves"), data.get("trims"))

    def get(self, region: str) -> Optional[ImageSource]:
        return getattr(self, region)

    def present(self) -> Tuple[str, ...]:
        return tuple(name for name in REGION_NAMES if self.get(name) is not None)


ColorsArg = Union[RegionColors, Mapping[str, Optional[str]]]
MasksArg = Union[RegionMasks, Mapping[str, Optional[ImageSource]]]


def coerce_colors(colors: ColorsArg) -> RegionColors:
    if isinstance(colors, RegionColors):
        return colors
    return RegionColors.from_mapping(colors)


def coerce_masks(masks: MasksArg) -> RegionMasks:
    if isinstance(masks, RegionMasks):
        return masks
    return RegionMasks.from_mapping(masks)


def require_regions(colors: RegionColors, masks: RegionMasks) -> None:
    """Enforce the two-region minimum before any decoding happens.

    Raises:
        MissingRegionMask: If body/sleeves or primary/secondary are absent
    """
    missing = []
    for region in REQUIRED_REGIONS:
        if masks.get(region) is None:
            missing.append(f"{region} mask")
        if colors.for_region(region) is None:
            missing.append(f"{REGION_COLOR_SLOTS[region]} color")
    if missing:
        raise MissingRegionMask(missing)


def iter_regions(colors: RegionColors, masks: RegionMasks) -> Iterator[Tuple[str, ImageSource, str]]:
    """Yield (region, mask, hex color) in composite order.

    A region is yielded only when both its mask and its color are present.
    An unpaired trims mask or tertiary color is skipped, not an error.
    """
    for region in REGION_NAMES:
        mask = masks.get(region)
        color = colors.for_region(region)
        if mask is None or color is None:
            if mask is not None or color is not None:
                logger.debug(f"Skipping {region}: mask and color must both be supplied")
            continue
        yield region, mask, color
