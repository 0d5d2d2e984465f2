"""Geometry and color validation guards.

The two guards are deliberately asymmetric. Geometry is a hard invariant:
if the silhouette (the alpha channel) drifted, the output is unusable and
assert_geometry_locked raises GeometryChanged. Color accuracy is advisory:
a region whose mean color misses its target is reported as a WARNING
outcome and logged, and the output is still returned to the caller.
"""

import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from .color_codec import color_distance, delta_e, hex_to_rgb, rgb_to_lab
from .config import (
    COLOR_DISTANCE_THRESHOLD,
    GEOMETRY_ALPHA_TOLERANCE,
    GEOMETRY_DIFF_THRESHOLD,
    MASK_SAMPLE_THRESHOLD,
    REGION_NAMES,
)
from .errors import GeometryChanged
from .masks import resize_mask_nearest
from .raster import ImageSource, RasterImage, as_raster
from .regions import ColorsArg, MasksArg, coerce_colors, coerce_masks

logger = logging.getLogger(__name__)


class GuardStatus(enum.Enum):
    OK = "ok"
    WARNING = "warning"
    FATAL = "fatal"


@dataclass(frozen=True)
class GuardOutcome:
    """Tagged result of one guard check.

    Fields:
        guard: "geometry" or "color"
        status: OK, WARNING (usable, worth a second look) or FATAL (discard)
        reason: Human-readable summary
        region: Region name for color checks
        metrics: Numbers behind the verdict
    """
    guard: str
    status: GuardStatus
    reason: str
    region: Optional[str] = None
    metrics: Dict[str, object] = field(default_factory=dict)

    @property
    def is_usable(self) -> bool:
        return self.status is not GuardStatus.FATAL

    def to_dict(self) -> dict:
        return {
            "guard": self.guard,
            "status": self.status.value,
            "reason": self.reason,
            "region": self.region,
            "metrics": dict(self.metrics),
        }


def check_geometry_locked(
    base: ImageSource,
    result: ImageSource,
    threshold: float = GEOMETRY_DIFF_THRESHOLD,
    alpha_tolerance: int = GEOMETRY_ALPHA_TOLERANCE,
) -> GuardOutcome:
    """Compare alpha channels of base and result.

    Both images are promoted to RGBA (opaque alpha when missing). A pixel
    counts as changed when its alpha differs by more than alpha_tolerance;
    the default of 0 means any byte difference.

    Returns:
        OK, or FATAL when sizes differ or changed/total > threshold
    """
    base_px = as_raster(base, ensure_alpha=True)
    result_px = as_raster(result, ensure_alpha=True)

    if base_px.size != result_px.size:
        reason = (
            f"Dimensions mismatch ({base_px.width}x{base_px.height} vs "
            f"{result_px.width}x{result_px.height})"
        )
        return GuardOutcome("geometry", GuardStatus.FATAL, reason, metrics={
            "base_size": base_px.size,
            "result_size": result_px.size,
        })

    base_alpha = base_px.pixels[:, :, 3].astype(np.int16)
    result_alpha = result_px.pixels[:, :, 3].astype(np.int16)
    mismatches = int(np.count_nonzero(np.abs(base_alpha - result_alpha) > alpha_tolerance))
    total_pixels = base_px.width * base_px.height
    diff_ratio = mismatches / total_pixels if total_pixels else 0.0

    logger.debug(
        f"Geometry check: {mismatches} different alpha pixels ({diff_ratio * 100:.4f}%)"
    )

    metrics = {
        "mismatches": mismatches,
        "total_pixels": total_pixels,
        "diff_ratio": diff_ratio,
        "threshold": threshold,
    }
    if diff_ratio > threshold:
        return GuardOutcome(
            "geometry", GuardStatus.FATAL, f"{diff_ratio * 100:.2f}% pixels differ", metrics=metrics
        )
    return GuardOutcome("geometry", GuardStatus.OK, "Silhouette preserved", metrics=metrics)


def assert_geometry_locked(
    base: ImageSource,
    result: ImageSource,
    threshold: float = GEOMETRY_DIFF_THRESHOLD,
    alpha_tolerance: int = GEOMETRY_ALPHA_TOLERANCE,
) -> None:
    """Raise GeometryChanged unless the silhouette of result matches base.

    Raises:
        GeometryChanged: On size mismatch or more than threshold of pixels
            (0.5% by default) with a different alpha
    """
    raise_for_geometry(check_geometry_locked(base, result, threshold, alpha_tolerance))
    logger.debug("Geometry locked - silhouette preserved")


def raise_for_geometry(outcome: GuardOutcome) -> None:
    """Turn a FATAL geometry outcome into GeometryChanged."""
    if outcome.status is GuardStatus.FATAL:
        raise GeometryChanged(
            outcome.reason,
            diff_ratio=outcome.metrics.get("diff_ratio"),
            mismatches=outcome.metrics.get("mismatches"),
            total_pixels=outcome.metrics.get("total_pixels"),
        )


def sample_mean_color(
    result: RasterImage,
    mask: RasterImage,
    threshold: int = MASK_SAMPLE_THRESHOLD,
) -> Tuple[Optional[Tuple[int, int, int]], int]:
    """Mean RGB of result where the mask's first channel is > threshold.

    The mask is brought to the result's resolution with nearest-neighbor
    sampling. The mean is rounded half up per channel.

    Returns:
        (mean_rgb or None when nothing was sampled, sampled pixel count)
    """
    rgba = result.to_rgba()
    mask = resize_mask_nearest(mask, rgba.width, rgba.height)
    selected = mask.pixels[:, :, 0] > threshold
    count = int(np.count_nonzero(selected))
    if count == 0:
        return None, 0

    sums = rgba.pixels[:, :, :3][selected].sum(axis=0, dtype=np.int64)
    mean = tuple(int(math.floor(s / count + 0.5)) for s in sums)
    return mean, count


def check_color_targets(
    result: ImageSource,
    masks: MasksArg,
    colors: ColorsArg,
    threshold: float = COLOR_DISTANCE_THRESHOLD,
) -> List[GuardOutcome]:
    """Compare each region's mean color against its target.

    Only regions with both a mask and a color are checked. The verdict uses
    Euclidean RGB distance; CIE76 deltaE is reported alongside it.

    Returns:
        One outcome per checked region: OK, or WARNING when the region had
        no sampled pixels or its distance exceeds threshold

    Raises:
        InvalidColorFormat: If a target color is malformed
    """
    masks = coerce_masks(masks)
    colors = coerce_colors(colors)
    result_px = as_raster(result)

    outcomes = []
    for region in REGION_NAMES:
        mask = masks.get(region)
        target = colors.for_region(region)
        if mask is None or target is None:
            continue

        logger.debug(f"Checking {region} color against {target}")
        target_rgb = hex_to_rgb(target)
        mean, count = sample_mean_color(result_px, as_raster(mask))

        if mean is None:
            outcomes.append(GuardOutcome(
                "color", GuardStatus.WARNING, f"No pixels found in {region} mask",
                region=region, metrics={"sampled_pixels": 0, "target_rgb": tuple(target_rgb)},
            ))
            continue

        distance = color_distance(mean, target_rgb)
        metrics = {
            "mean_rgb": mean,
            "target_rgb": tuple(target_rgb),
            "distance": distance,
            "delta_e": delta_e(rgb_to_lab(mean), rgb_to_lab(target_rgb)),
            "sampled_pixels": count,
            "threshold": threshold,
        }
        logger.debug(
            f"{region}: mean RGB{mean} vs target RGB{tuple(target_rgb)} - distance {distance:.2f}"
        )

        if distance > threshold:
            outcomes.append(GuardOutcome(
                "color", GuardStatus.WARNING,
                f"{region} color distance {distance:.2f} exceeds threshold {threshold}",
                region=region, metrics=metrics,
            ))
        else:
            outcomes.append(GuardOutcome(
                "color", GuardStatus.OK, f"{region} color within range",
                region=region, metrics=metrics,
            ))
    return outcomes


def assert_color_targets(
    result: ImageSource,
    masks: MasksArg,
    colors: ColorsArg,
    threshold: float = COLOR_DISTANCE_THRESHOLD,
) -> List[GuardOutcome]:
    """Soft assertion: log every color miss as a warning, never raise.

    Returns:
        The outcomes from check_color_targets
    """
    outcomes = check_color_targets(result, masks, colors, threshold)
    for outcome in outcomes:
        if outcome.status is GuardStatus.WARNING:
            logger.warning(outcome.reason)
    logger.debug("Color targets checked")
    return outcomes
