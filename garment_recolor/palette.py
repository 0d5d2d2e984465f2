"""Dominant color detection with k-means in CIE Lab space.

Clusters the pixels inside a mask (or the whole image) to suggest a
primary/secondary/tertiary colorway for a template.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from sklearn.cluster import KMeans

from .color_codec import ColorTriplet, hex_to_rgb, lab_array_to_rgb, rgb_array_to_lab, rgb_to_hex
from .config import (
    FALLBACK_PALETTE_HEX,
    KMEANS_MASK_THRESHOLD,
    KMEANS_MAX_ITERATIONS,
    KMEANS_MAX_SAMPLES,
    KMEANS_RANDOM_STATE,
)
from .errors import DegenerateMask, InsufficientColors
from .masks import resize_mask_nearest
from .raster import ImageSource, as_raster
from .regions import RegionColors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColorCluster:
    hex: str
    rgb: ColorTriplet
    lab: Tuple[float, float, float]
    pixel_count: int
    proportion: float


def _masked_pixels(image: ImageSource, mask: Optional[ImageSource]) -> np.ndarray:
    raster = as_raster(image).to_rgba()
    rgb = raster.pixels[:, :, :3]
    if mask is None:
        return rgb.reshape(-1, 3)

    mask_px = resize_mask_nearest(as_raster(mask), raster.width, raster.height)
    selected = mask_px.pixels[:, :, 0] >= KMEANS_MASK_THRESHOLD
    return rgb[selected]


def kmeans_lab(
    image: ImageSource,
    mask: Optional[ImageSource] = None,
    k: int = 3,
    max_iterations: int = KMEANS_MAX_ITERATIONS,
) -> List[ColorCluster]:
    """Cluster image colors in Lab space.

    Args:
        image: Image bytes or RasterImage
        mask: Optional mask; only pixels with first channel >= 200 are used
        k: Number of clusters
        max_iterations: k-means iteration cap

    Returns:
        k clusters sorted by pixel count, largest first. Counts cover every
        sampled pixel, not just the k-means training subset.

    Raises:
        DegenerateMask: If the mask selects no pixels
        InsufficientColors: If there are fewer distinct colors than k
    """
    pixels = _masked_pixels(image, mask)
    logger.debug(f"k-means: sampled {len(pixels)} pixels (k={k})")
    if len(pixels) == 0:
        raise DegenerateMask("No pixels found inside mask")

    distinct = len(np.unique(pixels, axis=0))
    if distinct < k:
        raise InsufficientColors(distinct, k)

    lab = rgb_array_to_lab(pixels)

    # Fixed-stride downsample keeps clustering cost bounded on large images
    stride = max(1, math.ceil(len(lab) / KMEANS_MAX_SAMPLES))
    training = lab[::stride]
    logger.debug(f"k-means: training on {len(training)} samples")

    kmeans = KMeans(
        n_clusters=k,
        max_iter=max_iterations,
        n_init=10,
        random_state=KMEANS_RANDOM_STATE,
    )
    kmeans.fit(training)

    labels = kmeans.predict(lab)
    counts = np.bincount(labels, minlength=k)
    centers = kmeans.cluster_centers_
    centers_rgb = lab_array_to_rgb(centers)

    clusters = []
    for i in range(k):
        rgb = ColorTriplet(*(int(c) for c in centers_rgb[i]))
        clusters.append(ColorCluster(
            hex=rgb_to_hex(rgb),
            rgb=rgb,
            lab=tuple(float(v) for v in centers[i]),
            pixel_count=int(counts[i]),
            proportion=float(counts[i]) / len(lab),
        ))

    clusters.sort(key=lambda c: c.pixel_count, reverse=True)
    logger.debug(
        "k-means clusters: " + ", ".join(f"{c.hex} ({c.proportion * 100:.1f}%)" for c in clusters)
    )
    return clusters


def detect_dominant_colors(image: ImageSource, mask: Optional[ImageSource] = None) -> RegionColors:
    """Suggest a primary/secondary/tertiary colorway.

    Fits k=4 and keeps the three largest clusters, falling back to k=3 and
    then to as many clusters as there are distinct colors. Missing slots
    are padded with neutral gray.
    """
    clusters = []
    distinct = None
    for k in (4, 3):
        try:
            clusters = kmeans_lab(image, mask, k=k)
            break
        except InsufficientColors as e:
            logger.warning(f"k={k} failed ({e}), falling back")
            distinct = e.distinct
    else:
        clusters = kmeans_lab(image, mask, k=distinct)

    clusters = clusters[:3]
    while len(clusters) < 3:
        gray = hex_to_rgb(FALLBACK_PALETTE_HEX)
        clusters.append(ColorCluster(FALLBACK_PALETTE_HEX, gray, (50.0, 0.0, 0.0), 0, 0.0))

    return RegionColors(
        primary=clusters[0].hex,
        secondary=clusters[1].hex,
        tertiary=clusters[2].hex,
    )
