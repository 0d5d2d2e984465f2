"""Hex/RGB/Lab color conversions."""

import re
from typing import NamedTuple, Tuple

import cv2
import numpy as np

from .errors import InvalidColorFormat

_HEX_PATTERN = re.compile(r"#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})")


class ColorTriplet(NamedTuple):
    r: int
    g: int
    b: int

    @property
    def hex(self) -> str:
        return rgb_to_hex(self)


def hex_to_rgb(value: str) -> ColorTriplet:
    """Parse "#RRGGBB" (leading # optional) into a ColorTriplet.

    Only the full six-digit form is accepted; "#FFF" shorthand and strings
    with trailing characters are rejected rather than partially parsed.

    Raises:
        InvalidColorFormat: If value is not exactly six hex digits
    """
    if not isinstance(value, str):
        raise InvalidColorFormat(value)
    match = _HEX_PATTERN.fullmatch(value)
    if match is None:
        raise InvalidColorFormat(value)
    r, g, b = (int(part, 16) for part in match.groups())
    return ColorTriplet(r, g, b)


def rgb_to_hex(rgb: Tuple[int, int, int]) -> str:
    """Format an RGB triplet as lowercase "#rrggbb"."""
    channels = [int(c) for c in rgb]
    if len(channels) != 3 or any(c < 0 or c > 255 for c in channels):
        raise InvalidColorFormat(tuple(rgb))
    return "#{:02x}{:02x}{:02x}".format(*channels)


def color_distance(c1: Tuple[float, float, float], c2: Tuple[float, float, float]) -> float:
    """Euclidean distance in RGB space (cheap stand-in for deltaE)."""
    diff = np.asarray(c1, dtype=np.float64) - np.asarray(c2, dtype=np.float64)
    return float(np.sqrt(np.sum(diff ** 2)))


def rgb_array_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert an (N, 3) uint8 RGB array to (N, 3) float32 CIE Lab (D65).

    L is in [0, 100]; a and b are roughly [-128, 127].
    """
    arr = np.asarray(rgb, dtype=np.float32).reshape(-1, 1, 3) / 255.0
    lab = cv2.cvtColor(arr, cv2.COLOR_RGB2LAB)
    return lab.reshape(-1, 3)


def lab_array_to_rgb(lab: np.ndarray) -> np.ndarray:
    """Convert (N, 3) CIE Lab back to (N, 3) uint8 RGB, clipped to gamut."""
    arr = np.asarray(lab, dtype=np.float32).reshape(-1, 1, 3)
    rgb = cv2.cvtColor(arr, cv2.COLOR_LAB2RGB).reshape(-1, 3)
    return np.clip(np.rint(rgb * 255.0), 0, 255).astype(np.uint8)


def rgb_to_lab(rgb: Tuple[int, int, int]) -> Tuple[float, float, float]:
    L, a, b = rgb_array_to_lab(np.array([rgb], dtype=np.uint8))[0]
    return (float(L), float(a), float(b))


def delta_e(lab1: Tuple[float, float, float], lab2: Tuple[float, float, float]) -> float:
    """CIE76 color difference: Euclidean distance in Lab."""
    return color_distance(lab1, lab2)
