"""Exceptions raised by the recoloring engine.

Input errors subclass ValueError so callers that already catch bad input
keep working. GeometryChanged subclasses RuntimeError: it signals the
pipeline produced an unusable image, not that the caller passed bad data.
"""

from typing import Optional


class RecolorError(Exception):
    """Base class for all engine errors."""


class RecolorInputError(RecolorError, ValueError):
    """Caller supplied invalid input. Raised before any compositing."""


class InvalidColorFormat(RecolorInputError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid hex color: {value!r}")


class InvalidTemplateDimensions(RecolorInputError):
    """Template decoded to a zero-sized image."""


class InvalidMaskDimensions(RecolorInputError):
    """Mask or requested layer size is zero."""


class InvalidImageData(RecolorInputError):
    """Bytes could not be decoded as an image."""


class MissingRegionMask(RecolorInputError):
    """A required region (body or sleeves) or its color was not supplied."""

    def __init__(self, missing):
        self.missing = tuple(missing)
        super().__init__(
            f"Required regions missing: {', '.join(self.missing)}"
        )


class DegenerateMask(RecolorInputError):
    """Mask has no editable pixels."""


class InsufficientColors(RecolorInputError):
    """Fewer distinct colors than requested clusters."""

    def __init__(self, distinct: int, requested: int):
        self.distinct = distinct
        self.requested = requested
        super().__init__(
            f"Only {distinct} distinct colors found, cannot fit {requested} clusters"
        )


class GeometryChanged(RecolorError, RuntimeError):
    """The recolored image's silhouette differs from the template's."""

    def __init__(
        self,
        message: str,
        diff_ratio: Optional[float] = None,
        mismatches: Optional[int] = None,
        total_pixels: Optional[int] = None,
    ):
        self.diff_ratio = diff_ratio
        self.mismatches = mismatches
        self.total_pixels = total_pixels
        super().__init__(f"GEOMETRY_CHANGED: {message}")
