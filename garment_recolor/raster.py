"""Raster image value type and PNG codec helpers.

Every stage of the engine passes images around as a RasterImage: an
explicit width/height/channels record over a contiguous uint8 array in
row-major, interleaved-channel order. Pixel math lives in free functions
in the other modules; this module only decodes, encodes and converts
channel layouts.
"""

import io
from dataclasses import dataclass
from typing import Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import InvalidImageData


# PIL modes mapped onto the four layouts the engine understands
_MODE_CONVERSIONS = {
    "1": "L",
    "La": "LA",
    "PA": "RGBA",
    "RGBa": "RGBA",
    "RGBX": "RGB",
    "CMYK": "RGB",
    "YCbCr": "RGB",
    "LAB": "RGB",
    "HSV": "RGB",
}

# Integer gray modes carrying 16-bit samples; scaled down rather than clipped
_WIDE_GRAY_MODES = ("I", "I;16", "I;16B", "I;16L", "I;16N")


@dataclass(frozen=True)
class RasterImage:
    """Decoded bitmap.

    Fields:
        width: Width in pixels.
        height: Height in pixels.
        channels: 1 (gray), 2 (gray+alpha), 3 (RGB) or 4 (RGBA).
        pixels: uint8 array of shape (height, width, channels).
    """
    width: int
    height: int
    channels: int
    pixels: np.ndarray

    def __post_init__(self):
        if self.channels not in (1, 2, 3, 4):
            raise ValueError(f"channels must be 1-4, got {self.channels}")
        expected = (self.height, self.width, self.channels)
        if self.pixels.shape != expected:
            raise ValueError(
                f"pixel array shape {self.pixels.shape} does not match {expected}"
            )
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"pixel array must be uint8, got {self.pixels.dtype}")

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "RasterImage":
        """Wrap an (H, W) or (H, W, C) uint8 array."""
        arr = np.ascontiguousarray(pixels, dtype=np.uint8)
        if arr.ndim == 2:
            arr = arr[:, :, np.newaxis]
        if arr.ndim != 3:
            raise ValueError(f"Expected 2D or 3D array, got shape {arr.shape}")
        height, width, channels = arr.shape
        return cls(width=width, height=height, channels=channels, pixels=arr)

    @classmethod
    def from_buffer(cls, buffer: bytes, width: int, height: int, channels: int) -> "RasterImage":
        """Build an image from raw interleaved bytes.

        Raises:
            ValueError: If len(buffer) != width * height * channels
        """
        expected = width * height * channels
        if len(buffer) != expected:
            raise ValueError(
                f"Buffer length {len(buffer)} does not match "
                f"{width}x{height}x{channels} = {expected}"
            )
        arr = np.frombuffer(buffer, dtype=np.uint8).reshape(height, width, channels)
        return cls(width=width, height=height, channels=channels, pixels=arr.copy())

    @property
    def size(self):
        return (self.width, self.height)

    @property
    def buffer(self) -> bytes:
        """Raw row-major interleaved bytes (len == width * height * channels)."""
        return self.pixels.tobytes()

    @property
    def has_alpha(self) -> bool:
        return self.channels in (2, 4)

    def copy(self) -> "RasterImage":
        return RasterImage(self.width, self.height, self.channels, self.pixels.copy())

    def to_rgba(self) -> "RasterImage":
        """Promote to 4 channels, synthesizing opaque alpha when absent."""
        if self.channels == 4:
            return self
        px = self.pixels
        if self.channels in (1, 2):
            rgb = np.repeat(px[:, :, :1], 3, axis=2)
        else:
            rgb = px
        if self.has_alpha:
            alpha = px[:, :, 1:2]
        else:
            alpha = np.full((self.height, self.width, 1), 255, dtype=np.uint8)
        return RasterImage.from_array(np.concatenate([rgb, alpha], axis=2))

    def to_pil(self) -> Image.Image:
        if self.channels == 1:
            return Image.fromarray(self.pixels[:, :, 0])
        return Image.fromarray(self.pixels)

    def to_png(self) -> bytes:
        """Encode losslessly as PNG, keeping the channel layout."""
        out = io.BytesIO()
        self.to_pil().save(out, format="PNG")
        return out.getvalue()


ImageSource = Union[bytes, bytearray, memoryview, RasterImage]


def decode_image(data: Union[bytes, bytearray, memoryview], ensure_alpha: bool = False) -> RasterImage:
    """Decode encoded image bytes (PNG, JPEG, WebP, ...) into a RasterImage.

    Args:
        data: Encoded image bytes
        ensure_alpha: Always return RGBA, adding opaque alpha if missing

    Returns:
        RasterImage with 1-4 channels (4 when ensure_alpha)

    Raises:
        InvalidImageData: If the bytes are not a decodable image
    """
    try:
        img = Image.open(io.BytesIO(bytes(data)))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImageData(f"Failed to decode image: {e}") from e

    if img.mode in _WIDE_GRAY_MODES:
        wide = np.clip(np.array(img, dtype=np.int64), 0, 65535)
        img = Image.fromarray((wide >> 8).astype(np.uint8))
    elif img.mode == "F":
        img = Image.fromarray(np.clip(np.rint(np.array(img)), 0, 255).astype(np.uint8))
    elif img.mode == "P":
        img = img.convert("RGBA" if "transparency" in img.info else "RGB")
    elif img.mode in _MODE_CONVERSIONS:
        img = img.convert(_MODE_CONVERSIONS[img.mode])

    if ensure_alpha and img.mode != "RGBA":
        img = img.convert("RGBA")

    return RasterImage.from_array(np.array(img))


def as_raster(source: ImageSource, ensure_alpha: bool = False) -> RasterImage:
    """Accept either encoded bytes or an already decoded RasterImage."""
    if isinstance(source, RasterImage):
        return source.to_rgba() if ensure_alpha else source
    return decode_image(source, ensure_alpha=ensure_alpha)
