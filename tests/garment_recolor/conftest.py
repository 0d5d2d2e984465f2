"""Shared synthetic images for recolor tests."""

import io

import numpy as np
import pytest
from PIL import Image


# Garment layout on a 64x64 canvas (rows, cols)
GARMENT = (slice(8, 56), slice(16, 48))
BODY = (slice(8, 56), slice(24, 40))
SLEEVE_LEFT = (slice(8, 56), slice(16, 24))
SLEEVE_RIGHT = (slice(8, 56), slice(40, 48))


def encode_png(arr):
    buf = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(arr, dtype=np.uint8)).save(buf, format='PNG')
    return buf.getvalue()


@pytest.fixture
def png_bytes():
    """Encode a numpy array as PNG bytes."""
    return encode_png


@pytest.fixture
def garment_array():
    """64x64 RGBA garment: textured light-gray shirt on a transparent background."""
    rng = np.random.default_rng(0)
    img = np.zeros((64, 64, 4), dtype=np.uint8)
    texture = rng.integers(200, 256, size=(48, 32), dtype=np.uint8)
    img[GARMENT[0], GARMENT[1], 0] = texture
    img[GARMENT[0], GARMENT[1], 1] = texture
    img[GARMENT[0], GARMENT[1], 2] = texture
    img[GARMENT[0], GARMENT[1], 3] = 255
    return img


@pytest.fixture
def garment_png(garment_array):
    return encode_png(garment_array)


@pytest.fixture
def authored_masks():
    """Silhouette masks as authored: region black (0), everything else white."""
    body = np.full((64, 64), 255, dtype=np.uint8)
    body[BODY] = 0

    sleeves = np.full((64, 64), 255, dtype=np.uint8)
    sleeves[SLEEVE_LEFT] = 0
    sleeves[SLEEVE_RIGHT] = 0

    return {'body': encode_png(body), 'sleeves': encode_png(sleeves)}
