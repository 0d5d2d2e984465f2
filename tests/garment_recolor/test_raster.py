"""Tests for RasterImage decoding and encoding."""

import io

import numpy as np
import pytest
from PIL import Image

from garment_recolor.errors import InvalidImageData
from garment_recolor.raster import RasterImage, as_raster, decode_image


def test_decode_rgb_keeps_three_channels(png_bytes):
    arr = np.zeros((5, 7, 3), dtype=np.uint8)
    arr[:, :, 0] = 10
    raster = decode_image(png_bytes(arr))

    assert (raster.width, raster.height, raster.channels) == (7, 5, 3)
    assert len(raster.buffer) == 7 * 5 * 3
    assert raster.pixels[0, 0].tolist() == [10, 0, 0]


def test_decode_grayscale_is_single_channel(png_bytes):
    arr = np.full((4, 4), 128, dtype=np.uint8)
    raster = decode_image(png_bytes(arr))

    assert raster.channels == 1
    assert raster.pixels.shape == (4, 4, 1)


def test_ensure_alpha_synthesizes_opaque_alpha(png_bytes):
    arr = np.full((4, 4, 3), 50, dtype=np.uint8)
    raster = decode_image(png_bytes(arr), ensure_alpha=True)

    assert raster.channels == 4
    assert np.all(raster.pixels[:, :, 3] == 255)
    assert np.all(raster.pixels[:, :, :3] == 50)


def test_palette_image_with_transparency_decodes_to_rgba():
    img = Image.new('P', (3, 3), 0)
    img.putpalette([0, 0, 0, 255, 255, 255] + [0] * 762)
    buf = io.BytesIO()
    img.save(buf, format='PNG', transparency=0)

    raster = decode_image(buf.getvalue())

    assert raster.channels == 4
    assert np.all(raster.pixels[:, :, 3] == 0)


def test_decode_rejects_garbage():
    with pytest.raises(InvalidImageData, match="Failed to decode image"):
        decode_image(b"definitely not a png")


def test_from_buffer_validates_length():
    with pytest.raises(ValueError, match="does not match"):
        RasterImage.from_buffer(b"\x00" * 10, width=2, height=2, channels=3)

    raster = RasterImage.from_buffer(bytes(range(12)), width=2, height=2, channels=3)
    assert raster.buffer == bytes(range(12))


def test_to_png_is_lossless_for_rgba():
    arr = np.random.default_rng(1).integers(0, 256, size=(6, 9, 4), dtype=np.uint8)
    raster = RasterImage.from_array(arr)

    decoded = decode_image(raster.to_png())

    assert decoded.channels == 4
    assert np.array_equal(decoded.pixels, arr)


def test_to_rgba_promotes_gray_alpha():
    arr = np.zeros((2, 2, 2), dtype=np.uint8)
    arr[:, :, 0] = 90
    arr[:, :, 1] = 30
    rgba = RasterImage.from_array(arr).to_rgba()

    assert rgba.pixels[0, 0].tolist() == [90, 90, 90, 30]


def test_as_raster_passes_through_decoded_images():
    raster = RasterImage.from_array(np.zeros((2, 2, 4), dtype=np.uint8))
    assert as_raster(raster) is raster


def test_sixteen_bit_gray_is_scaled_not_clipped():
    arr = np.array([[0, 200], [32768, 65535]], dtype=np.uint16)
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format='PNG')

    raster = decode_image(buf.getvalue())

    assert raster.channels == 1
    assert raster.pixels[:, :, 0].tolist() == [[0, 0], [128, 255]]


def test_float_gray_is_clipped_to_byte_range():
    arr = np.array([[-3.0, 100.4], [254.6, 900.0]], dtype=np.float32)
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format='TIFF')

    raster = decode_image(buf.getvalue())

    assert raster.pixels[:, :, 0].tolist() == [[0, 100], [255, 255]]
