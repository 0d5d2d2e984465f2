"""Tests for silhouette mask loading and logo protection."""

import logging
from unittest.mock import patch

import cv2
import numpy as np
import pytest

from garment_recolor.errors import DegenerateMask, InvalidMaskDimensions
from garment_recolor.masks import (
    LogoBox,
    apply_logo_boxes,
    create_rectangle_mask,
    invert_mask,
    load_silhouette_mask,
    mask_coverage,
    resize_mask_nearest,
    validate_mask,
)
from garment_recolor.raster import RasterImage, decode_image


def test_invert_twice_is_identity():
    arr = np.random.default_rng(3).integers(0, 256, size=(17, 11, 3), dtype=np.uint8)
    mask = RasterImage.from_array(arr)

    assert np.array_equal(invert_mask(invert_mask(mask)).pixels, arr)
    assert np.array_equal(invert_mask(mask).pixels, 255 - arr)


def test_load_silhouette_mask_inverts_garment_to_white(png_bytes):
    authored = np.full((20, 20), 255, dtype=np.uint8)
    authored[5:15, 5:15] = 0  # garment drawn black

    mask = load_silhouette_mask(png_bytes(authored), 20, 20)

    assert mask.size == (20, 20)
    assert np.all(mask.pixels[5:15, 5:15, 0] == 255)
    assert mask.pixels[0, 0, 0] == 0


def test_load_silhouette_mask_keeps_channel_count(png_bytes):
    authored = np.zeros((8, 8, 3), dtype=np.uint8)
    mask = load_silhouette_mask(png_bytes(authored), 8, 8)

    assert mask.channels == 3
    assert np.all(mask.pixels == 255)


def test_resize_uses_nearest_neighbor():
    """Smoothing filters would invent partial values along the mask edge."""
    arr = np.zeros((10, 10), dtype=np.uint8)
    arr[:, 5:] = 255
    mask = RasterImage.from_array(arr)

    with patch('cv2.resize', wraps=cv2.resize) as mock_resize:
        resized = resize_mask_nearest(mask, 37, 37)

        mock_resize.assert_called_once()
        args, kwargs = mock_resize.call_args
        assert kwargs.get('interpolation') == cv2.INTER_NEAREST

    assert resized.size == (37, 37)
    assert resized.channels == 1
    assert set(np.unique(resized.pixels).tolist()) <= {0, 255}


def test_resize_same_size_is_noop():
    mask = RasterImage.from_array(np.zeros((4, 6), dtype=np.uint8))
    with patch('cv2.resize', wraps=cv2.resize) as mock_resize:
        assert resize_mask_nearest(mask, 6, 4) is mask
        mock_resize.assert_not_called()


def test_resize_cover_crops_overflow_from_centre():
    # 10 wide x 20 tall; top half white
    arr = np.zeros((20, 10), dtype=np.uint8)
    arr[:10, :] = 255
    mask = RasterImage.from_array(arr)

    # Cover-fit to 20x20 scales to 20x40 and crops 10 rows off top and bottom
    resized = resize_mask_nearest(mask, 20, 20)

    assert resized.size == (20, 20)
    assert np.all(resized.pixels[:10, :, 0] == 255)
    assert np.all(resized.pixels[10:, :, 0] == 0)


def test_resize_rejects_empty_target():
    mask = RasterImage.from_array(np.zeros((4, 4), dtype=np.uint8))
    with pytest.raises(InvalidMaskDimensions):
        resize_mask_nearest(mask, 0, 4)


def test_logo_box_clamp():
    assert LogoBox(-5, -5, 10, 10).clamp(100, 100) == (0, 0, 5, 5)
    assert LogoBox(90, 95, 50, 50).clamp(100, 100) == (90, 95, 100, 100)
    assert LogoBox(1.5, 2.2, 3.0, 1.0).clamp(100, 100) == (1, 2, 5, 4)
    # Entirely outside the image
    assert LogoBox(200, 200, 5, 5).clamp(100, 100) == (100, 100, 100, 100)


def test_logo_box_parse():
    assert LogoBox.parse("10, 20,30,40") == LogoBox(10, 20, 30, 40)
    with pytest.raises(ValueError, match="x,y,w,h"):
        LogoBox.parse("10,20,30")


def test_apply_logo_boxes_without_boxes_returns_input():
    data = b"not even decoded"
    assert apply_logo_boxes(data, []) is data


def test_apply_logo_boxes_paints_locked_and_copies():
    arr = np.full((10, 10, 4), 255, dtype=np.uint8)
    mask = RasterImage.from_array(arr)

    result = apply_logo_boxes(mask, [LogoBox(2, 3, 4, 2), LogoBox(4, 3, 4, 2)])

    # Every channel inside the union of boxes is 0
    assert np.all(result.pixels[3:5, 2:8, :] == 0)
    # Outside untouched
    assert np.all(result.pixels[:3, :, :] == 255)
    assert np.all(result.pixels[5:, :, :] == 255)
    assert np.all(result.pixels[3:5, :2, :] == 255)
    # Caller's mask is not mutated
    assert np.all(mask.pixels == 255)


def test_apply_logo_boxes_accepts_bytes_and_clamps(png_bytes):
    arr = np.full((10, 10), 255, dtype=np.uint8)

    result = apply_logo_boxes(png_bytes(arr), [LogoBox(8, 8, 100, 100)])

    assert isinstance(result, RasterImage)
    assert np.all(result.pixels[8:, 8:, 0] == 0)
    assert result.pixels[7, 7, 0] == 255


def test_apply_logo_box_covering_whole_image():
    mask = RasterImage.from_array(np.full((6, 6), 255, dtype=np.uint8))
    result = apply_logo_boxes(mask, [LogoBox(0, 0, 6, 6)])
    assert np.all(result.pixels == 0)


def test_create_rectangle_mask():
    mask = create_rectangle_mask(200, 120, padding=50)

    assert mask.channels == 3
    assert mask.size == (200, 120)
    assert mask.pixels[50, 50].tolist() == [255, 255, 255]
    assert mask.pixels[49, 50].tolist() == [0, 0, 0]
    assert mask.pixels[69, 149].tolist() == [255, 255, 255]
    assert mask.pixels[70, 149].tolist() == [0, 0, 0]
    assert mask.pixels[69, 150].tolist() == [0, 0, 0]


def test_validate_mask_rejects_all_black(png_bytes):
    with pytest.raises(DegenerateMask, match="completely black"):
        validate_mask(png_bytes(np.zeros((5, 5), dtype=np.uint8)))


def test_validate_mask_warns_all_white(png_bytes, caplog):
    with caplog.at_level(logging.WARNING, logger="garment_recolor.masks"):
        coverage = validate_mask(png_bytes(np.full((5, 5), 255, dtype=np.uint8)))

    assert coverage == 1.0
    assert "completely white" in caplog.text


def test_mask_coverage_threshold_is_strict():
    arr = np.array([[200, 201], [0, 255]], dtype=np.uint8)
    assert mask_coverage(RasterImage.from_array(arr)) == pytest.approx(0.5)


def test_decoded_authored_mask_round_trips_through_inversion(png_bytes):
    arr = np.random.default_rng(5).integers(0, 256, size=(9, 9), dtype=np.uint8)
    decoded = decode_image(png_bytes(arr))

    inverted = load_silhouette_mask(invert_mask(decoded).to_png(), 9, 9)

    assert np.array_equal(inverted.pixels[:, :, 0], arr)
