"""Tests for 90 degree rotation."""

import io

import numpy as np
import pytest
from PIL import Image, features

from snapedit.imaging.codec import decode
from snapedit.imaging.transforms import rotate

# JPEG has no lossless re-encode; each geometric edit may shift a channel by a few levels
JPEG_MAX_DRIFT = 12
JPEG_MEAN_DRIFT = 2.0


def test_clockwise_swaps_dimensions(half_transparent_image):
    result = rotate(half_transparent_image, True)
    assert (result.width, result.height) == (50, 100)
    assert result.format is half_transparent_image.format
    assert result.has_alpha == half_transparent_image.has_alpha


def test_clockwise_moves_top_left_to_top_right(gradient_image, pixels):
    original = pixels(gradient_image)
    rotated = pixels(rotate(gradient_image, clockwise=True))
    assert rotated.shape == (40, 30, 3)
    np.testing.assert_array_equal(rotated[0, -1], original[0, 0])
    np.testing.assert_array_equal(rotated, np.rot90(original, k=-1))


def test_counterclockwise_matches_numpy(gradient_image, pixels):
    rotated = pixels(rotate(gradient_image, clockwise=False))
    np.testing.assert_array_equal(rotated, np.rot90(pixels(gradient_image), k=1))


def test_rotate_there_and_back_is_identity(gradient_image, pixels):
    back = rotate(rotate(gradient_image, True), False)
    np.testing.assert_array_equal(pixels(back), pixels(gradient_image))


@pytest.mark.parametrize("clockwise", [True, False])
def test_four_rotations_are_identity(half_transparent_image, pixels, clockwise):
    image = half_transparent_image
    for _ in range(4):
        image = rotate(image, clockwise)
    assert image.size == half_transparent_image.size
    np.testing.assert_array_equal(pixels(image), pixels(half_transparent_image))


def test_rotate_preserves_opaque_flag(gradient_image):
    assert not rotate(gradient_image).has_alpha


def _drift(a, b):
    diff = np.abs(a.astype(np.int16) - b.astype(np.int16))
    return int(diff.max()), float(diff.mean())


def test_webp_round_trip_is_pixel_exact(gradient_as, pixels):
    """Lossy WEBP sources are re-encoded losslessly, so the decoded pixels survive."""
    image = gradient_as("WEBP", quality=60)
    back = rotate(rotate(image, True), False)
    assert back.format is image.format
    np.testing.assert_array_equal(pixels(back), pixels(image))


def test_webp_with_alpha_round_trip_is_pixel_exact(half_transparent_image, pixels):
    out = io.BytesIO()
    Image.open(io.BytesIO(half_transparent_image.data)).save(out, format="WEBP", lossless=True, exact=True)
    image = decode(out.getvalue())
    assert image.has_alpha

    back = rotate(rotate(image, False), True)
    assert back.has_alpha
    np.testing.assert_array_equal(pixels(back), pixels(image))


def test_jpeg_round_trip_stays_within_tolerance(gradient_as, pixels):
    image = gradient_as("JPEG", quality=80)
    back = rotate(rotate(image, True), False)
    assert back.size == image.size
    max_drift, mean_drift = _drift(pixels(back), pixels(image))
    assert max_drift <= JPEG_MAX_DRIFT
    assert mean_drift <= JPEG_MEAN_DRIFT


@pytest.mark.skipif(not features.check("avif"), reason="Pillow built without AVIF")
def test_avif_round_trip_stays_close(gradient_as, pixels):
    image = gradient_as("AVIF", quality=90)
    back = rotate(rotate(image, True), False)
    assert back.size == image.size
    _, mean_drift = _drift(pixels(back), pixels(image))
    assert mean_drift <= 3.0
