"""Tests for filling transparent pixels with a solid colour."""

import numpy as np
import pytest

from snapedit.errors import InvalidParameter, TransparencyRequired
from snapedit.imaging.transforms import set_background
from snapedit.models import ImageFormat


def test_background_fills_transparent_pixels(half_transparent_image, pixels):
    result = set_background(half_transparent_image, 255, 255, 255)
    assert not result.has_alpha
    assert result.format is ImageFormat.PNG
    arr = pixels(result)
    assert arr.shape == (50, 100, 3)
    assert tuple(arr[10, 10]) == (255, 0, 0)
    assert tuple(arr[10, 90]) == (255, 255, 255)


def test_partial_alpha_is_blended(make_image, pixels):
    image = make_image(2, 2, (200, 100, 0, 51))
    arr = pixels(set_background(image, 0, 0, 0))
    # 51/255 = 0.2
    assert tuple(arr[0, 0]) == (40, 20, 0)


def test_requires_transparency(gradient_image):
    with pytest.raises(TransparencyRequired):
        set_background(gradient_image, 0, 0, 0)


def test_opaque_rgba_still_requires_transparency(make_image):
    image = make_image(4, 4, (1, 2, 3, 255))
    with pytest.raises(TransparencyRequired):
        set_background(image, 0, 0, 0)


@pytest.mark.parametrize("rgb", [(256, 0, 0), (0, -1, 0), (0, 0, 1000)])
def test_channel_range_is_checked(half_transparent_image, rgb):
    with pytest.raises(InvalidParameter):
        set_background(half_transparent_image, *rgb)


def test_result_can_never_be_flattened_again(half_transparent_image):
    flat = set_background(half_transparent_image, 10, 20, 30)
    with pytest.raises(TransparencyRequired):
        set_background(flat, 10, 20, 30)
