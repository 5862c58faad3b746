"""Shared fixtures: small in-memory images in the formats the tests need."""

import io
import os
import tempfile

# Keep config/log files out of the real home directory; must run before snapedit is imported
os.environ["APPDATA"] = tempfile.mkdtemp(prefix="snapedit-tests-")

import numpy as np
import pytest
from PIL import Image

from snapedit.imaging.codec import decode, decode_raster


def encode_raster(raster: Image.Image, fmt: str = "PNG", **kwargs) -> bytes:
    out = io.BytesIO()
    raster.save(out, format=fmt, **kwargs)
    return out.getvalue()


@pytest.fixture
def make_image():
    """Factory: make_image(width, height, color, mode="RGBA", fmt="PNG") -> ImageBuffer."""
    def _make(width, height, color=(255, 0, 0, 255), mode="RGBA", fmt="PNG", path=None):
        raster = Image.new(mode, (width, height), color)
        return decode(encode_raster(raster, fmt), path=path)
    return _make


def _gradient_raster() -> Image.Image:
    x = np.arange(40, dtype=np.uint8)[np.newaxis, :].repeat(30, axis=0)
    y = np.arange(30, dtype=np.uint8)[:, np.newaxis].repeat(40, axis=1)
    arr = np.stack([x * 6, y * 8, (x + y) * 3], axis=-1).astype(np.uint8)
    return Image.fromarray(arr)


@pytest.fixture
def gradient_image():
    """40x30 opaque RGB PNG where every pixel is distinct."""
    return decode(encode_raster(_gradient_raster()))


@pytest.fixture
def gradient_as():
    """Factory: the 40x30 gradient saved as `fmt` with Pillow save options."""
    def _make(fmt, **save_kwargs):
        return decode(encode_raster(_gradient_raster(), fmt, **save_kwargs))
    return _make


@pytest.fixture
def half_transparent_image():
    """100x50 RGBA PNG: left half opaque red, right half fully transparent."""
    raster = Image.new("RGBA", (100, 50), (0, 0, 0, 0))
    raster.paste((255, 0, 0, 255), (0, 0, 50, 50))
    return decode(encode_raster(raster))


@pytest.fixture
def pixels():
    """Returns the decoded pixels of an ImageBuffer as a numpy array."""
    def _pixels(image):
        return np.asarray(decode_raster(image))
    return _pixels


@pytest.fixture
def sticker_bytes():
    """10x10 opaque blue PNG."""
    return encode_raster(Image.new("RGBA", (10, 10), (0, 0, 255, 255)))
