"""Tests for decoding, alpha detection and encoding."""

import io

import numpy as np
import pytest
from PIL import Image

from snapedit.errors import CodecError, InvalidParameter, UnsupportedFormat
from snapedit.imaging.codec import (
    buffer_from_raster,
    decode,
    decode_raster,
    detect_alpha,
    encode,
    flatten_alpha,
)
from snapedit.models import ImageFormat


def encode_raster(raster, fmt="PNG", **kwargs):
    out = io.BytesIO()
    raster.save(out, format=fmt, **kwargs)
    return out.getvalue()


def test_decode_png_with_transparency(half_transparent_image):
    image = half_transparent_image
    assert (image.width, image.height) == (100, 50)
    assert image.format is ImageFormat.PNG
    assert image.has_alpha


def test_fully_opaque_rgba_has_no_alpha(make_image):
    """The alpha flag reflects pixel content, not the presence of an alpha band."""
    image = make_image(8, 8, (10, 20, 30, 255), mode="RGBA")
    assert not image.has_alpha


def test_palette_transparency_is_detected():
    raster = Image.new("P", (4, 4), 0)
    raster.putpalette([0, 0, 0, 255, 255, 255] + [0] * 762)
    raster.putpixel((1, 1), 1)
    image = decode(encode_raster(raster, "GIF", transparency=0))
    assert image.format is ImageFormat.GIF
    assert image.has_alpha


def test_jpeg_never_has_alpha(make_image):
    image = make_image(8, 8, (10, 20, 30), mode="RGB", fmt="JPEG")
    assert image.format is ImageFormat.JPEG
    assert not image.has_alpha


def test_extension_decides_format_when_given():
    data = encode_raster(Image.new("RGB", (3, 3)), "PNG")
    assert decode(data, path="picture.png").format is ImageFormat.PNG
    assert decode(data, path="picture.unknown").format is ImageFormat.PNG


def test_decode_keeps_path(make_image):
    image = make_image(2, 2, path="/tmp/x.png")
    assert image.path == "/tmp/x.png"


def test_decode_garbage_raises_codec_error():
    with pytest.raises(CodecError):
        decode(b"definitely not an image")
    with pytest.raises(CodecError):
        decode(b"")


def test_svg_reads_intrinsic_size():
    svg = b'<?xml version="1.0"?><svg xmlns="http://www.w3.org/2000/svg" width="120px" height="80"></svg>'
    image = decode(svg)
    assert image.format is ImageFormat.SVG
    assert (image.width, image.height) == (120, 80)
    assert image.has_alpha


def test_svg_falls_back_to_viewbox():
    svg = b'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 64 32"></svg>'
    image = decode(svg, path="icon.svg")
    assert (image.width, image.height) == (64, 32)


def test_svg_without_size_fails():
    with pytest.raises(CodecError):
        decode(b'<svg xmlns="http://www.w3.org/2000/svg"></svg>')


def test_svg_cannot_be_rasterised():
    image = decode(b'<svg xmlns="http://www.w3.org/2000/svg" width="4" height="4"></svg>')
    with pytest.raises(UnsupportedFormat):
        decode_raster(image)


def test_detect_alpha_on_modes():
    assert detect_alpha(Image.new("LA", (2, 2), (0, 128)))
    assert not detect_alpha(Image.new("L", (2, 2), 0))
    assert not detect_alpha(Image.new("RGBA", (2, 2), (0, 0, 0, 255)))


def test_flatten_alpha_blends_with_background():
    raster = Image.new("RGBA", (1, 3))
    raster.putpixel((0, 0), (255, 0, 0, 255))
    raster.putpixel((0, 1), (255, 0, 0, 0))
    raster.putpixel((0, 2), (255, 0, 0, 128))
    flat = np.asarray(flatten_alpha(raster, (0, 0, 255)))
    assert tuple(flat[0, 0]) == (255, 0, 0)
    assert tuple(flat[1, 0]) == (0, 0, 255)
    # 255 * 128/255 = 128 red, 255 * 127/255 = 127 blue
    assert tuple(flat[2, 0]) == (128, 0, 127)


def test_encode_jpeg_flattens_onto_white():
    raster = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
    data = encode(raster, ImageFormat.JPEG, quality=100)
    with Image.open(io.BytesIO(data)) as im:
        assert im.format == "JPEG"
        assert im.mode == "RGB"
        assert all(c > 245 for c in im.getpixel((1, 1)))


def test_encode_rejects_decode_only_formats():
    with pytest.raises(UnsupportedFormat):
        encode(Image.new("RGB", (2, 2)), ImageFormat.SVG)
    with pytest.raises(UnsupportedFormat):
        encode(Image.new("RGB", (2, 2)), ImageFormat.HEIC)


def test_encode_ico_keeps_exact_size():
    data = encode(Image.new("RGBA", (48, 20), (1, 2, 3, 255)), ImageFormat.ICO)
    assert decode(data).size == (48, 20)


def test_encode_ico_rejects_large_images():
    with pytest.raises(InvalidParameter):
        encode(Image.new("RGB", (300, 10)), ImageFormat.ICO)


def test_buffer_from_raster_recomputes_alpha():
    raster = Image.new("RGBA", (4, 4), (9, 9, 9, 0))
    assert buffer_from_raster(raster, ImageFormat.PNG).has_alpha
    assert not buffer_from_raster(raster, ImageFormat.JPEG).has_alpha
