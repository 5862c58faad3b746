"""Decoding and encoding between raw bytes, ImageBuffer and Pillow rasters."""

import io
import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import pillow_heif
from PIL import Image, UnidentifiedImageError

from snapedit.config import config
from snapedit.errors import CodecError, InvalidParameter, UnsupportedFormat
from snapedit.imaging.cache import ByteLRUCache, build_cache_key, get_raster_size
from snapedit.models import ImageBuffer, ImageFormat

log = logging.getLogger(__name__)

Image.MAX_IMAGE_PIXELS = 200_000_000  # 200 megapixels, enough for most photos

# HEIC/HEIF decoding comes from pillow-heif
pillow_heif.register_heif_opener()

# Used when an edit has to re-encode a JPEG or AVIF the user did not convert.
# WEBP is re-encoded losslessly instead; JPEG has no lossless mode in Pillow.
REENCODE_QUALITY = 95
ICO_MAX_SIZE = 256

_raster_cache = ByteLRUCache(
    max_bytes=config.getint("core", "raster_cache_mb", fallback=256) * 1024**2,
    size_of=get_raster_size,
)


def get_raster_cache() -> ByteLRUCache:
    return _raster_cache


# ----------------------------
# Alpha handling
# ----------------------------

def normalize_raster(raster: Image.Image) -> Image.Image:
    """Returns an RGB or RGBA version of `raster`.

    Palette/grey images with transparency become RGBA so the alpha samples can be
    scanned and blended like any other.
    """
    if raster.mode in ("RGB", "RGBA"):
        return raster
    if "A" in raster.getbands() or "transparency" in raster.info:
        return raster.convert("RGBA")
    return raster.convert("RGB")


def detect_alpha(raster: Image.Image) -> bool:
    """True when at least one pixel is not fully opaque."""
    raster = normalize_raster(raster)
    if raster.mode != "RGBA":
        return False
    alpha = np.asarray(raster.getchannel("A"))
    return bool((alpha < 255).any())


def flatten_alpha(raster: Image.Image, color: Tuple[int, int, int]) -> Image.Image:
    """Blends an RGBA raster over a solid colour: fg * a + bg * (1 - a)."""
    raster = normalize_raster(raster)
    if raster.mode != "RGBA":
        return raster.copy()

    arr = np.asarray(raster, dtype=np.float32)
    alpha = arr[:, :, 3:4] / 255.0
    background = np.array(color, dtype=np.float32).reshape(1, 1, 3)
    rgb = arr[:, :, :3] * alpha + background * (1.0 - alpha)
    rgb = np.clip(np.round(rgb), 0, 255).astype(np.uint8)
    return Image.fromarray(rgb)


# ----------------------------
# Decoding
# ----------------------------

def _open_raster(data: bytes) -> Tuple[Image.Image, Optional[str]]:
    try:
        with Image.open(io.BytesIO(data)) as im:
            im.load()
            detected = im.format
            raster = normalize_raster(im)
            if raster is im:
                # normalize_raster hands back the same object for RGB/RGBA input
                raster = im.copy()
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
        raise CodecError(f"Could not decode image data: {e}") from e
    except Image.DecompressionBombError as e:
        raise CodecError(str(e)) from e
    return raster, detected


def _looks_like_svg(data: bytes) -> bool:
    head = data[:1024].lstrip()
    return head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head)


_SVG_UNITS = {
    "": 1.0,
    "px": 1.0,
    "pt": 4.0 / 3.0,
    "pc": 16.0,
    "in": 96.0,
    "cm": 96.0 / 2.54,
    "mm": 96.0 / 25.4,
}


def _svg_length(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    match = re.fullmatch(r"\s*([0-9]*\.?[0-9]+)\s*([a-z]*)\s*", value)
    if not match or match.group(2) not in _SVG_UNITS:
        return None
    return float(match.group(1)) * _SVG_UNITS[match.group(2)]


def _decode_svg(data: bytes, path: Optional[str]) -> ImageBuffer:
    """SVG is never rasterised; only its intrinsic size is read."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise CodecError(f"Invalid SVG document: {e}") from e
    if not root.tag.endswith("svg"):
        raise CodecError("Document root is not an <svg> element")

    width = _svg_length(root.get("width"))
    height = _svg_length(root.get("height"))
    if width is None or height is None:
        view_box = (root.get("viewBox") or "").replace(",", " ").split()
        if len(view_box) == 4:
            try:
                width = width or float(view_box[2])
                height = height or float(view_box[3])
            except ValueError:
                pass
    if not width or not height:
        raise CodecError("SVG has no usable width/height or viewBox")

    return ImageBuffer(
        width=max(1, round(width)),
        height=max(1, round(height)),
        format=ImageFormat.SVG,
        data=data,
        has_alpha=True,
        path=path,
    )


def decode(data: bytes, path: Optional[str] = None, format_hint: Optional[ImageFormat] = None) -> ImageBuffer:
    """Decodes raw file bytes into an ImageBuffer.

    The format comes from `format_hint` or the path extension, falling back to
    whatever Pillow detects when neither names one.
    """
    data = bytes(data)
    if not data:
        raise CodecError("Image data is empty")

    hinted = format_hint
    if hinted is None and path:
        hinted = ImageFormat.from_extension(Path(path).suffix)

    if hinted is ImageFormat.SVG or (hinted is None and _looks_like_svg(data)):
        return _decode_svg(data, path)

    raster, detected = _open_raster(data)
    fmt = hinted
    if fmt is None and detected:
        try:
            fmt = ImageFormat.parse(detected)
        except InvalidParameter:
            log.debug(f"Pillow format {detected} has no ImageFormat mapping")
    if fmt is None:
        raise CodecError(f"Unsupported image format: {detected or 'unknown'}")

    _raster_cache[build_cache_key(data)] = raster
    image = ImageBuffer(
        width=int(raster.width),
        height=int(raster.height),
        format=fmt,
        data=data,
        has_alpha=detect_alpha(raster),
        path=path,
    )
    log.debug(f"Decoded {image.describe()} from {path or 'memory'}")
    return image


def decode_raster(image: ImageBuffer) -> Image.Image:
    """Returns a private RGB/RGBA Pillow copy of the image's pixels."""
    if image.format is ImageFormat.SVG:
        raise UnsupportedFormat("SVG images can be viewed but not edited")
    return raster_from_bytes(image.data)


def raster_from_bytes(data: bytes) -> Image.Image:
    """Decodes any supported raster bytes (sticker files included) through the cache."""
    key = build_cache_key(data)
    raster = _raster_cache.lookup(key)
    if raster is None:
        raster, _ = _open_raster(data)
        _raster_cache[key] = raster
    return raster.copy()


# ----------------------------
# Encoding
# ----------------------------

def encode(raster: Image.Image, fmt: ImageFormat, quality: Optional[int] = None) -> bytes:
    """Encodes a raster into `fmt` and returns the file bytes."""
    if not fmt.encodable:
        raise UnsupportedFormat(f"{fmt.value} can be decoded but not encoded")

    raster = normalize_raster(raster)
    save_kwargs = {"format": fmt.pil_name}

    if fmt is ImageFormat.JPEG:
        if raster.mode == "RGBA":
            raster = flatten_alpha(raster, (255, 255, 255))
        if quality is None:
            # Full chroma keeps geometric edits within a few levels of the source
            save_kwargs.update(quality=REENCODE_QUALITY, subsampling=0)
        else:
            save_kwargs["quality"] = quality
    elif fmt is ImageFormat.WEBP:
        if quality is None:
            # exact keeps the colour under fully transparent pixels
            save_kwargs.update(lossless=True, exact=True)
        else:
            save_kwargs["quality"] = quality
    elif fmt is ImageFormat.AVIF:
        if quality is None:
            save_kwargs.update(quality=100, subsampling="4:4:4")
        else:
            save_kwargs["quality"] = quality
    elif fmt is ImageFormat.ICO:
        if raster.width > ICO_MAX_SIZE or raster.height > ICO_MAX_SIZE:
            raise InvalidParameter(
                f"ICO images are limited to {ICO_MAX_SIZE}x{ICO_MAX_SIZE}, got {raster.width}x{raster.height}"
            )
        # Keep the exact size instead of Pillow's default icon size ladder
        save_kwargs["sizes"] = [raster.size]

    out = io.BytesIO()
    try:
        raster.save(out, **save_kwargs)
    except (OSError, ValueError, KeyError) as e:
        raise CodecError(f"Failed to encode {fmt.value}: {e}") from e
    return out.getvalue()


def buffer_from_raster(
    raster: Image.Image,
    fmt: ImageFormat,
    *,
    quality: Optional[int] = None,
    path: Optional[str] = None,
    has_alpha: Optional[bool] = None,
) -> ImageBuffer:
    """Encodes a raster and wraps it in a new ImageBuffer.

    Unless `has_alpha` is forced, the alpha flag is recomputed from the encoded
    bytes, since the target format may have dropped or quantised the alpha band.
    """
    data = encode(raster, fmt, quality)
    written, _ = _open_raster(data)
    _raster_cache[build_cache_key(data)] = written
    if has_alpha is None:
        has_alpha = detect_alpha(written)
    return ImageBuffer(
        width=int(written.width),
        height=int(written.height),
        format=fmt,
        data=data,
        has_alpha=has_alpha,
        path=path,
    )
