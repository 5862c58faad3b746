"""Pure image transforms: every function takes an ImageBuffer and returns a new one."""

import logging
from typing import Iterable, Optional, Tuple

import numpy as np
from PIL import Image

from snapedit.config import config
from snapedit.errors import (
    InvalidDimension,
    InvalidParameter,
    TransparencyRequired,
    UnsupportedFormat,
)
from snapedit.imaging.codec import (
    buffer_from_raster,
    decode_raster,
    flatten_alpha,
    raster_from_bytes,
)
from snapedit.imaging.geometry import round_half_up
from snapedit.models import (
    CompositeRequest,
    ConvertRequest,
    CropRequest,
    ImageBuffer,
    ImageFormat,
    Overlay,
    ResizeRequest,
    RGBColor,
    RotateRequest,
    SetBackgroundRequest,
)

log = logging.getLogger(__name__)


def _require_positive(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise InvalidDimension(f"{name} must be a positive integer, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise InvalidDimension(f"{name} must be a whole number of pixels, got {value!r}")
    return int(value)


def _require_editable(image: ImageBuffer):
    if image.format is ImageFormat.SVG:
        raise UnsupportedFormat("SVG images can be viewed but not edited")


# ----------------------------
# Resize
# ----------------------------

def compute_aspect_fit(src_width: int, src_height: int, target_width: int, target_height: int) -> Tuple[int, int]:
    """Largest size with the source aspect ratio that fits inside the target box."""
    scale = min(target_width / src_width, target_height / src_height)
    width = min(target_width, max(1, round_half_up(src_width * scale)))
    height = min(target_height, max(1, round_half_up(src_height * scale)))
    return width, height


def resize(image: ImageBuffer, target_width: int, target_height: int, keep_aspect: bool = True) -> ImageBuffer:
    target_width = _require_positive("Target width", target_width)
    target_height = _require_positive("Target height", target_height)
    _require_editable(image)

    if keep_aspect:
        size = compute_aspect_fit(image.width, image.height, target_width, target_height)
    else:
        size = (target_width, target_height)

    raster = decode_raster(image)
    if raster.size != size:
        raster = raster.resize(size, resample=Image.Resampling.LANCZOS)
    log.debug(f"Resized {image.describe()} to {size[0]}x{size[1]}")
    return buffer_from_raster(raster, image.format, path=image.path)


# ----------------------------
# Crop
# ----------------------------

def clamp_crop_box(src_width: int, src_height: int, x: int, y: int, width: int, height: int) -> Tuple[int, int, int, int]:
    """Moves an otherwise valid rectangle inside [0, src_width) x [0, src_height)."""
    x = min(max(int(x), 0), src_width - 1)
    y = min(max(int(y), 0), src_height - 1)
    width = min(max(int(width), 1), src_width - x)
    height = min(max(int(height), 1), src_height - y)
    return x, y, width, height


def crop(image: ImageBuffer, x: int, y: int, width: int, height: int) -> ImageBuffer:
    # A zero or negative size is an error; only the position gets clamped
    width = _require_positive("Crop width", width)
    height = _require_positive("Crop height", height)
    _require_editable(image)

    x, y, width, height = clamp_crop_box(image.width, image.height, x, y, width, height)
    raster = decode_raster(image)
    raster = raster.crop((x, y, x + width, y + height))
    log.debug(f"Cropped {image.describe()} to ({x}, {y}, {width}, {height})")
    return buffer_from_raster(raster, image.format, path=image.path)


# ----------------------------
# Convert
# ----------------------------

def convert(image: ImageBuffer, target_format, quality: Optional[int] = None) -> ImageBuffer:
    if not isinstance(target_format, ImageFormat):
        target_format = ImageFormat.parse(str(target_format))
    if not target_format.encodable:
        raise UnsupportedFormat(f"{target_format.value} cannot be used as a conversion target")

    if quality is not None:
        if isinstance(quality, bool) or not isinstance(quality, int) or not 1 <= quality <= 100:
            raise InvalidParameter(f"Quality must be an integer in 1..100, got {quality!r}")
        if not target_format.supports_quality:
            log.debug(f"Ignoring quality {quality} for {target_format.value}")
            quality = None
    elif target_format.supports_quality:
        quality = config.getint("core", "default_quality", fallback=90)

    _require_editable(image)
    raster = decode_raster(image)
    result = buffer_from_raster(raster, target_format, quality=quality, path=image.path)
    log.debug(f"Converted {image.describe()} to {result.describe()}")
    return result


# ----------------------------
# Set background
# ----------------------------

def set_background(image: ImageBuffer, r: int, g: int, b: int) -> ImageBuffer:
    color = RGBColor(r, g, b)
    _require_editable(image)
    if not image.has_alpha:
        raise TransparencyRequired(f"{image.describe()} has no transparent pixels to fill")

    raster = decode_raster(image)
    flattened = flatten_alpha(raster, color.as_tuple())
    log.debug(f"Flattened {image.describe()} onto {color.to_hex()}")
    return buffer_from_raster(flattened, image.format, path=image.path, has_alpha=False)


# ----------------------------
# Rotate
# ----------------------------

def rotate(image: ImageBuffer, clockwise: bool = True) -> ImageBuffer:
    _require_editable(image)
    raster = decode_raster(image)
    # Pillow's ROTATE_* constants are counter-clockwise
    if clockwise:
        raster = raster.transpose(Image.Transpose.ROTATE_270)
    else:
        raster = raster.transpose(Image.Transpose.ROTATE_90)
    return buffer_from_raster(raster, image.format, path=image.path, has_alpha=image.has_alpha)


# ----------------------------
# Composite
# ----------------------------

def _render_overlay(overlay: Overlay) -> Tuple[Image.Image, int, int]:
    """Scales and rotates one overlay, returning it with its top-left on the canvas."""
    width = max(1, round_half_up(overlay.width))
    height = max(1, round_half_up(overlay.height))

    layer = raster_from_bytes(overlay.data).convert("RGBA")
    if layer.size != (width, height):
        layer = layer.resize((width, height), resample=Image.Resampling.LANCZOS)

    center_x = overlay.x + overlay.width / 2.0
    center_y = overlay.y + overlay.height / 2.0
    if abs(overlay.rotation % 360) > 0.001:
        # Pillow rotates counter-clockwise for positive angles
        layer = layer.rotate(-overlay.rotation, resample=Image.Resampling.BICUBIC, expand=True)

    left = round_half_up(center_x - layer.width / 2.0)
    top = round_half_up(center_y - layer.height / 2.0)
    return layer, left, top


def _blend_layer(canvas: np.ndarray, layer: Image.Image, left: int, top: int):
    """Alpha-blends `layer` onto the float32 RGBA canvas in place, clipping at the edges."""
    canvas_h, canvas_w = canvas.shape[:2]
    x0, y0 = max(left, 0), max(top, 0)
    x1, y1 = min(left + layer.width, canvas_w), min(top + layer.height, canvas_h)
    if x0 >= x1 or y0 >= y1:
        return

    fg = np.asarray(layer, dtype=np.float32)[y0 - top:y1 - top, x0 - left:x1 - left]
    region = canvas[y0:y1, x0:x1]
    alpha = fg[:, :, 3:4] / 255.0
    region[:, :, :3] = fg[:, :, :3] * alpha + region[:, :, :3] * (1.0 - alpha)
    region[:, :, 3:4] = fg[:, :, 3:4] + region[:, :, 3:4] * (1.0 - alpha)


def composite(image: ImageBuffer, overlays: Iterable[Overlay]) -> ImageBuffer:
    overlays = list(overlays)
    for overlay in overlays:
        if overlay.width <= 0 or overlay.height <= 0:
            raise InvalidDimension(
                f"Overlay size must be positive, got {overlay.width}x{overlay.height}"
            )
    _require_editable(image)

    base = decode_raster(image)
    if not overlays:
        return buffer_from_raster(base, image.format, path=image.path)

    canvas = np.array(base.convert("RGBA"), dtype=np.float32)
    # sorted() is stable, so equal z-indexes keep their list order
    for overlay in sorted(overlays, key=lambda o: o.z_index):
        layer, left, top = _render_overlay(overlay)
        _blend_layer(canvas, layer, left, top)

    result = Image.fromarray(np.clip(np.round(canvas), 0, 255).astype(np.uint8))
    log.debug(f"Composited {len(overlays)} overlay(s) onto {image.describe()}")
    return buffer_from_raster(result, image.format, path=image.path)


# ----------------------------
# Request dispatch
# ----------------------------

def apply_request(image: ImageBuffer, request) -> ImageBuffer:
    """Runs the transform named by a request object."""
    if isinstance(request, ResizeRequest):
        return resize(image, request.target_width, request.target_height, request.keep_aspect)
    if isinstance(request, CropRequest):
        return crop(image, request.x, request.y, request.width, request.height)
    if isinstance(request, ConvertRequest):
        return convert(image, request.target_format, request.quality)
    if isinstance(request, SetBackgroundRequest):
        return set_background(image, request.r, request.g, request.b)
    if isinstance(request, RotateRequest):
        return rotate(image, request.clockwise)
    if isinstance(request, CompositeRequest):
        return composite(image, request.overlays)
    raise InvalidParameter(f"Unknown transform request: {type(request).__name__}")
