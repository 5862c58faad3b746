"""Coordinate mapping between display space and image space, plus drag-handle math.

Every interactive tool (crop box, stickers, text) converts pointer input here and
nowhere else, so a rectangle drawn on screen always resolves to the same image
pixels whatever the window size or zoom.
"""

import dataclasses
import enum
import math
from typing import Optional, Tuple

from snapedit.config import config
from snapedit.errors import InvalidDimension, InvalidParameter
from snapedit.models import CropRequest


def round_half_up(value: float) -> int:
    """Rounds halves upward (2.5 -> 3), unlike the built-in round()."""
    return int(math.floor(value + 0.5))


@dataclasses.dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    def moved(self, dx: float, dy: float) -> "Rect":
        return dataclasses.replace(self, x=self.x + dx, y=self.y + dy)

    def rounded(self) -> Tuple[int, int, int, int]:
        return round_half_up(self.x), round_half_up(self.y), round_half_up(self.width), round_half_up(self.height)

    def to_crop_request(self) -> CropRequest:
        x, y, width, height = self.rounded()
        return CropRequest(x, y, width, height)


class Handle(enum.Enum):
    MOVE = "move"
    N = "n"
    S = "s"
    E = "e"
    W = "w"
    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"
    ROTATE = "rotate"

    @property
    def is_corner(self) -> bool:
        return self in (Handle.NW, Handle.NE, Handle.SW, Handle.SE)

    @property
    def moves_left(self) -> bool:
        return self in (Handle.W, Handle.NW, Handle.SW)

    @property
    def moves_right(self) -> bool:
        return self in (Handle.E, Handle.NE, Handle.SE)

    @property
    def moves_top(self) -> bool:
        return self in (Handle.N, Handle.NW, Handle.NE)

    @property
    def moves_bottom(self) -> bool:
        return self in (Handle.S, Handle.SW, Handle.SE)


# ----------------------------
# Display <-> image mapping
# ----------------------------

@dataclasses.dataclass(frozen=True)
class DisplayMapping:
    """scale = display width / image width; offset = displayed image top-left in the viewport."""
    scale: float
    offset_x: float = 0.0
    offset_y: float = 0.0

    def __post_init__(self):
        if not self.scale > 0:
            raise InvalidParameter(f"Display scale must be positive, got {self.scale!r}")

    @classmethod
    def from_sizes(cls, image_width: int, display_width: float, offset_x: float = 0.0, offset_y: float = 0.0) -> "DisplayMapping":
        if image_width <= 0:
            raise InvalidDimension(f"Image width must be positive, got {image_width}")
        return cls(display_width / image_width, offset_x, offset_y)

    @classmethod
    def fit(
        cls,
        image_width: int,
        image_height: int,
        viewport_width: float,
        viewport_height: float,
        zoom: float = 1.0,
        pan: Tuple[float, float] = (0.0, 0.0),
    ) -> "DisplayMapping":
        """Contain-fits the image in the viewport, centered, then applies zoom and pan."""
        if image_width <= 0 or image_height <= 0:
            raise InvalidDimension(f"Image size must be positive, got {image_width}x{image_height}")
        if viewport_width <= 0 or viewport_height <= 0:
            raise InvalidDimension(f"Viewport size must be positive, got {viewport_width}x{viewport_height}")
        scale = min(viewport_width / image_width, viewport_height / image_height) * zoom
        offset_x = (viewport_width - image_width * scale) / 2.0 + pan[0]
        offset_y = (viewport_height - image_height * scale) / 2.0 + pan[1]
        return cls(scale, offset_x, offset_y)

    def to_image_point(self, screen_x: float, screen_y: float) -> Tuple[float, float]:
        return (screen_x - self.offset_x) / self.scale, (screen_y - self.offset_y) / self.scale

    def to_image_delta(self, dx_screen: float, dy_screen: float) -> Tuple[float, float]:
        return dx_screen / self.scale, dy_screen / self.scale

    def to_display_point(self, image_x: float, image_y: float) -> Tuple[float, float]:
        return image_x * self.scale + self.offset_x, image_y * self.scale + self.offset_y

    def to_image_rect(self, rect: Rect) -> Rect:
        x, y = self.to_image_point(rect.x, rect.y)
        return Rect(x, y, rect.width / self.scale, rect.height / self.scale)

    def to_display_rect(self, rect: Rect) -> Rect:
        x, y = self.to_display_point(rect.x, rect.y)
        return Rect(x, y, rect.width * self.scale, rect.height * self.scale)


# ----------------------------
# Crop box
# ----------------------------

def constrain_crop_rect(rect: Rect, image_width: int, image_height: int) -> Rect:
    x = max(0.0, min(rect.x, image_width - 1))
    y = max(0.0, min(rect.y, image_height - 1))
    width = max(1.0, min(rect.width, image_width - x))
    height = max(1.0, min(rect.height, image_height - y))
    return Rect(x, y, width, height)


def initial_crop_rect(image_width: int, image_height: int) -> Rect:
    """Default selection: 10% inset on every side."""
    return Rect(
        math.floor(image_width * 0.1),
        math.floor(image_height * 0.1),
        math.floor(image_width * 0.8),
        math.floor(image_height * 0.8),
    )


def drag_crop_rect(start: Rect, handle: Handle, dx: float, dy: float, image_width: int, image_height: int) -> Rect:
    """Applies an image-space drag to the crop box.

    Edges not owned by `handle` stay where they were; the dragged edges are kept
    inside the image and at least one pixel away from the opposite edge.
    """
    if handle is Handle.MOVE:
        x = max(0.0, min(start.x + dx, image_width - start.width))
        y = max(0.0, min(start.y + dy, image_height - start.height))
        return constrain_crop_rect(Rect(x, y, start.width, start.height), image_width, image_height)

    left, top, right, bottom = start.x, start.y, start.right, start.bottom
    if handle.moves_left:
        left = max(0.0, min(left + dx, right - 1))
    if handle.moves_right:
        right = min(float(image_width), max(right + dx, left + 1))
    if handle.moves_top:
        top = max(0.0, min(top + dy, bottom - 1))
    if handle.moves_bottom:
        bottom = min(float(image_height), max(bottom + dy, top + 1))
    return Rect(left, top, right - left, bottom - top)


# ----------------------------
# Stickers and text
# ----------------------------

def _outward(handle: Handle, dx: float, dy: float) -> Tuple[float, float]:
    """Pointer delta re-signed so positive always means 'grow' for this corner."""
    mx = -dx if handle.moves_left else dx
    my = -dy if handle.moves_top else dy
    return mx, my


def drag_placement_rect(
    start: Rect,
    handle: Handle,
    dx: float,
    dy: float,
    image_width: Optional[float] = None,
    image_height: Optional[float] = None,
    min_size: Optional[float] = None,
    keep_aspect: bool = False,
) -> Rect:
    """Moves or resizes a sticker rectangle; the corner opposite the handle stays put.

    With `keep_aspect`, corner handles grow by whichever outward delta is larger
    in magnitude so the width and height scale together.
    """
    if min_size is None:
        min_size = config.getfloat("placement", "min_size", fallback=20.0)

    if handle is Handle.MOVE:
        x, y = start.x + dx, start.y + dy
        if image_width is not None:
            x = max(0.0, min(x, image_width - start.width))
        if image_height is not None:
            y = max(0.0, min(y, image_height - start.height))
        return Rect(x, y, start.width, start.height)

    if handle is Handle.ROTATE:
        return start

    if keep_aspect and handle.is_corner and start.height > 0:
        aspect = start.width / start.height
        mx, my = _outward(handle, dx, dy)
        growth = mx if abs(mx) >= abs(my) else my
        width = max(min_size, start.width + growth)
        height = width / aspect
        if height < min_size:
            height = min_size
            width = height * aspect
    else:
        mx, my = _outward(handle, dx, dy)
        width = start.width
        height = start.height
        if handle.moves_left or handle.moves_right:
            width = max(min_size, start.width + mx)
        if handle.moves_top or handle.moves_bottom:
            height = max(min_size, start.height + my)

    x = start.right - width if handle.moves_left else start.x
    y = start.bottom - height if handle.moves_top else start.y
    return Rect(x, y, width, height)


def rotation_from_pointer(rect: Rect, pointer_x: float, pointer_y: float) -> float:
    """Rotation in degrees (clockwise, 0 = pointer straight above the center)."""
    center_x, center_y = rect.center
    angle = math.degrees(math.atan2(pointer_y - center_y, pointer_x - center_x)) + 90.0
    if angle > 180.0:
        angle -= 360.0
    return angle


# ----------------------------
# Viewer zoom and pan
# ----------------------------

class ViewportZoom:
    """Zoom level and pan position of the main viewer."""

    def __init__(self, min_zoom: Optional[float] = None, max_zoom: Optional[float] = None, zoom_step: Optional[float] = None):
        self.min_zoom = min_zoom if min_zoom is not None else config.getfloat("viewer", "min_zoom", fallback=0.1)
        self.max_zoom = max_zoom if max_zoom is not None else config.getfloat("viewer", "max_zoom", fallback=10.0)
        self.zoom_step = zoom_step if zoom_step is not None else config.getfloat("viewer", "zoom_step", fallback=0.1)
        self.zoom = 1.0
        self.position = (0.0, 0.0)

    def _clamp(self, zoom: float) -> float:
        # rounding keeps repeated steps from drifting off 1.0
        return round(max(self.min_zoom, min(self.max_zoom, zoom)), 6)

    def wheel(self, delta: float, mouse_x: float, mouse_y: float) -> float:
        """Zooms one step toward the cursor; positive delta zooms in."""
        if delta == 0:
            return self.zoom
        new_zoom = self._clamp(self.zoom + (self.zoom_step if delta > 0 else -self.zoom_step))
        if new_zoom != self.zoom:
            ratio = new_zoom / self.zoom
            px, py = self.position
            self.position = (mouse_x - (mouse_x - px) * ratio, mouse_y - (mouse_y - py) * ratio)
            self.zoom = new_zoom
        if self.zoom <= 1.0:
            self.position = (0.0, 0.0)
        return self.zoom

    def zoom_in(self) -> float:
        self.zoom = self._clamp(self.zoom + self.zoom_step)
        return self.zoom

    def zoom_out(self) -> float:
        self.zoom = self._clamp(self.zoom - self.zoom_step)
        if self.zoom <= 1.0:
            self.position = (0.0, 0.0)
        return self.zoom

    def can_pan(self) -> bool:
        return self.zoom > 1.0

    def pan(self, start_position: Tuple[float, float], dx: float, dy: float) -> Tuple[float, float]:
        """Pans relative to the position captured when the drag started."""
        if self.can_pan():
            self.position = (start_position[0] + dx, start_position[1] + dy)
        return self.position

    def reset(self):
        self.zoom = 1.0
        self.position = (0.0, 0.0)
