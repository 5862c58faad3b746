"""Sticker and text placements edited in a dialog, turned into a Composite request on commit."""

import dataclasses
import logging
import uuid
from typing import Dict, Iterator, List, Optional, Tuple, Union

from PIL import Image, ImageColor, ImageDraw, ImageFont

from snapedit.config import config
from snapedit.errors import InvalidDimension, InvalidParameter
from snapedit.imaging.codec import encode, raster_from_bytes
from snapedit.imaging.geometry import Handle, Rect, drag_placement_rect, rotation_from_pointer
from snapedit.models import (
    CompositeRequest,
    ImageFormat,
    Overlay,
    StickerPlacement,
    TextPlacement,
)

log = logging.getLogger(__name__)

Placement = Union[StickerPlacement, TextPlacement]


# ----------------------------
# Text rendering
# ----------------------------

def load_font(family: str, size: int):
    """Loads a TrueType font by name or path, falling back to Pillow's default font."""
    try:
        return ImageFont.truetype(family, size)
    except OSError:
        log.debug(f"Font '{family}' not found, using the default font")
        return ImageFont.load_default(size=size)


def _text_bbox(placement: TextPlacement) -> Tuple[object, Tuple[int, int, int, int]]:
    if placement.font_size <= 0:
        raise InvalidParameter(f"Font size must be positive, got {placement.font_size}")
    font = load_font(placement.font_family, placement.font_size)
    probe = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    return font, probe.textbbox((0, 0), placement.text, font=font)


def text_size(placement: TextPlacement) -> Tuple[int, int]:
    _, (left, top, right, bottom) = _text_bbox(placement)
    return max(1, right - left), max(1, bottom - top)


def render_text(placement: TextPlacement) -> Overlay:
    """Draws the text onto a transparent canvas cropped to its bounding box."""
    try:
        color = ImageColor.getrgb(placement.color)
    except ValueError:
        raise InvalidParameter(f"Unknown text colour: {placement.color!r}") from None

    font, (left, top, right, bottom) = _text_bbox(placement)
    width, height = max(1, right - left), max(1, bottom - top)
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    ImageDraw.Draw(canvas).text((-left, -top), placement.text, font=font, fill=color[:3] + (255,))

    return Overlay(
        data=encode(canvas, ImageFormat.PNG),
        x=placement.x,
        y=placement.y,
        width=width,
        height=height,
        rotation=placement.rotation,
        z_index=placement.z_index,
    )


def sticker_overlay(placement: StickerPlacement) -> Overlay:
    return Overlay(
        data=placement.data,
        x=placement.x,
        y=placement.y,
        width=placement.width,
        height=placement.height,
        rotation=placement.rotation,
        z_index=placement.z_index,
    )


# ----------------------------
# Placement board
# ----------------------------

class PlacementBoard:
    """The stickers and texts of one open dialog, all in image coordinates."""

    def __init__(self, image_width: int, image_height: int):
        if image_width <= 0 or image_height <= 0:
            raise InvalidDimension(f"Image size must be positive, got {image_width}x{image_height}")
        self.image_width = image_width
        self.image_height = image_height
        self._placements: Dict[str, Placement] = {}
        self.selected_id: Optional[str] = None

    def __len__(self) -> int:
        return len(self._placements)

    def __iter__(self) -> Iterator[Placement]:
        return iter(self.ordered())

    def ordered(self) -> List[Placement]:
        return sorted(self._placements.values(), key=lambda p: p.z_index)

    def get(self, placement_id: str) -> Placement:
        try:
            return self._placements[placement_id]
        except KeyError:
            raise InvalidParameter(f"No placement with id {placement_id!r}") from None

    def _initial_position(self) -> Tuple[float, float]:
        offset = config.getfloat("placement", "initial_offset", fallback=0.1)
        return self.image_width * offset, self.image_height * offset

    def _next_z_index(self) -> int:
        return max((p.z_index for p in self._placements.values()), default=-1) + 1

    def add_sticker(self, data: bytes) -> StickerPlacement:
        natural_width, natural_height = raster_from_bytes(data).size
        max_fraction = config.getfloat("placement", "max_fraction", fallback=0.3)
        scale = min(
            1.0,
            self.image_width * max_fraction / natural_width,
            self.image_height * max_fraction / natural_height,
        )
        x, y = self._initial_position()
        sticker = StickerPlacement(
            id=uuid.uuid4().hex,
            data=bytes(data),
            x=x,
            y=y,
            width=max(1.0, natural_width * scale),
            height=max(1.0, natural_height * scale),
            z_index=self._next_z_index(),
        )
        self._placements[sticker.id] = sticker
        self.selected_id = sticker.id
        log.debug(f"Added sticker {sticker.id} at ({x:.0f}, {y:.0f}) size {sticker.width:.0f}x{sticker.height:.0f}")
        return sticker

    def add_text(
        self,
        text: str,
        font_size: Optional[int] = None,
        font_family: Optional[str] = None,
        color: Optional[str] = None,
    ) -> TextPlacement:
        x, y = self._initial_position()
        placement = TextPlacement(
            id=uuid.uuid4().hex,
            text=text,
            x=x,
            y=y,
            font_size=font_size or config.getint("text", "font_size", fallback=32),
            font_family=font_family or config.get("text", "font_family", fallback="DejaVuSans"),
            color=color or config.get("text", "color", fallback="#000000"),
            z_index=self._next_z_index(),
        )
        self._placements[placement.id] = placement
        self.selected_id = placement.id
        return placement

    def remove(self, placement_id: str) -> bool:
        removed = self._placements.pop(placement_id, None)
        if removed is not None and self.selected_id == placement_id:
            self.selected_id = None
        return removed is not None

    def select(self, placement_id: Optional[str]):
        if placement_id is not None:
            self.get(placement_id)
        self.selected_id = placement_id

    def update(self, placement_id: str, **changes) -> Placement:
        placement = self.get(placement_id)
        names = {f.name for f in dataclasses.fields(placement)}
        unknown = set(changes) - names
        if unknown or "id" in changes:
            raise InvalidParameter(f"Cannot update {sorted(unknown | ({'id'} & set(changes)))} on {type(placement).__name__}")
        for key, value in changes.items():
            setattr(placement, key, value)
        return placement

    def rect_of(self, placement_id: str) -> Rect:
        placement = self.get(placement_id)
        if isinstance(placement, TextPlacement):
            width, height = text_size(placement)
            return Rect(placement.x, placement.y, width, height)
        return Rect(placement.x, placement.y, placement.width, placement.height)

    def drag(self, placement_id: str, handle: Handle, dx: float, dy: float, keep_aspect: bool = False) -> Placement:
        """Applies an image-space drag delta measured from the placement's current state."""
        placement = self.get(placement_id)
        if isinstance(placement, TextPlacement):
            if handle is Handle.MOVE:
                # Text keeps its anchor point inside the image
                placement.x = max(0.0, min(placement.x + dx, float(self.image_width)))
                placement.y = max(0.0, min(placement.y + dy, float(self.image_height)))
            return placement

        start = Rect(placement.x, placement.y, placement.width, placement.height)
        rect = drag_placement_rect(
            start, handle, dx, dy,
            image_width=self.image_width,
            image_height=self.image_height,
            keep_aspect=keep_aspect,
        )
        placement.x, placement.y = rect.x, rect.y
        placement.width, placement.height = rect.width, rect.height
        return placement

    def rotate_toward(self, placement_id: str, pointer_x: float, pointer_y: float) -> Placement:
        placement = self.get(placement_id)
        placement.rotation = rotation_from_pointer(self.rect_of(placement_id), pointer_x, pointer_y)
        return placement

    def to_overlays(self) -> List[Overlay]:
        overlays = []
        for placement in self.ordered():
            if isinstance(placement, TextPlacement):
                if not placement.text.strip():
                    continue
                overlays.append(render_text(placement))
            else:
                overlays.append(sticker_overlay(placement))
        return overlays

    def to_request(self) -> CompositeRequest:
        return CompositeRequest(overlays=tuple(self.to_overlays()))

    def clear(self):
        self._placements.clear()
        self.selected_id = None
