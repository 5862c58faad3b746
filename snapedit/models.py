"""Core data types and enumerations for snapedit."""

import dataclasses
import enum
from typing import Optional, Tuple, Union

from snapedit.errors import InvalidDimension, InvalidParameter


class ImageFormat(enum.Enum):
    PNG = "PNG"
    JPEG = "JPEG"
    GIF = "GIF"
    BMP = "BMP"
    WEBP = "WEBP"
    SVG = "SVG"
    TIFF = "TIFF"
    ICO = "ICO"
    HEIC = "HEIC"
    AVIF = "AVIF"

    @classmethod
    def parse(cls, name: str) -> "ImageFormat":
        """Accepts enum names, Pillow format names and file extensions."""
        key = (name or "").strip().lstrip(".").upper()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise InvalidParameter(f"Unknown image format: {name!r}") from None

    @classmethod
    def from_extension(cls, suffix: str) -> Optional["ImageFormat"]:
        return _EXTENSIONS.get((suffix or "").lower().lstrip("."))

    @property
    def encodable(self) -> bool:
        return self not in (ImageFormat.SVG, ImageFormat.HEIC)

    @property
    def supports_quality(self) -> bool:
        return self in (ImageFormat.JPEG, ImageFormat.WEBP, ImageFormat.AVIF)

    @property
    def supports_alpha(self) -> bool:
        return self not in (ImageFormat.JPEG,)

    @property
    def extension(self) -> str:
        return _PREFERRED_EXTENSION[self]

    @property
    def pil_name(self) -> str:
        # Pillow registers HEIC under its container name
        return "HEIF" if self is ImageFormat.HEIC else self.value


_ALIASES = {
    "JPG": "JPEG",
    "TIF": "TIFF",
    "HEIF": "HEIC",
    "MPO": "JPEG",
}

_EXTENSIONS = {
    "png": ImageFormat.PNG,
    "jpg": ImageFormat.JPEG,
    "jpeg": ImageFormat.JPEG,
    "gif": ImageFormat.GIF,
    "bmp": ImageFormat.BMP,
    "webp": ImageFormat.WEBP,
    "svg": ImageFormat.SVG,
    "tif": ImageFormat.TIFF,
    "tiff": ImageFormat.TIFF,
    "ico": ImageFormat.ICO,
    "heic": ImageFormat.HEIC,
    "heif": ImageFormat.HEIC,
    "avif": ImageFormat.AVIF,
}

_PREFERRED_EXTENSION = {
    ImageFormat.PNG: ".png",
    ImageFormat.JPEG: ".jpg",
    ImageFormat.GIF: ".gif",
    ImageFormat.BMP: ".bmp",
    ImageFormat.WEBP: ".webp",
    ImageFormat.SVG: ".svg",
    ImageFormat.TIFF: ".tiff",
    ImageFormat.ICO: ".ico",
    ImageFormat.HEIC: ".heic",
    ImageFormat.AVIF: ".avif",
}

SUPPORTED_EXTENSIONS = frozenset(f".{ext}" for ext in _EXTENSIONS)


@dataclasses.dataclass(frozen=True)
class ImageBuffer:
    """An encoded image plus the metadata every transform needs.

    Instances are never modified after construction; transforms return new ones.
    `data` holds the encoded file bytes in `format`.
    """
    width: int
    height: int
    format: ImageFormat
    data: bytes = dataclasses.field(repr=False)
    has_alpha: bool = False
    path: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.width, int) or not isinstance(self.height, int):
            raise InvalidDimension(f"Dimensions must be integers, got {self.width!r}x{self.height!r}")
        if self.width <= 0 or self.height <= 0:
            raise InvalidDimension(f"Dimensions must be positive, got {self.width}x{self.height}")
        if not isinstance(self.format, ImageFormat):
            object.__setattr__(self, "format", ImageFormat.parse(str(self.format)))
        if not isinstance(self.data, bytes):
            object.__setattr__(self, "data", bytes(self.data))
        object.__setattr__(self, "has_alpha", bool(self.has_alpha))

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def describe(self) -> str:
        alpha = " (alpha)" if self.has_alpha else ""
        return f"{self.width}x{self.height} {self.format.value}{alpha}"


@dataclasses.dataclass(frozen=True)
class RGBColor:
    r: int
    g: int
    b: int

    def __post_init__(self):
        for name in ("r", "g", "b"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= 255:
                raise InvalidParameter(f"Colour channel {name} must be in 0..255, got {value!r}")

    @classmethod
    def from_hex(cls, text: str) -> "RGBColor":
        value = (text or "").strip().lstrip("#")
        if len(value) == 3:
            value = "".join(c * 2 for c in value)
        if len(value) != 6:
            raise InvalidParameter(f"Expected a #RRGGBB colour, got {text!r}")
        try:
            return cls(int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))
        except ValueError:
            raise InvalidParameter(f"Expected a #RRGGBB colour, got {text!r}") from None

    def as_tuple(self) -> Tuple[int, int, int]:
        return self.r, self.g, self.b

    def to_hex(self) -> str:
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"


@dataclasses.dataclass(frozen=True)
class Overlay:
    """One layer of a Composite request, already expressed in image space.

    `rotation` is in degrees, clockwise on screen, about the overlay's center.
    """
    data: bytes = dataclasses.field(repr=False)
    x: float
    y: float
    width: float
    height: float
    rotation: float = 0.0
    z_index: int = 0


# ----------------------------
# Transform requests
# ----------------------------

@dataclasses.dataclass(frozen=True)
class ResizeRequest:
    target_width: int
    target_height: int
    keep_aspect: bool = True
    label = "Resize"


@dataclasses.dataclass(frozen=True)
class CropRequest:
    x: int
    y: int
    width: int
    height: int
    label = "Crop"


@dataclasses.dataclass(frozen=True)
class ConvertRequest:
    target_format: ImageFormat
    quality: Optional[int] = None
    label = "Convert"


@dataclasses.dataclass(frozen=True)
class SetBackgroundRequest:
    r: int
    g: int
    b: int
    label = "Set background"

    @classmethod
    def from_color(cls, color: RGBColor) -> "SetBackgroundRequest":
        return cls(color.r, color.g, color.b)


@dataclasses.dataclass(frozen=True)
class RotateRequest:
    clockwise: bool = True
    label = "Rotate"


@dataclasses.dataclass(frozen=True)
class CompositeRequest:
    overlays: Tuple[Overlay, ...] = ()
    label = "Composite"

    def __post_init__(self):
        object.__setattr__(self, "overlays", tuple(self.overlays))


TransformRequest = Union[
    ResizeRequest,
    CropRequest,
    ConvertRequest,
    SetBackgroundRequest,
    RotateRequest,
    CompositeRequest,
]


# ----------------------------
# UI placements (never stored in history)
# ----------------------------

@dataclasses.dataclass
class StickerPlacement:
    id: str
    data: bytes = dataclasses.field(repr=False)
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    rotation: float = 0.0
    z_index: int = 0


@dataclasses.dataclass
class TextPlacement:
    id: str
    text: str
    x: float = 0.0
    y: float = 0.0
    font_size: int = 32
    font_family: str = "DejaVuSans"
    color: str = "#000000"
    rotation: float = 0.0
    z_index: int = 0


@dataclasses.dataclass(frozen=True)
class HistoryEntry:
    snapshot: ImageBuffer
    label: str = ""


@dataclasses.dataclass
class DecodedImage:
    """A decoded image buffer ready for display."""
    buffer: memoryview
    width: int
    height: int
    bytes_per_line: int
    format: object  # QImage.Format or a mode string

    def __sizeof__(self) -> int:
        return self.buffer.nbytes
