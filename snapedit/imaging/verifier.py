"""Snapshot-and-compare guard that proves a transform left its input untouched."""

import dataclasses
import hashlib
import logging
from typing import Callable, Optional

from snapedit.errors import ImmutabilityViolation
from snapedit.models import ImageBuffer

log = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class BufferSnapshot:
    """Value-equality fingerprint of an ImageBuffer."""
    width: int
    height: int
    format: object
    has_alpha: bool
    path: Optional[str]
    data_length: int
    data_digest: str

    @classmethod
    def of(cls, image: ImageBuffer) -> "BufferSnapshot":
        data = bytes(image.data)
        return cls(
            width=image.width,
            height=image.height,
            format=image.format,
            has_alpha=image.has_alpha,
            path=image.path,
            data_length=len(data),
            data_digest=hashlib.sha256(data).hexdigest(),
        )

    def diff(self, other: "BufferSnapshot") -> str:
        changed = [
            f"{field.name}: {getattr(self, field.name)!r} -> {getattr(other, field.name)!r}"
            for field in dataclasses.fields(self)
            if getattr(self, field.name) != getattr(other, field.name)
        ]
        return "; ".join(changed)


def snapshot(image: ImageBuffer) -> BufferSnapshot:
    return BufferSnapshot.of(image)


def run_verified(operation: str, func: Callable[..., ImageBuffer], image: ImageBuffer, *args, **kwargs) -> ImageBuffer:
    """Runs `func(image, *args, **kwargs)` and checks `image` afterwards.

    The comparison also runs when `func` raises, so a failing transform that
    corrupted its input is still reported. A violation is logged as critical and
    raised as ImmutabilityViolation; it always wins over the transform's own error.
    """
    before = snapshot(image)
    result = None
    try:
        result = func(image, *args, **kwargs)
    finally:
        after = snapshot(image)
        details = before.diff(after)
        if not details and result is not None and result is image:
            details = "returned its input instead of a new buffer"
        if details:
            log.critical(f"Immutability violation in {operation}: {details}")
            raise ImmutabilityViolation(operation, details)
    return result
