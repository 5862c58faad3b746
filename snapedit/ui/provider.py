"""Turns ImageBuffers into display-ready pixel buffers for a Qt host."""

import logging

import numpy as np

from snapedit.imaging.codec import decode_raster
from snapedit.models import DecodedImage, ImageBuffer

try:
    from PySide6.QtGui import QImage
except ImportError:
    QImage = None

log = logging.getLogger(__name__)


def to_decoded_image(image: ImageBuffer) -> DecodedImage:
    """Decodes to a tightly packed RGBA8888 buffer."""
    raster = decode_raster(image).convert("RGBA")
    arr = np.ascontiguousarray(np.asarray(raster, dtype=np.uint8))
    height, width = arr.shape[:2]
    return DecodedImage(
        buffer=memoryview(arr).cast("B"),
        width=width,
        height=height,
        bytes_per_line=width * 4,
        format="RGBA",
    )


def to_qimage(image: ImageBuffer):
    if QImage is None:
        raise ImportError("PySide6.QtGui.QImage is required for to_qimage")

    decoded = to_decoded_image(image)
    qimg = QImage(
        decoded.buffer,
        decoded.width,
        decoded.height,
        decoded.bytes_per_line,
        QImage.Format.Format_RGBA8888,
    )
    # QImage does not own the numpy memory; copy so the result outlives it
    return qimg.copy()
