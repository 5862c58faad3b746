"""Reads and writes image files; the transform core never touches the filesystem."""

import logging
import os
import re
from pathlib import Path
from typing import Optional, Union

from snapedit.imaging.codec import decode
from snapedit.models import SUPPORTED_EXTENSIONS, ImageBuffer, ImageFormat

log = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


def is_supported_image(path: PathLike) -> bool:
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def load_image(path: PathLike) -> ImageBuffer:
    """Reads and decodes a file. Missing files raise FileNotFoundError."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"No such image file: {path}")
    data = path.read_bytes()
    image = decode(data, path=str(path))
    log.info(f"Loaded {path.name}: {image.describe()}")
    return image


def save_image(image: ImageBuffer, path: PathLike) -> Path:
    """Writes the encoded bytes atomically (temp file, then replace)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(f".{path.name}.tmp")
    try:
        temp_path.write_bytes(image.data)
        temp_path.replace(path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise
    log.info(f"Saved {image.describe()} to {path}")
    return path


def copy_path_for(original_path: PathLike, suffix: Optional[str] = None) -> Path:
    """
    Picks a free sibling path with naming pattern:
    filename-copy.png, filename-copy2.png, etc.
    """
    original_path = Path(original_path)
    suffix = suffix if suffix is not None else original_path.suffix
    # Strip an existing -copy / -copy2 so copies of copies don't pile up suffixes
    base_stem = re.sub(r"-copy(\d+)?$", "", original_path.stem)

    copy_path = original_path.parent / f"{base_stem}-copy{suffix}"
    i = 2
    while copy_path.exists():
        copy_path = original_path.parent / f"{base_stem}-copy{i}{suffix}"
        i += 1
    return copy_path


def path_for_format(path: PathLike, fmt: ImageFormat) -> Path:
    """Swaps the suffix when the image was converted to another format."""
    path = Path(path)
    if ImageFormat.from_extension(path.suffix) is fmt:
        return path
    return path.with_suffix(fmt.extension)


def save_as_copy(image: ImageBuffer, original_path: PathLike) -> Path:
    target = copy_path_for(path_for_format(original_path, image.format))
    return save_image(image, target)
