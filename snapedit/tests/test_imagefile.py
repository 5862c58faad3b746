"""Tests for the file adapter."""

import pytest

from snapedit.imaging.transforms import convert
from snapedit.io.imagefile import (
    copy_path_for,
    is_supported_image,
    load_image,
    path_for_format,
    save_as_copy,
    save_image,
)
from snapedit.models import ImageFormat


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_image(tmp_path / "missing.png")


def test_save_and_load_round_trip(tmp_path, gradient_image):
    target = save_image(gradient_image, tmp_path / "sub" / "out.png")
    assert target.read_bytes() == gradient_image.data
    loaded = load_image(target)
    assert loaded.size == gradient_image.size
    assert loaded.path == str(target)
    assert not list((tmp_path / "sub").glob("*.tmp"))


def test_copy_path_for_skips_existing(tmp_path):
    original = tmp_path / "photo.png"
    original.write_bytes(b"x")
    first = copy_path_for(original)
    assert first.name == "photo-copy.png"
    first.write_bytes(b"x")
    assert copy_path_for(original).name == "photo-copy2.png"
    # copies of copies don't stack suffixes
    assert copy_path_for(first).name == "photo-copy2.png"


def test_path_for_format():
    assert path_for_format("a/b.jpeg", ImageFormat.JPEG).name == "b.jpeg"
    assert path_for_format("a/b.png", ImageFormat.WEBP).name == "b.webp"


def test_save_as_copy_uses_new_format_suffix(tmp_path, gradient_image):
    original = tmp_path / "pic.png"
    save_image(gradient_image, original)
    jpeg = convert(gradient_image, ImageFormat.JPEG, 90)
    saved = save_as_copy(jpeg, original)
    assert saved.name == "pic-copy.jpg"
    assert load_image(saved).format is ImageFormat.JPEG
    assert original.read_bytes() == gradient_image.data


def test_is_supported_image():
    assert is_supported_image("x.HEIC")
    assert is_supported_image("x.svg")
    assert not is_supported_image("notes.txt")
