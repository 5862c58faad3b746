"""Command line front-end: applies a chain of edits to one image file."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from snapedit.config import config
from snapedit.engine import EditSession, TransformEngine
from snapedit.errors import CodecError, InvalidParameter, TransformError
from snapedit.io.imagefile import copy_path_for, load_image, path_for_format, save_image
from snapedit.logging_setup import setup_logging
from snapedit.models import (
    ConvertRequest,
    CropRequest,
    ImageFormat,
    ResizeRequest,
    RGBColor,
    RotateRequest,
    SetBackgroundRequest,
)

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_MISSING_INPUT = 1
EXIT_EDIT_FAILED = 2


def _parse_ints(text: str, separator: str, count: int) -> Tuple[int, ...]:
    parts = text.lower().replace(" ", "").split(separator)
    if len(parts) != count:
        raise argparse.ArgumentTypeError(f"expected {count} values separated by '{separator}', got {text!r}")
    try:
        return tuple(int(p) for p in parts)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected integers, got {text!r}") from None


def _parse_crop(text: str) -> Tuple[int, ...]:
    return _parse_ints(text, ",", 4)


def _parse_size(text: str) -> Tuple[int, ...]:
    return _parse_ints(text, "x", 2)


def _parse_format(text: str) -> ImageFormat:
    try:
        return ImageFormat.parse(text)
    except InvalidParameter as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _parse_color(text: str) -> RGBColor:
    try:
        return RGBColor.from_hex(text)
    except InvalidParameter as e:
        raise argparse.ArgumentTypeError(str(e)) from None


class _AppendOperation(argparse.Action):
    """Collects edit options into `namespace.ops` in command-line order."""

    def __call__(self, parser, namespace, values, option_string=None):
        ops = list(getattr(namespace, "ops", None) or [])
        ops.append((self.dest, values))
        namespace.ops = ops


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snapedit",
        description="snapedit - apply resize/crop/rotate/background/convert edits to an image",
    )
    parser.add_argument("input", help="Image file to edit")
    parser.add_argument("--crop", action=_AppendOperation, type=_parse_crop, metavar="X,Y,W,H",
                        help="Crop to a rectangle (clamped to the image)")
    parser.add_argument("--resize", action=_AppendOperation, type=_parse_size, metavar="WxH",
                        help="Resize to fit inside WxH (see --stretch)")
    parser.add_argument("--stretch", action="store_true",
                        help="Make --resize produce exactly WxH instead of keeping the aspect ratio")
    parser.add_argument("--rotate", action=_AppendOperation, choices=["cw", "ccw"],
                        help="Rotate 90 degrees clockwise or counter-clockwise")
    parser.add_argument("--background", action=_AppendOperation, nargs="?", const=None, type=_parse_color,
                        metavar="#RRGGBB", help="Fill transparent pixels with a colour")
    parser.add_argument("--convert", action=_AppendOperation, type=_parse_format, metavar="FORMAT",
                        help="Convert to PNG, JPEG, GIF, BMP, WEBP, TIFF, ICO or AVIF")
    parser.add_argument("--quality", type=int, default=None, help="Quality (1-100) for JPEG/WEBP/AVIF conversion")
    parser.add_argument("-o", "--output", default=None, help="Output path (default: a -copy file next to the input)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.set_defaults(ops=[])
    return parser


def build_requests(args: argparse.Namespace) -> List:
    requests = []
    for name, value in args.ops:
        if name == "crop":
            requests.append(CropRequest(*value))
        elif name == "resize":
            requests.append(ResizeRequest(value[0], value[1], keep_aspect=not args.stretch))
        elif name == "rotate":
            requests.append(RotateRequest(clockwise=value == "cw"))
        elif name == "background":
            color = value or RGBColor.from_hex(config.get("background", "color", fallback="#FFFFFF"))
            requests.append(SetBackgroundRequest.from_color(color))
        elif name == "convert":
            requests.append(ConvertRequest(value, args.quality))
    return requests


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)

    input_path = Path(args.input)
    try:
        image = load_image(input_path)
    except FileNotFoundError as e:
        log.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_MISSING_INPUT
    except CodecError as e:
        log.error(f"Could not read {input_path}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_EDIT_FAILED

    requests = build_requests(args)
    with TransformEngine() as engine:
        session = EditSession(engine)
        session.open(image)
        for request in requests:
            outcome = session.apply(request)
            if not outcome.ok:
                print(f"Error: {request.label} failed: {outcome.error}", file=sys.stderr)
                return EXIT_EDIT_FAILED
            print(f"{request.label}: {outcome.image.describe()}")
        result = session.current()

    if args.output:
        output = Path(args.output)
    else:
        output = copy_path_for(path_for_format(input_path, result.format))
    try:
        save_image(result, output)
    except (OSError, TransformError) as e:
        log.error(f"Failed to save {output}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_EDIT_FAILED
    print(f"Saved {output}")
    return EXIT_OK


def cli():
    """CLI entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
