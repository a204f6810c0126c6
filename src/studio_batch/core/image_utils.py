"""Image processing utilities for the studio batch pipeline."""

import io
import mimetypes
from typing import Optional, Tuple

from PIL import Image, ImageOps

from .error_handling import with_error_handling


def guess_mime_type(name: str) -> str:
    """
    Guess a content type from a filename, the way a browser fills ``File.type``.

    Returns an empty string when the extension is unknown.
    """
    mime_type, _ = mimetypes.guess_type(name)
    return mime_type or ""


def is_image_mime(mime_type: Optional[str]) -> bool:
    return bool(mime_type and mime_type.startswith("image/"))


def scaled_size(size: Tuple[int, int], target_width: int) -> Tuple[int, int]:
    """
    Compute the output size for a resize that keeps the aspect ratio.

    Args:
        size: Source (width, height)
        target_width: Requested output width

    Returns:
        (target_width, height) with height rounded and never below 1
    """
    width, height = size
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid source size: {width}x{height}")
    target_height = max(1, round(target_width * height / width))
    return target_width, target_height


@with_error_handling
def decode_image(image_bytes: bytes) -> "Image.Image":
    """Decode bytes into a fully loaded Pillow image with EXIF orientation applied."""
    image = Image.open(io.BytesIO(image_bytes))
    image.load()
    return ImageOps.exif_transpose(image)


def _png_mode(image: "Image.Image") -> str:
    if image.mode in ("RGBA", "LA"):
        return "RGBA"
    if image.mode == "P" and "transparency" in image.info:
        return "RGBA"
    return "RGB"


@with_error_handling
def resize_to_width(image_bytes: bytes, target_width: int) -> bytes:
    """
    Resize an image to ``target_width`` keeping its aspect ratio and encode it as PNG.

    Args:
        image_bytes: Encoded source image
        target_width: Output width in pixels

    Returns:
        PNG bytes of the resized image

    Raises:
        DecodeError: If the source cannot be decoded
    """
    image = decode_image(image_bytes)
    mode = _png_mode(image)
    if image.mode != mode:
        image = image.convert(mode)

    resized = image.resize(
        scaled_size(image.size, target_width), resample=Image.Resampling.LANCZOS
    )

    output_buffer = io.BytesIO()
    resized.save(output_buffer, format="PNG", optimize=True)
    return output_buffer.getvalue()


def image_size(image_bytes: bytes) -> Tuple[int, int]:
    """Return (width, height) of encoded image bytes."""
    with Image.open(io.BytesIO(image_bytes)) as image:
        return image.size
