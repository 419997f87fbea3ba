"""
Raster I/O: decode inputs into RGBA pixel buffers, encode results as PNG
"""

from __future__ import annotations

import base64
import binascii
import io
import re
from pathlib import Path
from typing import Final, Union

import numpy as np
from numpy.typing import NDArray
from PIL import Image, UnidentifiedImageError

from .errors import InvalidInputError, UnsupportedFormatError

# Constants
MAX_IMAGE_SIZE: Final[tuple[int, int]] = (16384, 16384)

# Backdrop presets offered by the CV photo formatter
BACKDROP_PRESETS: Final[dict[str, tuple[int, int, int]]] = {
    "blue": (0x1E, 0x40, 0xAF),
    "red": (0xDC, 0x26, 0x26),
    "white": (0xFF, 0xFF, 0xFF),
    "gray": (0x6B, 0x72, 0x80),
}

_DATA_URL_RE = re.compile(r"^data:([\w/+.-]*)(;[\w=-]+)*;base64,(.+)$", re.DOTALL)
_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

ImageSource = Union[str, Path, bytes, bytearray, Image.Image, NDArray[np.uint8]]


def validate_pixel_buffer(buf: NDArray) -> None:
    """
    Validate an RGBA pixel buffer

    Raises:
        InvalidInputError: If the buffer is not a non-empty (h, w, 4) uint8 array
    """
    if not isinstance(buf, np.ndarray):
        raise InvalidInputError(f"Expected numpy array, got {type(buf).__name__}")

    if buf.ndim != 3 or buf.shape[2] != 4:
        raise InvalidInputError(f"Expected (height, width, 4) buffer, got {buf.shape}")

    if buf.dtype != np.uint8:
        raise InvalidInputError(f"Expected uint8 buffer, got {buf.dtype}")

    h, w = buf.shape[:2]
    if h < 1 or w < 1:
        raise InvalidInputError(f"Image has zero dimension: {w}x{h}")

    if w > MAX_IMAGE_SIZE[0] or h > MAX_IMAGE_SIZE[1]:
        raise InvalidInputError(f"Image too large: {w}x{h}")


def to_pixel_buffer(array: NDArray) -> NDArray[np.uint8]:
    """
    Copy an (h, w, 3) or (h, w, 4) uint8 array into an owned RGBA buffer

    RGB input gets an opaque alpha channel.
    """
    if not isinstance(array, np.ndarray):
        raise InvalidInputError(f"Expected numpy array, got {type(array).__name__}")

    if array.ndim != 3 or array.shape[2] not in (3, 4):
        raise InvalidInputError(
            f"Expected (height, width, 3|4) array, got {array.shape}"
        )

    if array.dtype != np.uint8:
        raise InvalidInputError(f"Expected uint8 array, got {array.dtype}")

    h, w = array.shape[:2]
    buf = np.empty((h, w, 4), dtype=np.uint8)
    buf[..., :3] = array[..., :3]
    buf[..., 3] = array[..., 3] if array.shape[2] == 4 else 255

    validate_pixel_buffer(buf)
    return buf


def _decode_data_url(url: str) -> bytes:
    match = _DATA_URL_RE.match(url.strip())
    if not match:
        raise UnsupportedFormatError("Invalid data URL format")

    try:
        return base64.b64decode(match.group(3), validate=True)
    except (binascii.Error, ValueError) as e:
        raise UnsupportedFormatError(f"Invalid base64 payload: {e}") from e


def _image_to_buffer(img: Image.Image) -> NDArray[np.uint8]:
    return to_pixel_buffer(np.array(img.convert("RGBA"), dtype=np.uint8))


def load_image(source: ImageSource) -> NDArray[np.uint8]:
    """
    Decode an image source into an RGBA pixel buffer

    Args:
        source: File path, encoded bytes, data URL, PIL image or numpy array

    Returns:
        Owned (h, w, 4) uint8 buffer

    Raises:
        FileNotFoundError: If a path does not exist
        UnsupportedFormatError: If the data cannot be decoded
        InvalidInputError: If the decoded image is empty or too large
    """
    if isinstance(source, np.ndarray):
        return to_pixel_buffer(source)

    if isinstance(source, Image.Image):
        return _image_to_buffer(source)

    if isinstance(source, str) and source.startswith("data:"):
        source = _decode_data_url(source)

    if isinstance(source, (bytes, bytearray)):
        stream = io.BytesIO(source)
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Input image not found: {path}")
        stream = path

    try:
        with Image.open(stream) as img:
            img.load()
            return _image_to_buffer(img)
    except UnidentifiedImageError as e:
        raise UnsupportedFormatError(f"Cannot identify image format: {e}") from e
    except (OSError, Image.DecompressionBombError) as e:
        raise UnsupportedFormatError(f"Error reading image: {e}") from e


def encode_png(buf: NDArray[np.uint8]) -> bytes:
    """Encode a pixel buffer as PNG (RGB when fully opaque, RGBA otherwise)"""
    validate_pixel_buffer(buf)

    if np.all(buf[..., 3] == 255):
        img = Image.fromarray(np.ascontiguousarray(buf[..., :3]), "RGB")
    else:
        img = Image.fromarray(np.ascontiguousarray(buf), "RGBA")

    out = io.BytesIO()
    img.save(out, "PNG", optimize=True)
    return out.getvalue()


def to_data_url(buf: NDArray[np.uint8]) -> str:
    """Encode a pixel buffer as a PNG data URL"""
    return "data:image/png;base64," + base64.b64encode(encode_png(buf)).decode("ascii")


def parse_color(value: Union[str, tuple, list]) -> tuple[int, int, int]:
    """
    Parse a backdrop color

    Accepts an (r, g, b) sequence, "#rrggbb" / "#rgb" hex, or a preset name
    (blue, red, white, gray).

    Raises:
        InvalidInputError: If the value is not a valid color
    """
    if isinstance(value, str):
        name = value.strip().lower()
        if name in BACKDROP_PRESETS:
            return BACKDROP_PRESETS[name]

        match = _HEX_RE.match(name)
        if not match:
            raise InvalidInputError(f"Invalid color: {value!r}")

        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))

    try:
        r, g, b = (int(c) for c in value)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Invalid color: {value!r}") from e

    if not all(0 <= c <= 255 for c in (r, g, b)):
        raise InvalidInputError(f"Color channel out of range: {value!r}")

    return (r, g, b)


def color_name(color: tuple[int, int, int]) -> str:
    """Preset name for a color, or its lowercase hex code without '#'"""
    for name, preset in BACKDROP_PRESETS.items():
        if tuple(color) == preset:
            return name
    return "{:02x}{:02x}{:02x}".format(*color)


def upscale_if_small(
    buf: NDArray[np.uint8], min_side: int = 400, target_side: int = 800
) -> NDArray[np.uint8]:
    """
    Upscale low-resolution images before processing

    Only images with a side below min_side are touched; those already
    reaching target_side on either side are returned as-is.
    """
    h, w = buf.shape[:2]
    if w >= min_side and h >= min_side:
        return buf
    if w >= target_side or h >= target_side:
        return buf

    scale = max(target_side / w, target_side / h)
    size = (int(round(w * scale)), int(round(h * scale)))

    img = Image.fromarray(np.ascontiguousarray(buf), "RGBA")
    return np.array(img.resize(size, Image.Resampling.LANCZOS), dtype=np.uint8)


def round_half_up(values: NDArray) -> NDArray:
    """Round to nearest integer with .5 going up (not banker's rounding)"""
    return np.floor(values + 0.5)
