"""Image decoding and raster encoding."""

from __future__ import annotations

import io
from pathlib import Path

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from dice_mosaic.errors import DecodeError

ImageSource = str | Path | bytes | Image.Image


def decode_image(source: ImageSource) -> np.ndarray:
    """Decode *source* into an (H, W, 4) uint8 RGBA array.

    Accepts a file path, raw encoded bytes, or an already-open PIL image.
    EXIF orientation is applied so the pixels match what a viewer shows.

    Raises:
        DecodeError: the data is not a readable image, or has no pixels.
    """
    try:
        if isinstance(source, Image.Image):
            img = source
        elif isinstance(source, bytes):
            img = Image.open(io.BytesIO(source))
        else:
            img = Image.open(source)
        img.load()
        img = ImageOps.exif_transpose(img)
        rgba = img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as exc:
        msg = f"Could not decode image: {exc}"
        raise DecodeError(msg) from exc

    if rgba.width == 0 or rgba.height == 0:
        msg = "Decoded image has no pixels"
        raise DecodeError(msg)
    return np.array(rgba, dtype=np.uint8)


def encode_png(array: np.ndarray) -> bytes:
    """Losslessly encode an (H, W, 3|4) uint8 array as PNG bytes."""
    buf = io.BytesIO()
    Image.fromarray(array.astype(np.uint8)).save(buf, format="PNG")
    return buf.getvalue()


def save_image(array: np.ndarray, path: str | Path) -> None:
    """Save *array* at full quality; the format follows the file suffix."""
    Image.fromarray(array.astype(np.uint8)).save(path)
