"""Colour parsing, perceptual luminance and pip-colour selection."""

from __future__ import annotations

import numpy as np

from dice_mosaic.errors import InputError

# ITU-R BT.601 weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

BLACK = "#000000"
WHITE = "#FFFFFF"

# Midpoint between black (0) and white (255) luminance
PIP_THRESHOLD = 127.5


def hex_to_rgb(hex_str: str) -> tuple[int, int, int]:
    """Parse ``'#RRGGBB'`` (or ``'#RGB'``) into an RGB triple."""
    h = hex_str.strip().lstrip("#")
    if len(h) == 3:
        h = "".join(ch * 2 for ch in h)
    if len(h) != 6:
        msg = f"Invalid hex colour '{hex_str}'"
        raise InputError(msg)
    try:
        return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)
    except ValueError as exc:
        msg = f"Invalid hex colour '{hex_str}'"
        raise InputError(msg) from exc


def rgb_to_hex(rgb: tuple[int, int, int] | np.ndarray) -> str:
    r, g, b = (int(v) for v in rgb)
    return f"#{r:02X}{g:02X}{b:02X}"


def normalize_hex(hex_str: str) -> str:
    """Canonical upper-case ``#RRGGBB`` form."""
    return rgb_to_hex(hex_to_rgb(hex_str))


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Perceptual luminance of (..., 3) RGB values, in [0, 255]."""
    return rgb[..., :3].astype(np.float64) @ LUMA_WEIGHTS


def hex_luminance(hex_str: str) -> float:
    return float(luminance(np.array(hex_to_rgb(hex_str))))


def contrasting_pip_color(fill_color: str) -> str:
    """Whichever of black or white is further from the fill in luminance."""
    return BLACK if hex_luminance(fill_color) > PIP_THRESHOLD else WHITE
