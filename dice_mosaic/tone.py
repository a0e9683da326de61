"""Tone mapping and six-bucket quantisation of luminance."""

from __future__ import annotations

import numpy as np

MIDPOINT = 128.0
NUM_FACES = 6
BUCKET_WIDTH = 255.0 / NUM_FACES


def contrast_factor(contrast: float) -> float:
    """Slope applied around mid-gray for a 0-100 contrast setting.

    Uses the classic ``259 (C + 255) / (255 (259 - C))`` curve with the
    setting mapped onto C in [-255, 255]: 1.0 at 50, flat (0.0) at 0 and
    rising steeply towards 100.
    """
    c = (contrast - 50.0) / 50.0 * 255.0
    return 259.0 * (c + 255.0) / (255.0 * (259.0 - c))


def brightness_offset(brightness: float) -> float:
    """Additive offset for a 0-100 brightness setting (0 at 50, +-127.5 at the ends)."""
    return (brightness - 50.0) * 2.55


def adjust_tone(
    lum: np.ndarray,
    contrast: float = 50,
    brightness: float = 50,
) -> np.ndarray:
    """Contrast about mid-gray, then brightness offset, then clamp to [0, 255]."""
    out = (np.asarray(lum, dtype=np.float64) - MIDPOINT) * contrast_factor(contrast) + MIDPOINT
    out = out + brightness_offset(brightness)
    return np.clip(out, 0.0, 255.0)


def quantize(lum: np.ndarray, invert: bool = False) -> np.ndarray:
    """Map luminance in [0, 255] to face values 1 (darkest) .. 6 (brightest).

    Buckets are half-open ``[k*255/6, (k+1)*255/6)``; 255 itself lands in
    the top bucket.  With *invert* the mapping runs 6 .. 1 instead.

    Returns:
        uint8 array of the same shape, every value in [1, 6].
    """
    lum = np.clip(np.asarray(lum, dtype=np.float64), 0.0, 255.0)
    bucket = np.minimum(np.floor(lum * NUM_FACES / 255.0), NUM_FACES - 1)
    faces = NUM_FACES - bucket if invert else bucket + 1
    return faces.astype(np.uint8)
