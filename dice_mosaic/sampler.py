"""Downsample a decoded image into one luminance value per tile.

Each target cell averages the perceptual luminance of the source pixels in
its proportional region::

    cols [floor(c*W/C), floor((c+1)*W/C))  x  rows [floor(r*H/R), floor((r+1)*H/R))

Regions are summed in constant time from a summed-area table, so the cost is
one pass over the image regardless of grid size.  When the grid is finer than
the image a region can be empty; it then falls back to the nearest source
pixel.  A region whose pixels are all fully transparent is degenerate and
takes the previous valid cell (row-major) or mid-gray.
"""

from __future__ import annotations

import logging
import warnings

import numpy as np

from dice_mosaic.color_utils import luminance
from dice_mosaic.errors import DegenerateRegionWarning

logger = logging.getLogger(__name__)

MID_GRAY = 128.0


def region_bounds(n_cells: int, n_pixels: int) -> tuple[np.ndarray, np.ndarray]:
    """Start/stop pixel indices of each of *n_cells* along one axis.

    Empty spans (more cells than pixels) are widened to the single pixel
    nearest the cell centre.
    """
    idx = np.arange(n_cells)
    start = (idx * n_pixels) // n_cells
    stop = ((idx + 1) * n_pixels) // n_cells

    empty = stop <= start
    if empty.any():
        nearest = np.minimum(((2 * idx + 1) * n_pixels) // (2 * n_cells), n_pixels - 1)
        start = np.where(empty, nearest, start)
        stop = np.where(empty, nearest + 1, stop)
    return start, stop


def _summed_area(values: np.ndarray) -> np.ndarray:
    """Zero-padded 2-D prefix sums, shape (H+1, W+1)."""
    sat = np.zeros((values.shape[0] + 1, values.shape[1] + 1), dtype=np.float64)
    sat[1:, 1:] = values.cumsum(axis=0).cumsum(axis=1)
    return sat


def _box_sums(
    sat: np.ndarray,
    y0: np.ndarray, y1: np.ndarray,
    x0: np.ndarray, x1: np.ndarray,
) -> np.ndarray:
    ys0, ys1 = y0[:, None], y1[:, None]
    xs0, xs1 = x0[None, :], x1[None, :]
    return sat[ys1, xs1] - sat[ys0, xs1] - sat[ys1, xs0] + sat[ys0, xs0]


def sample_luminance(image: np.ndarray, rows: int, cols: int) -> np.ndarray:
    """Reduce *image* to a (rows, cols) float64 luminance grid.

    Args:
        image: (H, W, 3) or (H, W, 4) uint8 array.  With an alpha channel,
            fully transparent pixels are ignored.
        rows:  Number of grid rows.
        cols:  Number of grid columns.

    Returns:
        (rows, cols) float64 array in [0, 255].
    """
    h, w = image.shape[:2]
    lum = luminance(image)
    if image.shape[2] == 4:
        weight = (image[..., 3] > 0).astype(np.float64)
    else:
        weight = np.ones((h, w), dtype=np.float64)

    y0, y1 = region_bounds(rows, h)
    x0, x1 = region_bounds(cols, w)

    totals = _box_sums(_summed_area(lum * weight), y0, y1, x0, x1)
    counts = _box_sums(_summed_area(weight), y0, y1, x0, x1)

    valid = counts > 0
    result = np.full((rows, cols), MID_GRAY, dtype=np.float64)
    np.divide(totals, counts, out=result, where=valid)

    n_degenerate = int((~valid).sum())
    if n_degenerate:
        _fill_degenerate(result, valid)
        logger.debug("Recovered %d degenerate regions", n_degenerate)
        warnings.warn(
            f"{n_degenerate} sampling region(s) had no visible pixels; "
            "filled from neighbouring cells",
            DegenerateRegionWarning,
            stacklevel=2,
        )

    logger.debug("Sampled %dx%d image into %dx%d grid", w, h, cols, rows)
    return result


def _fill_degenerate(result: np.ndarray, valid: np.ndarray) -> None:
    """Carry the last valid value forward in row-major order, in place."""
    flat = result.reshape(-1)
    ok = valid.reshape(-1)
    previous = MID_GRAY
    for i in range(flat.size):
        if ok[i]:
            previous = flat[i]
        else:
            flat[i] = previous
