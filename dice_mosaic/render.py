"""Die-face rendering onto an RGB pixel buffer.

All geometry is expressed in logical units (fractions of the cell size) and
multiplied by the resolution factor only when converted to pixels, so a
supersampled export is the on-screen preview scaled up.
"""

from __future__ import annotations

import logging

import numpy as np
from PIL import Image
from skimage.draw import disk

from dice_mosaic.color_utils import WHITE, hex_to_rgb
from dice_mosaic.errors import InputError
from dice_mosaic.overrides import OverrideGrid, ResolvedCell, resolve_grid
from dice_mosaic.themes import ColorTable

logger = logging.getLogger(__name__)

PADDING_FRACTION = 0.01  # gap on each side, forms the grid lines
PIP_RADIUS_FRACTION = 0.1
PIP_MIN_CELL = 3.0  # logical px; at or below this only a centre dot is drawn
DOT_RADIUS_FRACTION = 0.15
DOT_MIN_RADIUS = 0.3

# Pip centres as (x, y) fractions of the cell.
_TL, _TR = (0.25, 0.25), (0.75, 0.25)
_ML, _C, _MR = (0.25, 0.5), (0.5, 0.5), (0.75, 0.5)
_BL, _BR = (0.25, 0.75), (0.75, 0.75)

PIP_LAYOUTS: dict[int, tuple[tuple[float, float], ...]] = {
    1: (_C,),
    2: (_TL, _BR),
    3: (_TL, _C, _BR),
    4: (_TL, _TR, _BL, _BR),
    5: (_TL, _TR, _C, _BL, _BR),
    6: (_TL, _ML, _BL, _TR, _MR, _BR),
}


def new_surface(width: int, height: int, background: str = WHITE) -> np.ndarray:
    """Blank (height, width, 3) uint8 surface filled with *background*."""
    surface = np.empty((height, width, 3), dtype=np.uint8)
    surface[:] = hex_to_rgb(background)
    return surface


def _fill_disk(
    surface: np.ndarray, cx: float, cy: float, radius: float, rgb: tuple[int, int, int],
) -> None:
    # Pixel (i, j) covers [i, i + 1); its centre is at i + 0.5.
    rr, cc = disk((cy - 0.5, cx - 0.5), radius, shape=surface.shape[:2])
    surface[rr, cc] = rgb


def _cell_span(start: float, size: float, resolution: float) -> tuple[int, int]:
    """Pixel range of the filled part of a cell along one axis.

    The padding never rounds away: it is at least one device pixel on each
    side unless the cell is too narrow to keep any fill.
    """
    lo = int(round(start * resolution))
    hi = int(round((start + size) * resolution))
    pad = size * PADDING_FRACTION * resolution
    inset = max(1, int(round(pad))) if pad > 0 else 0
    if hi - lo <= 2 * inset:
        return lo, hi
    return lo + inset, hi - inset


def draw_tile(
    surface: np.ndarray,
    x: float,
    y: float,
    size: float,
    cell: ResolvedCell,
    use_shading: bool = True,
    resolution: float = 1,
) -> None:
    """Draw one die into *surface* in place.

    Args:
        surface:    (H, W, 3) uint8 buffer.
        x, y:       Top-left corner of the cell in logical units.
        size:       Logical edge length of the cell.
        cell:       Resolved face and colours.
        use_shading: Draw the pip layout (or centre dot for tiny cells).
        resolution: Pixels per logical unit.
    """
    if resolution < 1:
        msg = f"Resolution multiplier must be >= 1, got {resolution}"
        raise InputError(msg)

    x0, x1 = _cell_span(x, size, resolution)
    y0, y1 = _cell_span(y, size, resolution)
    surface[y0:y1, x0:x1] = hex_to_rgb(cell.fill_color)

    if not use_shading:
        return

    pip_rgb = hex_to_rgb(cell.pip_color)
    if size > PIP_MIN_CELL:
        radius = size * PIP_RADIUS_FRACTION * resolution
        for fx, fy in PIP_LAYOUTS[cell.face]:
            _fill_disk(
                surface,
                (x + fx * size) * resolution,
                (y + fy * size) * resolution,
                radius,
                pip_rgb,
            )
    else:
        radius = max(DOT_MIN_RADIUS, size * DOT_RADIUS_FRACTION) * resolution
        _fill_disk(
            surface,
            (x + size / 2) * resolution,
            (y + size / 2) * resolution,
            radius,
            pip_rgb,
        )


def render_mosaic(
    grid: np.ndarray,
    color_table: ColorTable,
    overrides: OverrideGrid | None = None,
    cell_size: float = 20,
    resolution: float = 1,
    use_shading: bool = True,
    background: str = WHITE,
    default_pip: str | None = None,
) -> np.ndarray:
    """Render every tile of the merged grid.

    Returns:
        (round(rows*cell_size*resolution), round(cols*cell_size*resolution), 3)
        uint8 array.
    """
    rows, cols = grid.shape
    width = int(round(cols * cell_size * resolution))
    height = int(round(rows * cell_size * resolution))
    surface = new_surface(width, height, background)

    resolved = resolve_grid(grid, color_table, overrides, default_pip)
    for r, row in enumerate(resolved):
        for c, cell in enumerate(row):
            draw_tile(
                surface, c * cell_size, r * cell_size, cell_size,
                cell, use_shading, resolution,
            )

    logger.debug(
        "Rendered %dx%d tiles at %.1f px/cell x%s -> %dx%d",
        cols, rows, cell_size, resolution, width, height,
    )
    return surface


def render_preview(
    grid: np.ndarray,
    color_table: ColorTable,
    overrides: OverrideGrid | None = None,
    cell_size: float = 12,
    resolution: int = 4,
    use_shading: bool = True,
    background: str = WHITE,
    default_pip: str | None = None,
) -> Image.Image:
    """Render at *resolution* and downsample with Lanczos for smooth edges."""
    rows, cols = grid.shape
    hi = render_mosaic(
        grid, color_table, overrides, cell_size, resolution,
        use_shading, background, default_pip,
    )
    size = (max(1, int(round(cols * cell_size))), max(1, int(round(rows * cell_size))))
    return Image.fromarray(hi).resize(size, Image.LANCZOS)


def fit_cell_size(rows: int, cols: int, max_width: float, max_height: float) -> float:
    """Largest cell size at which the whole grid fits the given area."""
    return min(max_width / cols, max_height / rows)


def tile_at(
    x: float, y: float, rows: int, cols: int, cell_size: float,
) -> tuple[int, int] | None:
    """Map a logical surface coordinate to ``(row, col)``, or ``None``."""
    if cell_size <= 0 or x < 0 or y < 0:
        return None
    col = int(x // cell_size)
    row = int(y // cell_size)
    if row < rows and col < cols:
        return row, col
    return None
