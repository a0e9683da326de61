"""CSV tables and supersampled raster exports of a (possibly edited) mosaic."""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path

import numpy as np

from dice_mosaic.color_utils import contrasting_pip_color, normalize_hex
from dice_mosaic.config import ExportConfig
from dice_mosaic.errors import InputError
from dice_mosaic.image_io import encode_png
from dice_mosaic.overrides import OverrideGrid, ResolvedCell, resolve_grid
from dice_mosaic.pipeline import MosaicResult
from dice_mosaic.render import render_mosaic
from dice_mosaic.themes import ColorTable, background_for

logger = logging.getLogger(__name__)

CSV_HEADER = ("Row", "Column", "Face", "Color")
CSV_HEADER_SIMPLE = ("Row", "Column", "Dice Value")


def to_csv(
    result: MosaicResult,
    overrides: OverrideGrid | None = None,
    simple: bool = False,
) -> str:
    """Serialise the merged grid, one line per tile in row-major order.

    Rows and columns are 1-based.  The full variant quotes the colour:
    ``3,7,5,"#FFCC00"``.
    """
    resolved = resolve_grid(result.grid, result.color_table, overrides)
    lines = [",".join(CSV_HEADER_SIMPLE if simple else CSV_HEADER)]
    for r, row in enumerate(resolved, 1):
        for c, cell in enumerate(row, 1):
            if simple:
                lines.append(f"{r},{c},{cell.face}")
            else:
                lines.append(f'{r},{c},{cell.face},"{cell.fill_color}"')
    return "\n".join(lines)


def write_csv(
    path: str | Path,
    result: MosaicResult,
    overrides: OverrideGrid | None = None,
    simple: bool = False,
) -> Path:
    path = Path(path)
    path.write_text(to_csv(result, overrides, simple), encoding="utf-8")
    logger.info("CSV written to %s", path)
    return path


def parse_csv(
    text: str,
    color_table: ColorTable | None = None,
    default_pip: str | None = None,
) -> list[list[ResolvedCell]]:
    """Read a CSV produced by :func:`to_csv` back into resolved cells.

    The simple variant carries no colour, so *color_table* is required for
    it.  Pip colours are not exported and are recomputed the way the
    renderer would.
    """
    reader = csv.reader(io.StringIO(text))
    header = tuple(next(reader, ()))
    if header not in (CSV_HEADER, CSV_HEADER_SIMPLE):
        msg = f"Unrecognised CSV header: {','.join(header)}"
        raise InputError(msg)
    simple = header == CSV_HEADER_SIMPLE
    if simple and color_table is None:
        msg = "A colour table is needed to read the simple CSV variant"
        raise InputError(msg)

    cells: dict[tuple[int, int], ResolvedCell] = {}
    for line_no, record in enumerate(reader, 2):
        if not record:
            continue
        try:
            r, c, face = int(record[0]), int(record[1]), int(record[2])
        except (IndexError, ValueError) as exc:
            msg = f"Malformed CSV line {line_no}: {record}"
            raise InputError(msg) from exc
        if not 1 <= face <= 6:
            msg = f"Face {face} out of range on CSV line {line_no}"
            raise InputError(msg)
        fill = color_table[face] if simple else normalize_hex(record[3])
        pip = default_pip or contrasting_pip_color(fill)
        cells[(r, c)] = ResolvedCell(face=face, fill_color=fill, pip_color=pip)

    if not cells:
        return []
    rows = max(r for r, _ in cells)
    cols = max(c for _, c in cells)
    if len(cells) != rows * cols:
        msg = f"CSV holds {len(cells)} tiles, expected {rows}x{cols}"
        raise InputError(msg)
    return [[cells[(r, c)] for c in range(1, cols + 1)] for r in range(1, rows + 1)]


def render_export(
    result: MosaicResult,
    overrides: OverrideGrid | None = None,
    config: ExportConfig | None = None,
) -> np.ndarray:
    """Full-quality supersampled render.

    Returns:
        (rows*cell_size*factor, cols*cell_size*factor, 3) uint8 array.
    """
    config = config or ExportConfig()
    if config.supersample < 2:
        msg = f"Export supersampling must be at least 2x, got {config.supersample}"
        raise InputError(msg)
    if config.cell_size < 1:
        msg = f"Cell size must be positive, got {config.cell_size}"
        raise InputError(msg)

    settings = result.settings
    return render_mosaic(
        result.grid,
        result.color_table,
        overrides,
        cell_size=config.cell_size,
        resolution=config.supersample,
        use_shading=settings.use_shading,
        background=background_for(settings.theme),
        default_pip=settings.pip_color,
    )


def export_png(
    result: MosaicResult,
    overrides: OverrideGrid | None = None,
    config: ExportConfig | None = None,
    path: str | Path | None = None,
) -> bytes:
    """Render and PNG-encode the mosaic; also write it to *path* if given."""
    array = render_export(result, overrides, config)
    data = encode_png(array)
    if path is not None:
        Path(path).write_bytes(data)
        logger.info("Raster written to %s (%dx%d)", path, array.shape[1], array.shape[0])
    return data
