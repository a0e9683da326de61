"""
Dice Mosaic Generator
=====================

Convert any image into a grid of six-sided dice whose faces approximate the
image's local brightness, then preview or export the result:

- **Pipeline** - sample, tone-map and quantise an image into faces 1-6
- **Overrides** - copy-on-write per-tile edits of face and colours
- **Rendering** - resolution-independent die faces with pips
- **Export** - CSV bill of dice and supersampled PNG
"""

__version__ = "1.0.0"

from dice_mosaic.config import ExportConfig, MosaicSettings, clamp_settings
from dice_mosaic.errors import (
    DecodeError,
    DegenerateRegionWarning,
    InputError,
    MosaicError,
)
from dice_mosaic.export import export_png, parse_csv, render_export, to_csv
from dice_mosaic.image_io import decode_image
from dice_mosaic.overrides import (
    OverrideCell,
    OverrideGrid,
    ResolvedCell,
    apply,
    initialize,
    resolve_cell,
    resolve_grid,
)
from dice_mosaic.pipeline import MosaicResult, MosaicStats, compute_stats, generate
from dice_mosaic.render import draw_tile, render_mosaic, render_preview
from dice_mosaic.session import MosaicSession
from dice_mosaic.themes import resolve_color_table

__all__ = [
    "DecodeError",
    "DegenerateRegionWarning",
    "ExportConfig",
    "InputError",
    "MosaicError",
    "MosaicResult",
    "MosaicSession",
    "MosaicSettings",
    "MosaicStats",
    "OverrideCell",
    "OverrideGrid",
    "ResolvedCell",
    "apply",
    "clamp_settings",
    "compute_stats",
    "decode_image",
    "draw_tile",
    "export_png",
    "generate",
    "initialize",
    "parse_csv",
    "render_export",
    "render_mosaic",
    "render_preview",
    "resolve_cell",
    "resolve_color_table",
    "resolve_grid",
    "to_csv",
]
