"""Per-tile manual overrides layered on top of the generated grid.

The override grid is a persistent structure: an edit rebuilds only the
touched row and the outer tuple, every other row is shared with the previous
version.  Old versions therefore stay valid after an edit.

:func:`resolve_cell` is the one place where base grid, colour table and
overrides are merged.  Preview, raster export, CSV export and the statistics
all read through it.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, fields, replace

import numpy as np

from dice_mosaic.color_utils import contrasting_pip_color, normalize_hex
from dice_mosaic.errors import InputError
from dice_mosaic.themes import ColorTable


@dataclass(frozen=True)
class OverrideCell:
    """Manual edit for one tile; ``None`` fields fall through to the base."""

    face: int | None = None
    fill_color: str | None = None
    pip_color: str | None = None


@dataclass(frozen=True)
class ResolvedCell:
    """Effective face and colours of a tile at render time."""

    face: int
    fill_color: str
    pip_color: str


@dataclass(frozen=True)
class OverrideGrid:
    rows: tuple[tuple[OverrideCell | None, ...], ...]

    @property
    def shape(self) -> tuple[int, int]:
        return len(self.rows), len(self.rows[0]) if self.rows else 0

    def cell(self, r: int, c: int) -> OverrideCell | None:
        return self.rows[r][c]

    def __iter__(self) -> Iterator[tuple[OverrideCell | None, ...]]:
        return iter(self.rows)


_PATCH_FIELDS = frozenset(f.name for f in fields(OverrideCell))


def empty_overrides(rows: int, cols: int) -> OverrideGrid:
    row = (None,) * cols
    return OverrideGrid(tuple(row for _ in range(rows)))


def initialize(grid: np.ndarray, color_table: ColorTable) -> OverrideGrid:
    """One populated cell per tile: the generated face and its table colour."""
    return OverrideGrid(tuple(
        tuple(
            OverrideCell(face=int(v), fill_color=color_table[int(v)])
            for v in row
        )
        for row in grid
    ))


def _check_index(shape: tuple[int, int], r: int, c: int) -> None:
    rows, cols = shape
    if not (0 <= r < rows and 0 <= c < cols):
        msg = f"Tile ({r}, {c}) is outside the {rows}x{cols} grid"
        raise InputError(msg)


def _validate_patch(patch: Mapping[str, object]) -> dict[str, object]:
    unknown = set(patch) - _PATCH_FIELDS
    if unknown:
        msg = f"Unknown override field(s): {', '.join(sorted(unknown))}"
        raise InputError(msg)

    clean: dict[str, object] = {}
    for key, value in patch.items():
        if value is None:
            clean[key] = None
        elif key == "face":
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) \
                    or not 1 <= int(value) <= 6:
                msg = f"Face must be an integer 1-6, got {value!r}"
                raise InputError(msg)
            clean[key] = int(value)
        else:
            clean[key] = normalize_hex(str(value))
    return clean


def apply(
    overrides: OverrideGrid,
    r: int,
    c: int,
    patch: Mapping[str, object] | OverrideCell,
) -> OverrideGrid:
    """Return a new grid with cell (r, c) merged with *patch*.

    Only the fields present in *patch* change.  Out-of-range coordinates
    raise :class:`InputError`.
    """
    _check_index(overrides.shape, r, c)
    if isinstance(patch, OverrideCell):
        patch = {k: v for k, v in vars(patch).items() if v is not None}
    clean = _validate_patch(patch)

    current = overrides.rows[r][c] or OverrideCell()
    row = list(overrides.rows[r])
    row[c] = replace(current, **clean)

    rows = list(overrides.rows)
    rows[r] = tuple(row)
    return OverrideGrid(tuple(rows))


def resolve_cell(
    grid: np.ndarray,
    color_table: ColorTable,
    overrides: OverrideGrid | None,
    r: int,
    c: int,
    default_pip: str | None = None,
) -> ResolvedCell:
    """Merge base grid, colour table and override for one tile.

    Each override field wins on its own; missing fields fall back to the
    grid face, the table colour of the effective face, and finally the pip
    colour (*default_pip*, else black or white by contrast with the fill).
    """
    ov = overrides.cell(r, c) if overrides is not None else None
    face = int(grid[r, c])
    fill = pip = None
    if ov is not None:
        if ov.face is not None:
            face = ov.face
        fill = ov.fill_color
        pip = ov.pip_color
    if fill is None:
        fill = color_table[face]
    if pip is None:
        pip = default_pip or contrasting_pip_color(fill)
    return ResolvedCell(face=face, fill_color=fill, pip_color=pip)


def resolve_grid(
    grid: np.ndarray,
    color_table: ColorTable,
    overrides: OverrideGrid | None = None,
    default_pip: str | None = None,
) -> list[list[ResolvedCell]]:
    """Apply :func:`resolve_cell` to every tile, row-major."""
    if overrides is not None and overrides.shape != grid.shape:
        msg = f"Override grid {overrides.shape} does not match grid {grid.shape}"
        raise InputError(msg)
    rows, cols = grid.shape
    return [
        [resolve_cell(grid, color_table, overrides, r, c, default_pip) for c in range(cols)]
        for r in range(rows)
    ]
