"""Image + settings -> face grid + colour table, and derived statistics."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import numpy as np

from dice_mosaic.color_utils import normalize_hex
from dice_mosaic.config import (
    MAX_DICE,
    MAX_SIDE,
    MIN_SIDE,
    MIXED_MODES,
    THEMES,
    MosaicSettings,
)
from dice_mosaic.errors import InputError
from dice_mosaic.overrides import OverrideGrid, resolve_grid
from dice_mosaic.sampler import sample_luminance
from dice_mosaic.themes import ColorTable, FACES, table_for_settings
from dice_mosaic.tone import adjust_tone, quantize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MosaicResult:
    """One regeneration: read-only face grid plus the colour table it uses."""

    grid: np.ndarray
    color_table: ColorTable
    settings: MosaicSettings

    @property
    def shape(self) -> tuple[int, int]:
        return self.grid.shape  # type: ignore[return-value]


@dataclass(frozen=True)
class MosaicStats:
    """Counts and estimates shown alongside a mosaic.

    ``face_one_count`` and ``face_six_count`` are the two tonal extremes.
    """

    face_counts: dict[int, int]
    face_one_count: int
    face_six_count: int
    total: int
    total_cost: float
    width_mm: float
    height_mm: float


def validate_settings(settings: MosaicSettings) -> None:
    """Reject settings the pipeline cannot honour; nothing is clamped here."""
    w, h = settings.grid_width, settings.grid_height
    if w * h > MAX_DICE:
        msg = f"Requested {w}x{h} = {w * h} dice exceeds the maximum of {MAX_DICE}"
        raise InputError(msg)
    for name, side in (("width", w), ("height", h)):
        if not MIN_SIDE <= side <= MAX_SIDE:
            msg = f"Grid {name} {side} outside [{MIN_SIDE}, {MAX_SIDE}]"
            raise InputError(msg)
    for name in ("contrast", "brightness"):
        value = getattr(settings, name)
        if not 0 <= value <= 100:
            msg = f"{name.capitalize()} {value} outside [0, 100]"
            raise InputError(msg)
    if settings.theme not in THEMES:
        msg = f"Unknown theme '{settings.theme}'. Available: {', '.join(THEMES)}"
        raise InputError(msg)
    if settings.mixed_mode not in MIXED_MODES:
        msg = f"Unknown mixed mode '{settings.mixed_mode}'"
        raise InputError(msg)
    if settings.force_face is not None and settings.force_face not in FACES:
        msg = f"Forced face must be 1-6, got {settings.force_face}"
        raise InputError(msg)
    if settings.price_per_die < 0:
        msg = f"Price per die must be non-negative, got {settings.price_per_die}"
        raise InputError(msg)
    for name in ("mixed_color_a", "mixed_color_b", "face_color", "pip_color"):
        value = getattr(settings, name)
        if value:
            normalize_hex(value)


def generate(image: np.ndarray | None, settings: MosaicSettings) -> MosaicResult:
    """Turn a decoded image into a dice grid.

    Deterministic: the same pixels and settings always give the same result.

    Args:
        image:    (H, W, 3|4) uint8 array from :func:`~dice_mosaic.image_io.decode_image`.
        settings: Validated (not clamped) settings.

    Raises:
        InputError: no image, or settings outside their bounds.
    """
    if image is None:
        msg = "No image supplied"
        raise InputError(msg)
    if image.ndim != 3 or image.shape[2] not in (3, 4) or image.size == 0:
        msg = f"Expected an (H, W, 3|4) image array, got shape {image.shape}"
        raise InputError(msg)
    validate_settings(settings)

    rows, cols = settings.grid_height, settings.grid_width
    t0 = time.perf_counter()

    if settings.force_face is not None:
        grid = np.full((rows, cols), settings.force_face, dtype=np.uint8)
    else:
        lum = sample_luminance(image, rows, cols)
        lum = adjust_tone(lum, settings.contrast, settings.brightness)
        grid = quantize(lum, invert=settings.invert)
    grid.flags.writeable = False

    color_table = table_for_settings(settings)
    logger.info(
        "Generated %dx%d dice grid (%s theme) in %.3f s",
        cols, rows, settings.theme, time.perf_counter() - t0,
    )
    return MosaicResult(grid=grid, color_table=color_table, settings=settings)


def compute_stats(
    result: MosaicResult,
    overrides: OverrideGrid | None = None,
) -> MosaicStats:
    """Face counts over the merged grid, total tiles, cost and physical size."""
    settings = result.settings
    resolved = resolve_grid(result.grid, result.color_table, overrides)
    faces = np.array([[cell.face for cell in row] for row in resolved], dtype=np.uint8)

    counts = np.bincount(faces.reshape(-1), minlength=7)
    face_counts = {face: int(counts[face]) for face in FACES}
    rows, cols = result.grid.shape
    total = rows * cols
    return MosaicStats(
        face_counts=face_counts,
        face_one_count=face_counts[1],
        face_six_count=face_counts[6],
        total=total,
        total_cost=round(total * settings.price_per_die, 2),
        width_mm=cols * settings.dice_size_mm,
        height_mm=rows * settings.dice_size_mm,
    )
