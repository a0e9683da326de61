"""Centralised configuration via frozen dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, replace

from dice_mosaic.errors import InputError

# Grid bounds
MIN_SIDE = 10
MAX_SIDE = 100
MAX_DICE = 10_000

# Step controls
SIZE_STEP = 10
VALUE_STEP = 10

THEMES = ("black", "white", "mixed")
MIXED_MODES = ("alternating", "ramp")


@dataclass(frozen=True)
class MosaicSettings:
    """All tuneable parameters for a mosaic run.

    Attributes:
        grid_width:     Number of dice per row (columns).
        grid_height:    Number of dice per column (rows).
        contrast:       0-100, 50 leaves the image unchanged.
        brightness:     0-100, 50 leaves the image unchanged.
        theme:          "black", "white" or "mixed".
        mixed_color_a:  Odd-face colour for the mixed theme.
        mixed_color_b:  Even-face colour for the mixed theme.
        mixed_mode:     "alternating" (two colours) or "ramp" (grayscale).
        use_shading:    Draw pips on each die.
        price_per_die:  Unit price used for the cost estimate.
        dice_size_mm:   Edge length of one physical die.
        force_face:     If set, every tile shows this face.
        face_color:     If set, replaces every entry of the colour table.
        pip_color:      If set, default pip colour for all tiles.
    """

    # Grid
    grid_width: int = 50
    grid_height: int = 50

    # Tone
    contrast: int = 50
    brightness: int = 50

    # Theme
    theme: str = "mixed"
    mixed_color_a: str = "#FFCC00"
    mixed_color_b: str = "#00AAFF"
    mixed_mode: str = "alternating"  # "alternating" | "ramp"

    # Rendering
    use_shading: bool = True

    # Cost & physical size
    price_per_die: float = 0.10
    dice_size_mm: float = 16.0

    # Manual overrides applied to the whole mosaic
    force_face: int | None = None
    face_color: str | None = None
    pip_color: str | None = None

    @property
    def invert(self) -> bool:
        """Black dice flip the quantiser so photographic polarity is kept."""
        return self.theme == "black"

    @property
    def tile_count(self) -> int:
        return self.grid_width * self.grid_height


@dataclass(frozen=True)
class ExportConfig:
    """Parameters for preview and export rendering.

    Attributes:
        cell_size:          Logical edge length of one tile in pixels.
        supersample:        Export resolution multiplier (at least 2).
        preview_resolution: Multiplier used before downsampling the preview.
        output_format:      Raster format for saved images.
        csv_simple:         Write the ``Row,Column,Dice Value`` variant.
    """

    cell_size: int = 20
    supersample: int = 2
    preview_resolution: int = 4
    output_format: str = "png"
    csv_simple: bool = False


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def clamp_settings(settings: MosaicSettings) -> MosaicSettings:
    """Bring user-supplied settings into the ranges the pipeline accepts.

    Width and height are clamped to [10, 100], which also keeps their
    product within :data:`MAX_DICE`.
    """
    w = _clamp(int(settings.grid_width), MIN_SIDE, MAX_SIDE)
    h = _clamp(int(settings.grid_height), MIN_SIDE, MAX_SIDE)

    force_face = settings.force_face
    if force_face is not None:
        force_face = _clamp(int(force_face), 1, 6)

    return replace(
        settings,
        grid_width=w,
        grid_height=h,
        contrast=_clamp(int(settings.contrast), 0, 100),
        brightness=_clamp(int(settings.brightness), 0, 100),
        price_per_die=max(0.0, float(settings.price_per_die)),
        force_face=force_face,
    )


def step_size(settings: MosaicSettings, direction: int) -> MosaicSettings:
    """Grow or shrink both sides by :data:`SIZE_STEP`.

    Growing is refused once the mosaic already holds :data:`MAX_DICE` tiles.
    """
    if direction > 0:
        if settings.tile_count >= MAX_DICE:
            msg = f"Maximum size reached: cannot exceed {MAX_DICE} dice in total"
            raise InputError(msg)
        delta = SIZE_STEP
    else:
        delta = -SIZE_STEP
    return replace(
        settings,
        grid_width=_clamp(settings.grid_width + delta, MIN_SIDE, MAX_SIDE),
        grid_height=_clamp(settings.grid_height + delta, MIN_SIDE, MAX_SIDE),
    )


def step_value(
    settings: MosaicSettings, field: str, direction: int,
) -> MosaicSettings:
    """Nudge ``contrast`` or ``brightness`` by :data:`VALUE_STEP`."""
    if field not in ("contrast", "brightness"):
        msg = f"Cannot step '{field}'; expected 'contrast' or 'brightness'"
        raise InputError(msg)
    delta = VALUE_STEP if direction > 0 else -VALUE_STEP
    current = getattr(settings, field)
    return replace(settings, **{field: _clamp(current + delta, 0, 100)})
