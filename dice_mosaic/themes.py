"""Theme colour resolution: face value -> fill colour."""

from __future__ import annotations

from dice_mosaic.color_utils import BLACK, WHITE, normalize_hex
from dice_mosaic.config import MIXED_MODES, THEMES, MosaicSettings
from dice_mosaic.errors import InputError

ColorTable = dict[int, str]

FACES = (1, 2, 3, 4, 5, 6)

# Simple mixed variant: darkest face gets the darkest colour.
GRAYSCALE_RAMP: ColorTable = {
    1: "#222222",
    2: "#555555",
    3: "#888888",
    4: "#BBBBBB",
    5: "#DDDDDD",
    6: "#FFFFFF",
}

# Warm/cool pair used when mixed colours are left unset.
DEFAULT_MIXED_A = "#FFCC00"
DEFAULT_MIXED_B = "#00AAFF"

# Surface behind the tiles, visible through the grid-line padding.
THEME_BACKGROUNDS: dict[str, str] = {
    "mixed": "#FFFFFF",
    "black": "#111111",
    "white": "#F8F8F8",
}


def resolve_color_table(
    theme: str = "mixed",
    mixed_color_a: str | None = None,
    mixed_color_b: str | None = None,
    mixed_mode: str = "alternating",
    face_color: str | None = None,
) -> ColorTable:
    """Build the six-entry colour table for a theme.

    Args:
        theme: ``"black"`` / ``"white"`` give a uniform table; ``"mixed"``
            gives either alternating colours or the grayscale ramp.
        mixed_color_a: Colour of odd faces in alternating mode.
        mixed_color_b: Colour of even faces in alternating mode.
        mixed_mode: ``"alternating"`` or ``"ramp"``.
        face_color: If given, every face uses this colour regardless of theme.

    Returns:
        ``{1: "#RRGGBB", ..., 6: "#RRGGBB"}``
    """
    if theme not in THEMES:
        msg = f"Unknown theme '{theme}'. Available: {', '.join(THEMES)}"
        raise InputError(msg)
    if mixed_mode not in MIXED_MODES:
        msg = f"Unknown mixed mode '{mixed_mode}'. Available: {', '.join(MIXED_MODES)}"
        raise InputError(msg)

    if face_color:
        return _uniform(normalize_hex(face_color))
    if theme == "black":
        return _uniform(BLACK)
    if theme == "white":
        return _uniform(WHITE)
    if mixed_mode == "ramp":
        return dict(GRAYSCALE_RAMP)

    a = normalize_hex(mixed_color_a or DEFAULT_MIXED_A)
    b = normalize_hex(mixed_color_b or DEFAULT_MIXED_B)
    return {face: a if face % 2 else b for face in FACES}


def table_for_settings(settings: MosaicSettings) -> ColorTable:
    return resolve_color_table(
        settings.theme,
        settings.mixed_color_a,
        settings.mixed_color_b,
        settings.mixed_mode,
        settings.face_color,
    )


def theme_face_and_pip(settings: MosaicSettings) -> tuple[str, str]:
    """Representative (face, pip) colour pair shown for the current theme."""
    if settings.theme == "black":
        face, pip = BLACK, WHITE
    elif settings.theme == "white":
        face, pip = WHITE, BLACK
    else:
        face = settings.mixed_color_a or DEFAULT_MIXED_A
        pip = settings.mixed_color_b or DEFAULT_MIXED_B
    return (
        normalize_hex(settings.face_color or face),
        normalize_hex(settings.pip_color or pip),
    )


def background_for(theme: str) -> str:
    return THEME_BACKGROUNDS.get(theme, WHITE)


def _uniform(color: str) -> ColorTable:
    return {face: color for face in FACES}
