"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import replace
from pathlib import Path

import numpy as np
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from dice_mosaic.config import ExportConfig, MosaicSettings, clamp_settings
from dice_mosaic.errors import InputError, MosaicError
from dice_mosaic.export import export_png, write_csv
from dice_mosaic.image_io import decode_image, save_image
from dice_mosaic.overrides import OverrideGrid, apply, initialize
from dice_mosaic.pipeline import MosaicStats, compute_stats, generate
from dice_mosaic.render import render_mosaic
from dice_mosaic.themes import FACES, background_for, table_for_settings

app = typer.Typer(
    name="dice-mosaic",
    help="Turn any image into a mosaic of six-sided dice.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()

_EDIT_RE = re.compile(r"^\s*(\d+)\s*,\s*(\d+)\s*:(.+)$")
_EDIT_KEYS = {"face": "face", "fill": "fill_color", "pip": "pip_color"}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def parse_edit(spec: str) -> tuple[int, int, dict[str, object]]:
    """Parse ``'ROW,COL:face=5,fill=#FF0000,pip=#000000'`` (1-based).

    Returns 0-based ``(row, col, patch)``.
    """
    m = _EDIT_RE.match(spec)
    if m is None:
        msg = f"Bad edit '{spec}', expected ROW,COL:key=value[,key=value]"
        raise InputError(msg)
    row, col = int(m.group(1)) - 1, int(m.group(2)) - 1

    patch: dict[str, object] = {}
    for item in m.group(3).split(","):
        key, _, value = item.partition("=")
        key = key.strip().lower()
        if key not in _EDIT_KEYS or not value.strip():
            msg = f"Bad edit field '{item}' in '{spec}' (use face, fill, pip)"
            raise InputError(msg)
        value = value.strip()
        if key == "face":
            if not value.isdigit():
                msg = f"Face must be a number 1-6 in '{spec}'"
                raise InputError(msg)
            patch["face"] = int(value)
        else:
            patch[_EDIT_KEYS[key]] = value
    return row, col, patch


def _stats_table(stats: MosaicStats) -> Table:
    table = Table(title="Dice per face", show_lines=False)
    table.add_column("Face", justify="center")
    table.add_column("Count", justify="right")
    table.add_column("Share", justify="right")
    for face, count in stats.face_counts.items():
        table.add_row(str(face), f"{count:,}", f"{count / stats.total:.1%}")
    return table


# Defaults come from the config dataclasses - single source of truth
_DEFAULTS = MosaicSettings()
_EXPORT_DEFAULTS = ExportConfig()


# -- generate command --------------------------------------------------

@app.command("generate")
def generate_cmd(
    image: Path = typer.Argument(..., help="Path to the source image"),
    width: int = typer.Option(
        _DEFAULTS.grid_width, "--width", "-W", help="Dice per row (10-100)",
    ),
    height: int = typer.Option(
        _DEFAULTS.grid_height, "--height", "-H", help="Dice per column (10-100)",
    ),
    contrast: int = typer.Option(_DEFAULTS.contrast, "--contrast", help="0-100"),
    brightness: int = typer.Option(_DEFAULTS.brightness, "--brightness", help="0-100"),
    theme: str = typer.Option(
        _DEFAULTS.theme, "--theme", "-t", help="'black', 'white' or 'mixed'",
    ),
    mixed_a: str = typer.Option(
        _DEFAULTS.mixed_color_a, "--mixed-a", help="Odd-face colour (mixed theme)",
    ),
    mixed_b: str = typer.Option(
        _DEFAULTS.mixed_color_b, "--mixed-b", help="Even-face colour (mixed theme)",
    ),
    ramp: bool = typer.Option(
        False, "--ramp", help="Mixed theme uses a six-step grayscale ramp",
    ),
    shading: bool = typer.Option(
        _DEFAULTS.use_shading, "--shading/--no-shading", help="Draw pips",
    ),
    force_face: int | None = typer.Option(
        None, "--force-face", help="Show this face (1-6) on every die",
    ),
    face_color: str | None = typer.Option(
        None, "--face-color", help="Single colour for every die face",
    ),
    pip_color: str | None = typer.Option(
        None, "--pip-color", help="Single colour for every pip",
    ),
    price: float = typer.Option(
        _DEFAULTS.price_per_die, "--price", help="Price per die",
    ),
    edits: list[str] | None = typer.Option(
        None, "--edit", "-e", help="Tile edit, e.g. '3,7:face=5,fill=#FF0000'",
    ),
    csv_path: Path | None = typer.Option(None, "--csv", help="Write CSV table"),
    simple_csv: bool = typer.Option(
        _EXPORT_DEFAULTS.csv_simple, "--simple-csv", help="Row,Column,Dice Value only",
    ),
    png_path: Path | None = typer.Option(None, "--png", help="Write PNG render"),
    cell_size: int = typer.Option(
        _EXPORT_DEFAULTS.cell_size, "--cell-size", help="Logical pixels per die",
    ),
    factor: int = typer.Option(
        _EXPORT_DEFAULTS.supersample, "--factor", "-f", help="Supersampling (>= 2)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Convert IMAGE into a dice mosaic and print a bill of materials."""
    _setup_logging(verbose)
    t0 = time.perf_counter()

    settings = clamp_settings(MosaicSettings(
        grid_width=width,
        grid_height=height,
        contrast=contrast,
        brightness=brightness,
        theme=theme,
        mixed_color_a=mixed_a,
        mixed_color_b=mixed_b,
        mixed_mode="ramp" if ramp else "alternating",
        use_shading=shading,
        price_per_die=price,
        force_face=force_face,
        face_color=face_color,
        pip_color=pip_color,
    ))
    if (settings.grid_width, settings.grid_height) != (width, height):
        console.print(
            f"[yellow]Grid clamped to {settings.grid_width}x{settings.grid_height}[/yellow]"
        )
    export_cfg = replace(_EXPORT_DEFAULTS, cell_size=cell_size, supersample=factor)

    try:
        result = generate(decode_image(image), settings)
        overrides: OverrideGrid = initialize(result.grid, result.color_table)
        for spec in edits or []:
            r, c, patch = parse_edit(spec)
            overrides = apply(overrides, r, c, patch)

        if csv_path is not None:
            csv_path.parent.mkdir(parents=True, exist_ok=True)
            write_csv(csv_path, result, overrides, simple=simple_csv)
        if png_path is not None:
            png_path.parent.mkdir(parents=True, exist_ok=True)
            export_png(result, overrides, export_cfg, path=png_path)
    except MosaicError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc

    stats = compute_stats(result, overrides)
    rows, cols = result.shape
    console.print(Panel.fit(
        f"[bold]DICE MOSAIC[/bold]\n"
        f"Grid: {cols} x {rows}  |  Theme: {settings.theme}\n"
        f"Contrast: {settings.contrast}  |  Brightness: {settings.brightness}\n"
        f"Size: {stats.width_mm / 10:.1f} x {stats.height_mm / 10:.1f} cm  |  "
        f"Edits: {len(edits or [])}",
        border_style="cyan",
    ))
    console.print(_stats_table(stats))
    console.print(
        f"  [green]✓[/green] {stats.total:,} dice  "
        f"(face 1: {stats.face_one_count:,}, face 6: {stats.face_six_count:,})  "
        f"cost={stats.total_cost:.2f}  "
        f"[dim]time={time.perf_counter() - t0:.2f}s[/dim]"
    )


# -- faces command -----------------------------------------------------

@app.command()
def faces(
    output: Path = typer.Option(Path("output/faces.png"), "--output", "-o"),
    theme: str = typer.Option(_DEFAULTS.theme, "--theme", "-t"),
    mixed_a: str = typer.Option(_DEFAULTS.mixed_color_a, "--mixed-a"),
    mixed_b: str = typer.Option(_DEFAULTS.mixed_color_b, "--mixed-b"),
    ramp: bool = typer.Option(False, "--ramp"),
    cell_size: int = typer.Option(64, "--cell-size"),
    factor: int = typer.Option(_EXPORT_DEFAULTS.supersample, "--factor", "-f"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Render faces 1-6 side by side with the chosen theme colours."""
    _setup_logging(verbose)
    settings = MosaicSettings(
        theme=theme,
        mixed_color_a=mixed_a,
        mixed_color_b=mixed_b,
        mixed_mode="ramp" if ramp else "alternating",
    )
    try:
        strip = render_mosaic(
            np.array([FACES], dtype=np.uint8),
            table_for_settings(settings),
            cell_size=cell_size,
            resolution=factor,
            background=background_for(settings.theme),
        )
    except MosaicError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc

    output.parent.mkdir(parents=True, exist_ok=True)
    save_image(strip, output)
    console.print(
        f"[green]✓[/green] Saved to {output}  "
        f"[dim]{strip.shape[1]}x{strip.shape[0]} px[/dim]"
    )


if __name__ == "__main__":
    app()
