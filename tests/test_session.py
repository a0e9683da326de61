"""Tests for the interactive session and the command-line interface."""

from __future__ import annotations

import asyncio
import io
import time
from dataclasses import replace
from pathlib import Path

import numpy as np
import pytest
from PIL import Image
from typer.testing import CliRunner

from dice_mosaic.cli import app, parse_edit
from dice_mosaic.config import ExportConfig, MosaicSettings
from dice_mosaic.errors import DecodeError, InputError
from dice_mosaic.image_io import decode_image, encode_png
from dice_mosaic.session import MosaicSession

# -- Fixtures ----------------------------------------------------------

SMALL = MosaicSettings(grid_width=10, grid_height=10)

runner = CliRunner()


@pytest.fixture
def png_bytes() -> bytes:
    rng = np.random.default_rng(11)
    return encode_png(rng.integers(0, 256, size=(40, 60, 3), dtype=np.uint8))


@pytest.fixture
def tmp_image(tmp_path: Path) -> Path:
    ramp = np.linspace(0, 255, 80).astype(np.uint8)
    img = np.repeat(np.tile(ramp, (50, 1))[..., None], 3, axis=2)
    p = tmp_path / "ramp.png"
    Image.fromarray(img).save(p)
    return p


def _solid(value: int) -> np.ndarray:
    return np.full((20, 20, 3), value, dtype=np.uint8)


# -- Session -----------------------------------------------------------

class TestSession:
    def test_regenerate(self, png_bytes: bytes) -> None:
        session = MosaicSession()
        result = asyncio.run(session.regenerate(SMALL, source=png_bytes))
        assert result is session.result
        assert result.shape == (10, 10)
        assert session.overrides.shape == (10, 10)
        assert session.image.shape == (40, 60, 4)

    def test_failure_keeps_previous(self, png_bytes: bytes) -> None:
        session = MosaicSession()
        first = asyncio.run(session.regenerate(SMALL, source=png_bytes))
        overrides = session.overrides

        too_big = MosaicSettings(grid_width=200, grid_height=200)
        with pytest.raises(InputError):
            asyncio.run(session.regenerate(too_big))
        assert session.result is first
        assert session.overrides is overrides

        with pytest.raises(DecodeError):
            asyncio.run(session.regenerate(SMALL, source=b"not an image"))
        assert session.result is first

        again = asyncio.run(session.regenerate(replace(SMALL, contrast=70)))
        assert again.shape == (10, 10)
        assert session.image.shape == (40, 60, 4)

    def test_no_image(self) -> None:
        with pytest.raises(InputError):
            asyncio.run(MosaicSession().regenerate(SMALL))

    def test_late_result_does_not_overwrite_newer(self) -> None:
        def decoder(source: bytes) -> np.ndarray:
            if source == b"slow":
                time.sleep(0.2)
                return _solid(0)
            return _solid(255)

        async def scenario() -> tuple[MosaicSession, object, object]:
            session = MosaicSession(decoder=decoder)
            slow = asyncio.create_task(session.regenerate(SMALL, source=b"slow"))
            await asyncio.sleep(0)
            newer = await session.regenerate(
                MosaicSettings(grid_width=20, grid_height=20), source=b"fast",
            )
            stale = await slow
            return session, newer, stale

        session, newer, stale = asyncio.run(scenario())
        assert stale is None
        assert session.result is newer
        assert session.result.shape == (20, 20)
        assert np.all(session.result.grid == 6)
        assert session.image.max() == 255

    def test_request_during_upload_uses_new_image(self) -> None:
        def decoder(source: bytes) -> np.ndarray:
            time.sleep(0.2)
            return _solid(255)

        async def scenario() -> tuple[MosaicSession, object]:
            session = MosaicSession(debounce=0.01, decoder=decoder)
            upload = asyncio.create_task(session.regenerate(SMALL, source=b"img"))
            await asyncio.sleep(0)
            session.request(MosaicSettings(grid_width=20, grid_height=20))
            await session.settle()
            return session, await upload

        session, superseded = asyncio.run(scenario())
        assert superseded is None
        assert session.last_error is None
        assert session.result is not None
        assert session.result.shape == (20, 20)
        assert np.all(session.result.grid == 6)
        assert session.image.max() == 255

    def test_upload_replaces_older_image_for_later_requests(
        self, png_bytes: bytes,
    ) -> None:
        def decoder(source: bytes) -> np.ndarray:
            if source == b"white":
                time.sleep(0.1)
                return _solid(255)
            return decode_image(source)

        async def scenario() -> MosaicSession:
            session = MosaicSession(decoder=decoder)
            await session.regenerate(SMALL, source=png_bytes)
            upload = asyncio.create_task(session.regenerate(SMALL, source=b"white"))
            await asyncio.sleep(0)
            await session.regenerate(replace(SMALL, contrast=60))
            await upload
            return session

        session = asyncio.run(scenario())
        assert session.result.settings.contrast == 60
        assert np.all(session.result.grid == 6)

    def test_debounce_coalesces_requests(self, png_bytes: bytes) -> None:
        async def scenario() -> tuple[MosaicSession, int]:
            session = MosaicSession(debounce=0.05)
            await session.regenerate(SMALL, source=png_bytes)
            before = session.generation
            for width in (20, 30, 40):
                session.request(replace(session.settings, grid_width=width))
            await session.settle()
            return session, before

        session, before = asyncio.run(scenario())
        assert session.generation == before + 1
        assert session.result.shape == (10, 40)

    def test_debounced_failure_is_recorded(self, png_bytes: bytes) -> None:
        async def scenario() -> tuple[MosaicSession, object]:
            session = MosaicSession(debounce=0.01)
            first = await session.regenerate(SMALL, source=png_bytes)
            session.request(MosaicSettings(grid_width=200, grid_height=200))
            await session.settle()
            return session, first

        session, first = asyncio.run(scenario())
        assert isinstance(session.last_error, InputError)
        assert session.result is first

    def test_edits_replay_on_same_size(self, png_bytes: bytes) -> None:
        async def scenario() -> MosaicSession:
            session = MosaicSession()
            await session.regenerate(SMALL, source=png_bytes)
            session.edit(0, 0, face=6, fill_color="#FF0000")
            await session.regenerate(replace(SMALL, contrast=80))
            return session

        session = asyncio.run(scenario())
        cell = session.overrides.cell(0, 0)
        assert cell.face == 6
        assert cell.fill_color == "#FF0000"
        assert session.result.settings.contrast == 80

    def test_edits_dropped_on_resize(self, png_bytes: bytes) -> None:
        async def scenario() -> MosaicSession:
            session = MosaicSession()
            await session.regenerate(SMALL, source=png_bytes)
            session.edit(0, 0, fill_color="#FF0000")
            await session.regenerate(replace(SMALL, grid_width=20))
            return session

        session = asyncio.run(scenario())
        result = session.result
        face = int(result.grid[0, 0])
        assert session.overrides.cell(0, 0).fill_color == result.color_table[face]

    def test_edit_requires_mosaic(self) -> None:
        with pytest.raises(InputError):
            MosaicSession().edit(0, 0, face=2)

    def test_edit_out_of_range(self, png_bytes: bytes) -> None:
        session = MosaicSession()
        asyncio.run(session.regenerate(SMALL, source=png_bytes))
        with pytest.raises(InputError):
            session.edit(10, 0, face=2)

    def test_outputs_agree(self, png_bytes: bytes) -> None:
        session = MosaicSession()
        asyncio.run(session.regenerate(SMALL, source=png_bytes))
        session.edit(2, 3, face=1)

        lines = session.csv().splitlines()
        assert lines[2 * 10 + 3 + 1].startswith("3,4,1,")
        assert session.stats().total == 100

        img = Image.open(io.BytesIO(
            session.png(ExportConfig(cell_size=4, supersample=2)),
        ))
        assert img.size == (80, 80)
        assert session.preview(cell_size=6, resolution=2).size == (60, 60)


# -- CLI ---------------------------------------------------------------

class TestCLI:
    def test_parse_edit(self) -> None:
        assert parse_edit("3,7:face=5,fill=#ff0000") == (
            2, 6, {"face": 5, "fill_color": "#ff0000"},
        )
        assert parse_edit(" 1, 1 :pip=#000000") == (0, 0, {"pip_color": "#000000"})

    @pytest.mark.parametrize("spec", ["3:face=5", "1,1:size=2", "1,1:face=x", "1,1:"])
    def test_parse_edit_rejects(self, spec: str) -> None:
        with pytest.raises(InputError):
            parse_edit(spec)

    def test_generate_writes_exports(self, tmp_image: Path, tmp_path: Path) -> None:
        csv_path = tmp_path / "out" / "dice.csv"
        png_path = tmp_path / "out" / "dice.png"
        result = runner.invoke(app, [
            "generate", str(tmp_image),
            "--width", "16", "--height", "10",
            "--edit", "1,1:face=6,fill=#FF0000",
            "--csv", str(csv_path),
            "--png", str(png_path),
            "--cell-size", "5", "--factor", "2",
        ])
        assert result.exit_code == 0, result.output
        lines = csv_path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 16 * 10 + 1
        assert lines[1] == '1,1,6,"#FF0000"'
        assert Image.open(png_path).size == (16 * 5 * 2, 10 * 5 * 2)
        assert "160" in result.output

    def test_generate_clamps_size(self, tmp_image: Path) -> None:
        result = runner.invoke(app, [
            "generate", str(tmp_image), "--width", "300", "--height", "10",
        ])
        assert result.exit_code == 0, result.output
        assert "clamped" in result.output

    def test_generate_bad_theme(self, tmp_image: Path) -> None:
        result = runner.invoke(app, ["generate", str(tmp_image), "--theme", "purple"])
        assert result.exit_code == 1

    def test_generate_bad_pip_color_without_png(self, tmp_image: Path) -> None:
        result = runner.invoke(app, [
            "generate", str(tmp_image), "--pip-color", "#12345",
        ])
        assert result.exit_code == 1
        assert "Invalid hex colour" in result.output

    def test_generate_bad_file(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"nope")
        result = runner.invoke(app, ["generate", str(bad)])
        assert result.exit_code == 1

    def test_faces(self, tmp_path: Path) -> None:
        out = tmp_path / "faces.png"
        result = runner.invoke(app, [
            "faces", "--output", str(out), "--cell-size", "32", "--theme", "white",
        ])
        assert result.exit_code == 0, result.output
        assert Image.open(out).size == (6 * 32 * 2, 32 * 2)
