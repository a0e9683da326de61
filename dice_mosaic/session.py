"""Interactive session: debounced regeneration with last-settings-wins ordering.

Only image decoding suspends (it runs in a worker thread); sampling,
quantisation and rendering are synchronous.  Every regeneration takes a
ticket from a generation counter and is committed only if no newer request
was made while it was suspended, so a slow early request can never overwrite
the result of a later one.  An upload that is still decoding is shared
with later requests that carry no image of their own, so new settings are
always applied to the newest image.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import numpy as np
from PIL import Image

from dice_mosaic.config import ExportConfig, MosaicSettings
from dice_mosaic.errors import InputError, MosaicError
from dice_mosaic.export import export_png, to_csv
from dice_mosaic.image_io import ImageSource, decode_image
from dice_mosaic.overrides import OverrideGrid, apply, initialize
from dice_mosaic.pipeline import MosaicResult, MosaicStats, compute_stats, generate
from dice_mosaic.render import render_preview
from dice_mosaic.themes import background_for

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.3


class MosaicSession:
    """Current image, mosaic, overrides and pending work for one user."""

    def __init__(
        self,
        settings: MosaicSettings | None = None,
        debounce: float = DEBOUNCE_SECONDS,
        decoder: Callable[[ImageSource], np.ndarray] = decode_image,
    ) -> None:
        self.settings = settings or MosaicSettings()
        self.debounce = debounce
        self.last_error: MosaicError | None = None
        self._decoder = decoder
        self._image: np.ndarray | None = None
        self._decoding: asyncio.Future[np.ndarray] | None = None
        self._result: MosaicResult | None = None
        self._overrides: OverrideGrid | None = None
        self._edits: dict[tuple[int, int], dict[str, Any]] = {}
        self._generation = 0
        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[MosaicResult | None] | None = None

    # -- Snapshots -----------------------------------------------------

    @property
    def image(self) -> np.ndarray | None:
        return self._image

    @property
    def result(self) -> MosaicResult | None:
        return self._result

    @property
    def overrides(self) -> OverrideGrid | None:
        return self._overrides

    @property
    def generation(self) -> int:
        return self._generation

    # -- Regeneration --------------------------------------------------

    async def regenerate(
        self,
        settings: MosaicSettings | None = None,
        source: ImageSource | None = None,
    ) -> MosaicResult | None:
        """Run the pipeline and commit its result.

        A call without *source* uses the most recent upload, waiting for it
        if it is still decoding.  Returns ``None`` when a newer request
        superseded this one while it was suspended.  On failure the previous
        mosaic is kept.
        """
        self._generation += 1
        ticket = self._generation
        settings = settings or self.settings

        if source is not None:
            self._decoding = asyncio.ensure_future(
                asyncio.to_thread(self._decoder, source)
            )
        decoding = self._decoding

        image = self._image
        if decoding is not None:
            try:
                image = await decoding
            except MosaicError:
                if self._decoding is decoding:
                    self._decoding = None
                raise

        if ticket != self._generation:
            logger.debug("Generation %d superseded by %d", ticket, self._generation)
            return None

        result = generate(image, settings)
        if self._decoding is decoding:
            self._decoding = None
        self._commit(result, image)
        return result

    def _commit(self, result: MosaicResult, image: np.ndarray | None) -> None:
        overrides = initialize(result.grid, result.color_table)
        previous = self._result
        if previous is not None and previous.shape == result.shape:
            for (r, c), patch in self._edits.items():
                overrides = apply(overrides, r, c, patch)
        elif self._edits:
            logger.info("Grid resized; discarding %d manual edits", len(self._edits))
            self._edits = {}

        self._image = image
        self.settings = result.settings
        self._result = result
        self._overrides = overrides
        self.last_error = None

    def request(self, settings: MosaicSettings) -> None:
        """Schedule a regeneration after the debounce window.

        Calls within the window replace each other; only the latest
        settings are processed.  Must be called from a running event loop.
        """
        self.settings = settings
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce, self._fire)

    def _fire(self) -> None:
        self._timer = None
        self._task = asyncio.ensure_future(self._run_pending())

    async def _run_pending(self) -> MosaicResult | None:
        try:
            return await self.regenerate(self.settings)
        except MosaicError as exc:
            logger.warning("Regeneration failed: %s", exc)
            self.last_error = exc
            return None

    async def settle(self) -> MosaicResult | None:
        """Wait for any debounced request to finish; return the current result."""
        while self._timer is not None:
            await asyncio.sleep(self.debounce / 2)
        if self._task is not None:
            await self._task
        return self._result

    # -- Manual edits --------------------------------------------------

    def edit(self, r: int, c: int, **patch: Any) -> OverrideGrid:
        """Override face / fill_color / pip_color of one tile."""
        if self._overrides is None:
            msg = "No mosaic has been generated yet"
            raise InputError(msg)
        self._overrides = apply(self._overrides, r, c, patch)
        self._edits[(r, c)] = {**self._edits.get((r, c), {}), **patch}
        return self._overrides

    # -- Outputs -------------------------------------------------------

    def _require_result(self) -> MosaicResult:
        if self._result is None:
            msg = "No mosaic has been generated yet"
            raise InputError(msg)
        return self._result

    def stats(self) -> MosaicStats:
        return compute_stats(self._require_result(), self._overrides)

    def csv(self, simple: bool = False) -> str:
        return to_csv(self._require_result(), self._overrides, simple)

    def png(self, config: ExportConfig | None = None) -> bytes:
        return export_png(self._require_result(), self._overrides, config)

    def preview(self, cell_size: float = 12, resolution: int = 4) -> Image.Image:
        result = self._require_result()
        return render_preview(
            result.grid,
            result.color_table,
            self._overrides,
            cell_size=cell_size,
            resolution=resolution,
            use_shading=result.settings.use_shading,
            background=background_for(result.settings.theme),
            default_pip=result.settings.pip_color,
        )
