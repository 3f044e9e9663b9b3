"""Tile-parallel renderer.

TileRenderer splits the image into tiles and feeds them to a pool of worker
threads. Each tile is an independent unit of work: it owns its accumulators
and the random streams of its pixels, and the scene it reads is immutable,
so workers share nothing mutable. Finished tiles are copied into the image
buffers on the calling thread, each pixel written exactly once.

Scheduling properties:
- Tiles may finish in any order. Every pixel has its own seeded stream, so
  the image does not depend on tile size, worker count, or completion order.
- Cancellation is cooperative: once the CancelToken is set, tiles already
  running finish but no new tile is started.
- A tile that raises is retried once with fresh accumulators. If the retry
  also fails, the render is aborted with a TileFailedError naming the tile.

Example:
    >>> renderer = TileRenderer(scene, config)
    >>> result = renderer.render(callback=lambda done, total: print(done, total))
    >>> result.rgb.shape
    (300, 512, 3)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Generator
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

import numpy as np
import numpy.typing as npt

from prismatic.core.config import RenderConfig
from prismatic.core.film import FinishedTile, TileFilm
from prismatic.core.integrator import render_pixel
from prismatic.core.sampling import pixel_rng
from prismatic.core.tiles import Tile, make_tiles
from prismatic.errors import RenderError, TileFailedError

if TYPE_CHECKING:
    from prismatic.scene.builder import Scene

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (completed_tiles, total_tiles)
ProgressCallback = Callable[[int, int], None]


class CancelToken:
    """Cooperative cancellation flag shared with a running render."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted each time a tile is finished.

    Attributes:
        tile: The tile that finished.
        completed: Number of tiles finished so far.
        total: Number of tiles in the render.
    """

    tile: Tile
    completed: int
    total: int

    @property
    def percent(self) -> int:
        return (self.completed * 100) // self.total if self.total else 100


@dataclass
class RenderStats:
    """Bookkeeping of a render.

    Attributes:
        tiles_total: Number of tiles in the image.
        tiles_completed: Tiles that finished.
        retries: Tiles that failed once and were retried.
        nan_samples: Paths whose estimate was discarded as non-finite.
        paths: Paths traced in completed tiles.
        elapsed: Wall-clock seconds.
    """

    tiles_total: int = 0
    tiles_completed: int = 0
    retries: int = 0
    nan_samples: int = 0
    paths: int = 0
    elapsed: float = 0.0


@dataclass
class RenderResult:
    """Image produced by a render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        spectral: Mean radiance per spectral bin, shape (H, W, bins).
        xyz: CIE XYZ, shape (H, W, 3).
        rgb: Linear sRGB, shape (H, W, 3).
        cancelled: True if the render stopped before every tile finished.
        stats: Render bookkeeping.
    """

    width: int
    height: int
    spectral: npt.NDArray[np.float64]
    xyz: npt.NDArray[np.float64]
    rgb: npt.NDArray[np.float64]
    cancelled: bool = False
    stats: RenderStats = field(default_factory=RenderStats)


class TileRenderer:
    """Renders a scene tile by tile over a worker pool.

    Args:
        scene: The scene to render. Its camera defines the image size.
        config: Sampling and scheduling parameters.
    """

    def __init__(self, scene: Scene, config: RenderConfig) -> None:
        self.scene = scene
        self.config = config
        self.camera = scene.camera
        self.width = self.camera.width
        self.height = self.camera.height
        self.tiles = make_tiles(self.width, self.height, config.tile_size)
        self._result: Optional[RenderResult] = None

    @property
    def result(self) -> Optional[RenderResult]:
        """Result of the most recent render, if any."""
        return self._result

    def render_tile(self, tile: Tile) -> FinishedTile:
        """Render every pixel of a tile and finalize its film."""
        film = TileFilm(tile, self.config.spectrum_bins, self.config.wavelength_range)
        for x, y in tile.pixels():
            estimate = render_pixel(
                self.scene,
                self.camera,
                self.config,
                x,
                y,
                pixel_rng(self.config.seed, x, y),
            )
            film.deposit(x, y, estimate.sums, estimate.counts)
            film.nan_samples += estimate.nan_count
        return film.finalize()

    def _render_tile_with_retry(self, tile: Tile) -> tuple[FinishedTile, int]:
        """Render a tile, retrying once on failure. Returns (tile, retries)."""
        logger.debug("Rendering tile %d (%d px)", tile.index, tile.area)
        try:
            return self.render_tile(tile), 0
        except Exception as first_error:
            logger.warning(
                "Tile %d at (%d, %d) failed, retrying: %r",
                tile.index,
                tile.x0,
                tile.y0,
                first_error,
            )

        try:
            return self.render_tile(tile), 1
        except Exception as second_error:
            raise TileFailedError(tile, second_error) from second_error

    def render_progressive(
        self,
        cancel: Optional[CancelToken] = None,
    ) -> Generator[ProgressEvent, None, None]:
        """Render all tiles, yielding an event as each one finishes.

        The finished image is available from :attr:`result` once the
        generator is exhausted (or stops early on cancellation).

        Args:
            cancel: Token checked before each tile is dispatched.

        Yields:
            A ProgressEvent per finished tile.

        Raises:
            TileFailedError: If a tile fails twice.
        """
        cancel = cancel if cancel is not None else CancelToken()
        bins = self.config.spectrum_bins
        spectral = np.zeros((self.height, self.width, bins))
        xyz = np.zeros((self.height, self.width, 3))
        rgb = np.zeros((self.height, self.width, 3))
        stats = RenderStats(tiles_total=len(self.tiles))
        result = RenderResult(self.width, self.height, spectral, xyz, rgb, stats=stats)
        self._result = result

        start_time = time.perf_counter()
        logger.info(
            "Rendering %dx%d: %d tiles, %d paths per pixel, %d worker(s)",
            self.width,
            self.height,
            len(self.tiles),
            self.config.paths_per_pixel,
            self.config.workers,
        )

        def store(finished: FinishedTile, retries: int) -> ProgressEvent:
            tile = finished.tile
            spectral[tile.y0:tile.y1, tile.x0:tile.x1] = finished.spectral
            xyz[tile.y0:tile.y1, tile.x0:tile.x1] = finished.xyz
            rgb[tile.y0:tile.y1, tile.x0:tile.x1] = finished.rgb
            stats.tiles_completed += 1
            stats.retries += retries
            stats.nan_samples += finished.nan_samples
            stats.paths += tile.area * self.config.paths_per_pixel
            stats.elapsed = time.perf_counter() - start_time
            logger.debug("Finished tile %d", tile.index)
            return ProgressEvent(tile, stats.tiles_completed, stats.tiles_total)

        try:
            if self.config.workers == 1:
                for tile in self.tiles:
                    if cancel.cancelled:
                        break
                    yield store(*self._render_tile_with_retry(tile))
            else:
                yield from self._render_pooled(cancel, store)
        except TileFailedError:
            cancel.cancel()
            logger.error("Render aborted")
            raise
        finally:
            stats.elapsed = time.perf_counter() - start_time
            result.cancelled = stats.tiles_completed < stats.tiles_total

        if result.cancelled:
            logger.warning(
                "Render cancelled after %d of %d tiles",
                stats.tiles_completed,
                stats.tiles_total,
            )
        if stats.nan_samples:
            logger.warning("Discarded %d non-finite path samples", stats.nan_samples)
        logger.info(
            "Rendered %d tiles (%d paths) in %.2fs",
            stats.tiles_completed,
            stats.paths,
            stats.elapsed,
        )

    def _render_pooled(
        self,
        cancel: CancelToken,
        store: Callable[[FinishedTile, int], ProgressEvent],
    ) -> Generator[ProgressEvent, None, None]:
        """Dispatch tiles to the worker pool, at most one per idle worker."""
        pending = iter(self.tiles)
        in_flight: set[Future[tuple[FinishedTile, int]]] = set()

        with ThreadPoolExecutor(
            max_workers=self.config.workers, thread_name_prefix="prismatic-tile"
        ) as executor:

            def dispatch() -> None:
                while len(in_flight) < self.config.workers and not cancel.cancelled:
                    tile = next(pending, None)
                    if tile is None:
                        return
                    in_flight.add(executor.submit(self._render_tile_with_retry, tile))

            # Leaving this block early waits for the tiles still running
            dispatch()
            while in_flight:
                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    in_flight.discard(future)
                    yield store(*future.result())
                dispatch()

    def render(
        self,
        callback: Optional[ProgressCallback] = None,
        cancel: Optional[CancelToken] = None,
    ) -> RenderResult:
        """Render the full image.

        Args:
            callback: Optional function called with (completed, total) after
                each tile.
            cancel: Optional token to stop dispatching new tiles.

        Returns:
            The rendered image.

        Raises:
            TileFailedError: If a tile fails twice.
            RenderError: If the render produced no result.
        """
        for event in self.render_progressive(cancel):
            if callback is not None:
                callback(event.completed, event.total)
        result = self._result
        if result is None:
            raise RenderError("Render finished without producing a result")
        return result

    def __repr__(self) -> str:
        return (
            f"TileRenderer({self.width}x{self.height}, tiles={len(self.tiles)}, "
            f"workers={self.config.workers})"
        )


def render_scene(
    scene: Scene,
    config: RenderConfig,
    callback: Optional[ProgressCallback] = None,
    cancel: Optional[CancelToken] = None,
) -> RenderResult:
    """Render a scene in one call. See :class:`TileRenderer`."""
    return TileRenderer(scene, config).render(callback=callback, cancel=cancel)
