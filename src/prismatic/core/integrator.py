"""Spectral path tracing integrator.

Each path carries a single wavelength. Paths are traced in batches (all
paths of one pixel at a time), with the per-path state kept as parallel
arrays. Every path moves through the same small state machine:

    TRACING -> EMITTED    hit an emitter; adds throughput * emitted radiance
            -> MISSED     left the scene; adds throughput * background
            -> EXHAUSTED  hit a scattering surface with no bounces left
            -> ABSORBED   throughput dropped to zero
            -> ROULETTE   stopped by Russian roulette (if enabled)

There are no transitions out of a terminal state. The bounce budget counts
scatter events: a path scatters at most ``bounces`` times, and the ray leaving
its last scatter is still tested for emission. Russian roulette is off by
default; when enabled, surviving throughput is divided by the continuation
probability so the estimate stays unbiased.

Example:
    >>> result = trace_paths(
    ...     scene.surface, scene.materials, origins, directions,
    ...     wavelengths, rng, bounces=8,
    ... )
    >>> result.radiance.mean()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, NamedTuple, Optional

import numpy as np
import numpy.typing as npt

from prismatic.core.config import RenderConfig
from prismatic.core.ray import offset_ray_origin
from prismatic.core.sampling import stratified_wavelengths
from prismatic.core.spectrum import Spectrum
from prismatic.materials import MaterialTable, scatter_or_emit

if TYPE_CHECKING:
    from prismatic.camera.thin_lens import ThinLensCamera
    from prismatic.scene.builder import Scene
    from prismatic.scene.surface import SceneSurface

logger = logging.getLogger(__name__)

# Upper bound of the Russian roulette continuation probability
MAX_CONTINUATION = 0.95


class PathStatus(IntEnum):
    """Lifecycle state of a path."""

    TRACING = 0
    EMITTED = 1
    MISSED = 2
    EXHAUSTED = 3
    ABSORBED = 4
    ROULETTE = 5


@dataclass
class PathState:
    """Mutable state of a batch of N paths.

    Attributes:
        origins: Current ray origins, shape (N, 3).
        directions: Current ray directions, shape (N, 3).
        wavelengths: Wavelength carried by each path in nm, shape (N,).
        throughput: Accumulated attenuation at the path's wavelength.
        radiance: Radiance gathered so far.
        scatter_count: Scatter events so far.
        status: PathStatus of each path.
    """

    origins: npt.NDArray[np.float64]
    directions: npt.NDArray[np.float64]
    wavelengths: npt.NDArray[np.float64]
    throughput: npt.NDArray[np.float64]
    radiance: npt.NDArray[np.float64]
    scatter_count: npt.NDArray[np.int64]
    status: npt.NDArray[np.int8]

    @classmethod
    def start(
        cls,
        origins: npt.NDArray[np.float64],
        directions: npt.NDArray[np.float64],
        wavelengths: npt.NDArray[np.float64],
    ) -> PathState:
        """Fresh paths with unit throughput and no radiance."""
        count = len(wavelengths)
        return cls(
            origins=np.array(origins, dtype=np.float64),
            directions=np.array(directions, dtype=np.float64),
            wavelengths=np.asarray(wavelengths, dtype=np.float64),
            throughput=np.ones(count),
            radiance=np.zeros(count),
            scatter_count=np.zeros(count, dtype=np.int64),
            status=np.full(count, PathStatus.TRACING, dtype=np.int8),
        )

    def active(self) -> npt.NDArray[np.intp]:
        """Indices of paths still tracing."""
        return np.flatnonzero(self.status == PathStatus.TRACING)

    def terminate(self, indices: npt.NDArray[np.intp], status: PathStatus) -> None:
        self.status[indices] = status


class PathResult(NamedTuple):
    """Outcome of tracing a batch of paths.

    Attributes:
        radiance: Radiance estimate of each path, shape (N,).
        wavelengths: Wavelength of each path.
        scatter_count: Scatter events of each path.
        status: Terminal PathStatus of each path.
        nan_count: Paths whose estimate was non-finite and was zeroed.
    """

    radiance: npt.NDArray[np.float64]
    wavelengths: npt.NDArray[np.float64]
    scatter_count: npt.NDArray[np.int64]
    status: npt.NDArray[np.int8]
    nan_count: int


def trace_paths(
    surface: SceneSurface,
    materials: MaterialTable,
    origins: npt.NDArray[np.float64],
    directions: npt.NDArray[np.float64],
    wavelengths: npt.NDArray[np.float64],
    rng: np.random.Generator,
    bounces: int,
    background: Optional[Spectrum] = None,
    russian_roulette_depth: Optional[int] = None,
) -> PathResult:
    """Trace a batch of paths until every one reaches a terminal state.

    Args:
        surface: Nearest-hit query for the scene.
        materials: Table the surface's material ids refer to.
        origins: Primary ray origins, shape (N, 3).
        directions: Unit primary ray directions, shape (N, 3).
        wavelengths: Wavelength of each path in nm, shape (N,).
        rng: Random stream of the pixel being rendered.
        bounces: Maximum scatter events per path.
        background: Radiance picked up by rays leaving the scene. None means
            black.
        russian_roulette_depth: Scatter count after which Russian roulette
            applies. None disables it.

    Returns:
        PathResult with one radiance value per path.
    """
    state = PathState.start(origins, directions, wavelengths)

    while True:
        active = state.active()
        if active.size == 0:
            break

        hits = surface.intersect_batch(state.origins[active], state.directions[active])

        # Misses pick up the background and stop
        missed = active[~hits.hit]
        if missed.size:
            if background is not None:
                state.radiance[missed] += state.throughput[missed] * np.asarray(
                    background.evaluate(state.wavelengths[missed])
                )
            state.terminate(missed, PathStatus.MISSED)

        hit_paths = active[hits.hit]
        if hit_paths.size == 0:
            continue

        interaction = scatter_or_emit(
            materials,
            hits.materials[hits.hit],
            state.directions[hit_paths],
            hits.normals[hits.hit],
            state.wavelengths[hit_paths],
            rng.random(hit_paths.size),
        )

        # Emitters
        emitting = interaction.terminated
        emitters = hit_paths[emitting]
        state.radiance[emitters] += state.throughput[emitters] * interaction.emitted[emitting]
        state.terminate(emitters, PathStatus.EMITTED)

        # Scattering surfaces, limited by the bounce budget
        scatter_rows = np.flatnonzero(~emitting)
        scatter_paths = hit_paths[scatter_rows]
        exhausted = state.scatter_count[scatter_paths] >= bounces
        state.terminate(scatter_paths[exhausted], PathStatus.EXHAUSTED)

        scatter_rows = scatter_rows[~exhausted]
        scatter_paths = scatter_paths[~exhausted]
        if scatter_paths.size == 0:
            continue

        new_directions = interaction.directions[scatter_rows]
        hit_points = hits.points[hits.hit][scatter_rows]
        state.throughput[scatter_paths] *= interaction.weights[scatter_rows]
        state.scatter_count[scatter_paths] += 1
        state.directions[scatter_paths] = new_directions
        state.origins[scatter_paths] = offset_ray_origin(
            hit_points, interaction.normals[scatter_rows], new_directions
        )

        absorbed = state.throughput[scatter_paths] <= 0.0
        state.terminate(scatter_paths[absorbed], PathStatus.ABSORBED)

        if russian_roulette_depth is not None:
            _russian_roulette(state, scatter_paths[~absorbed], russian_roulette_depth, rng)

    radiance = state.radiance
    bad = ~np.isfinite(radiance)
    nan_count = int(np.count_nonzero(bad))
    if nan_count:
        radiance = np.where(bad, 0.0, radiance)

    return PathResult(
        radiance=radiance,
        wavelengths=state.wavelengths,
        scatter_count=state.scatter_count,
        status=state.status,
        nan_count=nan_count,
    )


def _russian_roulette(
    state: PathState,
    candidates: npt.NDArray[np.intp],
    depth: int,
    rng: np.random.Generator,
) -> None:
    """Randomly stop deep paths, reweighting the survivors."""
    candidates = candidates[state.scatter_count[candidates] > depth]
    if candidates.size == 0:
        return

    continuation = np.minimum(MAX_CONTINUATION, state.throughput[candidates])
    survive = rng.random(candidates.size) < continuation

    state.terminate(candidates[~survive], PathStatus.ROULETTE)
    state.throughput[candidates[survive]] /= continuation[survive]


class PixelEstimate(NamedTuple):
    """Spectral sums of one pixel.

    Attributes:
        sums: Radiance summed per spectral bin, shape (bins,).
        counts: Paths deposited per spectral bin, shape (bins,).
        nan_count: Paths whose estimate was discarded as non-finite.
    """

    sums: npt.NDArray[np.float64]
    counts: npt.NDArray[np.int64]
    nan_count: int


def render_pixel(
    scene: Scene,
    camera: ThinLensCamera,
    config: RenderConfig,
    x: int,
    y: int,
    rng: np.random.Generator,
) -> PixelEstimate:
    """Trace every path of one pixel and bin the results by wavelength.

    Each of the ``pixel_samples`` camera samples gets its own sub-pixel
    position and lens position; it is traced once per stratified wavelength
    (``spectrum_bins * spectrum_samples`` paths).

    Args:
        scene: The scene to render.
        camera: Camera producing primary rays.
        config: Render configuration.
        x: Pixel column.
        y: Pixel row.
        rng: The pixel's random stream.

    Returns:
        Per-bin radiance sums and path counts.
    """
    bin_count = config.spectrum_bins
    wavelengths, bins = stratified_wavelengths(
        rng,
        config.pixel_samples,
        bin_count,
        config.spectrum_samples,
        config.wavelength_range,
    )

    paths_per_sample = bin_count * config.spectrum_samples
    jitter = rng.random((config.pixel_samples, 2))
    lens = rng.random((config.pixel_samples, 2))

    origins, directions = camera.generate_rays(
        np.repeat(x + jitter[:, 0], paths_per_sample),
        np.repeat(y + jitter[:, 1], paths_per_sample),
        np.repeat(lens[:, 0], paths_per_sample),
        np.repeat(lens[:, 1], paths_per_sample),
    )

    result = trace_paths(
        scene.surface,
        scene.materials,
        origins,
        directions,
        wavelengths,
        rng,
        config.bounces,
        background=scene.background,
        russian_roulette_depth=config.russian_roulette_depth,
    )

    sums = np.bincount(bins, weights=result.radiance, minlength=bin_count)
    counts = np.bincount(bins, minlength=bin_count).astype(np.int64)
    return PixelEstimate(sums=sums, counts=counts, nan_count=result.nan_count)
