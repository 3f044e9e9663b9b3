"""Per-tile spectral accumulation.

A TileFilm is owned by the single worker rendering its tile, so it needs no
locking. It keeps, for every pixel and spectral bin, the running sum of
radiance and the number of paths deposited. Once all samples are in, the
tile is finalized exactly once: bin means are computed and converted to
XYZ and linear sRGB.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from prismatic.core.color import spectral_to_xyz, xyz_to_linear_srgb
from prismatic.core.tiles import Tile


@dataclass(frozen=True)
class FinishedTile:
    """Final values of one tile.

    Attributes:
        tile: The tile these pixels belong to.
        spectral: Mean radiance per bin, shape (h, w, bins).
        xyz: CIE XYZ per pixel, shape (h, w, 3).
        rgb: Linear sRGB per pixel, shape (h, w, 3).
        nan_samples: Paths discarded as non-finite.
    """

    tile: Tile
    spectral: npt.NDArray[np.float64]
    xyz: npt.NDArray[np.float64]
    rgb: npt.NDArray[np.float64]
    nan_samples: int = 0


class TileFilm:
    """Spectral accumulators for the pixels of one tile.

    Args:
        tile: The tile to accumulate.
        bin_count: Number of spectral bins per pixel.
        wavelength_range: (min, max) wavelengths covered by the bins.
    """

    def __init__(
        self,
        tile: Tile,
        bin_count: int,
        wavelength_range: tuple[float, float],
    ) -> None:
        self.tile = tile
        self.bin_count = bin_count
        self.wavelength_range = wavelength_range
        self.sums = np.zeros((tile.height, tile.width, bin_count))
        self.counts = np.zeros((tile.height, tile.width, bin_count), dtype=np.int64)
        self.nan_samples = 0
        self._finished = False

    def deposit(
        self,
        x: int,
        y: int,
        sums: npt.NDArray[np.float64],
        counts: npt.NDArray[np.int64],
    ) -> None:
        """Add per-bin radiance sums and path counts to pixel (x, y).

        Coordinates are image coordinates; they must lie inside the tile.
        """
        if self._finished:
            raise RuntimeError(f"Tile {self.tile.index} is already finalized")
        row = y - self.tile.y0
        col = x - self.tile.x0
        self.sums[row, col] += sums
        self.counts[row, col] += counts

    def mean(self) -> npt.NDArray[np.float64]:
        """Mean radiance per pixel and bin. Bins without samples are zero."""
        return np.divide(
            self.sums,
            self.counts,
            out=np.zeros_like(self.sums),
            where=self.counts > 0,
        )

    def finalize(self) -> FinishedTile:
        """Convert the accumulated spectra to color. Can only be called once."""
        if self._finished:
            raise RuntimeError(f"Tile {self.tile.index} is already finalized")
        self._finished = True

        spectral = self.mean()
        xyz = spectral_to_xyz(spectral, self.wavelength_range)
        return FinishedTile(
            tile=self.tile,
            spectral=spectral,
            xyz=xyz,
            rgb=xyz_to_linear_srgb(xyz),
            nan_samples=self.nan_samples,
        )
