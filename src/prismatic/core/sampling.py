"""Random streams and sample placement.

Every pixel draws from its own generator, seeded from (seed, x, y). The n-th
path of a pixel always consumes the same stretch of that stream, so the image
is reproducible bit for bit regardless of tile size, worker count, or the
order in which tiles finish.

Wavelengths are stratified over the spectral bins: each pixel sample draws
``spectrum_samples`` wavelengths uniformly inside every bin.
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt


def pixel_rng(seed: int, x: int, y: int) -> np.random.Generator:
    """Deterministic generator for one pixel.

    Args:
        seed: Render seed (>= 0).
        x: Pixel column.
        y: Pixel row.

    Returns:
        A PCG64-backed generator owned by whoever renders this pixel.
    """
    return np.random.default_rng(np.random.SeedSequence([seed, x, y]))


def stratified_wavelengths(
    rng: np.random.Generator,
    pixel_samples: int,
    bin_count: int,
    per_bin: int,
    wavelength_range: tuple[float, float],
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.int64]]:
    """Draw wavelengths stratified across spectral bins.

    Args:
        rng: Generator to draw from.
        pixel_samples: Number of pixel samples.
        bin_count: Number of spectral bins.
        per_bin: Wavelength draws per bin per pixel sample.
        wavelength_range: (min, max) wavelengths in nm.

    Returns:
        Tuple of (wavelengths, bins), both flat arrays of length
        ``pixel_samples * bin_count * per_bin``, ordered by pixel sample,
        then bin, then draw.
    """
    low, high = wavelength_range
    width = (high - low) / bin_count

    bins = np.broadcast_to(
        np.arange(bin_count)[None, :, None], (pixel_samples, bin_count, per_bin)
    ).reshape(-1)
    jitter = rng.random(bins.shape[0])

    wavelengths = low + (bins + jitter) * width
    # Keep the top edge inside the last bin
    wavelengths = np.minimum(wavelengths, np.nextafter(high, low))
    return wavelengths, bins.astype(np.int64)


def wavelength_bins(
    wavelengths: npt.NDArray[np.float64],
    bin_count: int,
    wavelength_range: tuple[float, float],
) -> npt.NDArray[np.int64]:
    """Index of the spectral bin each wavelength falls in."""
    low, high = wavelength_range
    index = np.floor((wavelengths - low) / (high - low) * bin_count).astype(np.int64)
    return np.clip(index, 0, bin_count - 1)


def concentric_disk(
    u: npt.ArrayLike,
    v: npt.ArrayLike,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Map points of the unit square onto the unit disk (Shirley-Chiu).

    The mapping preserves relative area and stratification. (0.5, 0.5) maps
    to the disk center.

    Args:
        u: First coordinate in [0, 1).
        v: Second coordinate in [0, 1).

    Returns:
        Tuple of (x, y) on the unit disk.
    """
    a = 2.0 * np.asarray(u, dtype=np.float64) - 1.0
    b = 2.0 * np.asarray(v, dtype=np.float64) - 1.0

    horizontal = np.abs(a) > np.abs(b)
    radius = np.where(horizontal, a, b)
    with np.errstate(invalid="ignore", divide="ignore"):
        phi = np.where(
            horizontal,
            (np.pi / 4.0) * (b / a),
            (np.pi / 2.0) - (np.pi / 4.0) * (a / b),
        )
    center = (a == 0.0) & (b == 0.0)
    phi = np.where(center, 0.0, phi)
    radius = np.where(center, 0.0, radius)
    return radius * np.cos(phi), radius * np.sin(phi)
