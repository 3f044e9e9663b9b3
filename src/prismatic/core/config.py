"""Render configuration.

RenderConfig holds the iteration and termination bounds of a render. It is
immutable for the duration of the render and validated on construction, so
bad values are reported before any pixel work begins.

Example:
    >>> config = RenderConfig(
    ...     pixel_samples=200,
    ...     spectrum_samples=1,
    ...     spectrum_bins=50,
    ...     tile_size=32,
    ...     bounces=256,
    ... )
    >>> config.paths_per_pixel
    10000
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from typing import Any, Optional

from prismatic.core.spectrum import VISIBLE_MAX, VISIBLE_MIN
from prismatic.errors import ConfigurationError


@dataclass(frozen=True)
class RenderConfig:
    """Sampling and scheduling parameters for one render.

    Attributes:
        pixel_samples: Path-integrator samples per pixel.
        spectrum_samples: Wavelength draws per spectral bin per pixel sample.
        spectrum_bins: Number of spectral bins accumulated per pixel.
        tile_size: Edge length of the square tiles, in pixels.
        bounces: Maximum number of scatter events per path.
        workers: Number of worker threads consuming the tile queue.
        seed: Seed of the per-pixel random streams.
        russian_roulette_depth: Scatter count after which paths are
            randomly terminated (unbiased). None disables Russian roulette.
        wavelength_range: (min, max) wavelengths in nm covered by the bins.
    """

    pixel_samples: int = 16
    spectrum_samples: int = 1
    spectrum_bins: int = 50
    tile_size: int = 32
    bounces: int = 8
    workers: int = 1
    seed: int = 0
    russian_roulette_depth: Optional[int] = None
    wavelength_range: tuple[float, float] = (VISIBLE_MIN, VISIBLE_MAX)

    def __post_init__(self) -> None:
        for name in ("pixel_samples", "spectrum_samples", "spectrum_bins", "tile_size", "workers"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{name} must be an integer >= 1, got {value!r}")

        for name in ("bounces", "seed"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigurationError(f"{name} must be an integer >= 0, got {value!r}")

        depth = self.russian_roulette_depth
        if depth is not None and (isinstance(depth, bool) or not isinstance(depth, int) or depth < 0):
            raise ConfigurationError(
                f"russian_roulette_depth must be None or an integer >= 0, got {depth!r}"
            )

        low, high = (float(v) for v in self.wavelength_range)
        if not (math.isfinite(low) and math.isfinite(high)) or not 0.0 < low < high:
            raise ConfigurationError(
                f"wavelength_range must satisfy 0 < min < max, got {self.wavelength_range}"
            )
        object.__setattr__(self, "wavelength_range", (low, high))

    @property
    def paths_per_pixel(self) -> int:
        """Number of wavelength paths traced for every pixel."""
        return self.pixel_samples * self.spectrum_bins * self.spectrum_samples

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["wavelength_range"] = list(self.wavelength_range)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RenderConfig:
        """Build a config from a plain mapping.

        Raises:
            ConfigurationError: On unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown render settings: {', '.join(unknown)}")

        values = dict(data)
        if "wavelength_range" in values:
            values["wavelength_range"] = tuple(values["wavelength_range"])
        return cls(**values)
