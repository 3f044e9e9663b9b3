"""Core rendering module.

Components:
    spectrum: Spectral functions (constant, sampled, blackbody, D65)
    color: CIE 1931 matching functions, XYZ / sRGB conversion and RGB spectra
    ray: Ray type and batched vector helpers (reflect, refract, Fresnel)
    sampling: Per-pixel random streams and stratified wavelength sampling
    config: RenderConfig with validated iteration and termination bounds
    tiles: Image partitioning into tiles
    film: Per-tile spectral accumulation
    integrator: Spectral path tracing state machine
    renderer: Tile-parallel scheduler with retry and cancellation
    backend: Taichi runtime selection
"""

from .color import (
    RgbSpectrum,
    bin_weights,
    cie_xyz,
    linear_to_srgb,
    rgb_responses,
    spectral_to_linear_srgb,
    spectral_to_xyz,
    srgb_to_linear,
    xyz_to_linear_srgb,
)
from .config import RenderConfig
from .film import FinishedTile, TileFilm
from .ray import Ray, dot, length, normalize, offset_ray_origin, reflect, refract, schlick_fresnel
from .sampling import concentric_disk, pixel_rng, stratified_wavelengths, wavelength_bins
from .spectrum import (
    VISIBLE_MAX,
    VISIBLE_MIN,
    VISIBLE_RANGE,
    BlackbodySpectrum,
    ConstantSpectrum,
    MixedSpectrum,
    SampledSpectrum,
    ScaledSpectrum,
    Spectrum,
    d65,
    mix,
)
from .tiles import Tile, make_tiles

# Note: integrator and renderer are NOT imported here to avoid circular imports
# (materials depends on core.ray and core.spectrum). Import them directly:
#   from prismatic.core.renderer import TileRenderer

__all__ = [
    # Spectrum
    "Spectrum",
    "ConstantSpectrum",
    "SampledSpectrum",
    "ScaledSpectrum",
    "MixedSpectrum",
    "BlackbodySpectrum",
    "d65",
    "mix",
    "VISIBLE_MIN",
    "VISIBLE_MAX",
    "VISIBLE_RANGE",
    # Color
    "cie_xyz",
    "bin_weights",
    "spectral_to_xyz",
    "xyz_to_linear_srgb",
    "linear_to_srgb",
    "srgb_to_linear",
    "spectral_to_linear_srgb",
    "RgbSpectrum",
    "rgb_responses",
    # Ray
    "Ray",
    "dot",
    "length",
    "normalize",
    "reflect",
    "refract",
    "schlick_fresnel",
    "offset_ray_origin",
    # Sampling
    "pixel_rng",
    "stratified_wavelengths",
    "wavelength_bins",
    "concentric_disk",
    # Config and tiles
    "RenderConfig",
    "Tile",
    "make_tiles",
    "TileFilm",
    "FinishedTile",
]
