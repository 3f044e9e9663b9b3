"""Spectral Monte Carlo path tracer.

Every path carries a single wavelength, so dispersion and wavelength-dependent
reflectance are modelled directly in the spectral domain. Pixels accumulate
radiance into spectral bins that are converted to CIE XYZ and sRGB when a
tile finishes.

Subpackages:
    core: Spectra, color conversion, integrator and tile renderer
    geometry: Taichi intersection routines for spheres, quads and triangles
    materials: Refractive, mirror and emission material models
    camera: Thin-lens camera with depth of field
    scene: Scene building, presets and nearest-hit queries
    preview: Tone mapping and PNG export
"""

__version__ = "0.1.0"
