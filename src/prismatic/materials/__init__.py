"""Material models for spectral light transport.

The material set is closed: every surface is one of

    Refractive: dispersive dielectric with Fresnel-sampled refraction
    Mirror: specular reflector with a Fresnel-blended reflectance
    Emission: light source that terminates the path

Each variant is an immutable dataclass tagged with a MaterialKind. Rays are
shaded in batches through the single :func:`scatter_or_emit` entry point,
which groups hits by material id and dispatches on the kind tag.

Parameters are validated on construction; out-of-domain values (negative
IOR, reflectance above 1, negative emission) raise ConfigurationError before
any rendering starts.
"""

from .base import MaterialKind, clamp_weights
from .dispatch import MAX_MATERIALS, Interaction, Material, MaterialTable, scatter_or_emit
from .emission import Emission
from .mirror import Mirror, scatter_mirror
from .refractive import Refractive, cauchy_term, fresnel_reflectance, scatter_refractive

__all__ = [
    "MaterialKind",
    "Material",
    "MaterialTable",
    "MAX_MATERIALS",
    "Interaction",
    "scatter_or_emit",
    "clamp_weights",
    # Refractive
    "Refractive",
    "cauchy_term",
    "fresnel_reflectance",
    "scatter_refractive",
    # Mirror
    "Mirror",
    "scatter_mirror",
    # Emission
    "Emission",
]
