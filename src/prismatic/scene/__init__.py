"""Scene description and ray-scene queries.

Components:
    surface: SceneSurface protocol and hit records
    objects: Sphere, quad and mesh geometry with named surface groups
    intersection: Taichi-backed nearest-hit queries (PrimitiveSurface)
    builder: SceneBuilder and the immutable Scene
    presets: Ready-made scenes (emitter wall, mirror box, prism)
"""

from .builder import Scene, SceneBuilder, SurfaceFactory
from .intersection import T_MAX, T_MIN, PrimitiveSurface
from .objects import (
    DEFAULT_GROUP,
    Geometry,
    MeshGeometry,
    QuadGeometry,
    SceneObject,
    SphereGeometry,
)
from .presets import (
    PrismSceneParams,
    emitter_wall_scene,
    mirror_box_scene,
    prism_scene,
    triangular_prism,
)
from .surface import NO_HIT, Hit, HitBatch, SceneSurface

__all__ = [
    # Surface queries
    "SceneSurface",
    "Hit",
    "HitBatch",
    "NO_HIT",
    "PrimitiveSurface",
    "T_MIN",
    "T_MAX",
    # Objects
    "Geometry",
    "SphereGeometry",
    "QuadGeometry",
    "MeshGeometry",
    "SceneObject",
    "DEFAULT_GROUP",
    # Builder
    "Scene",
    "SceneBuilder",
    "SurfaceFactory",
    # Presets
    "PrismSceneParams",
    "emitter_wall_scene",
    "mirror_box_scene",
    "prism_scene",
    "triangular_prism",
]
