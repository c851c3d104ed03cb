"""Scene module: distance-field scene compositions and selection.

Components:
    library: Pure scene compositions (tiled spheres, Mandelbulb, single
        sphere, ground plane) and color selection
    manager: SceneKind / SceneConfig, scene parameter fields, and the
        scene_distance / scene_color capabilities used by the marcher
"""

from .library import (
    FAR_DISTANCE,
    bulb_distance,
    ground_distance,
    pick_color,
    single_sphere_distance,
    tiled_spheres_distance,
)
from .manager import (
    DEFAULT_COLORS,
    SceneConfig,
    SceneKind,
    get_scene_kind,
    scene_color,
    scene_distance,
    setup_scene,
)

__all__ = [
    # Library module
    "FAR_DISTANCE",
    "ground_distance",
    "tiled_spheres_distance",
    "bulb_distance",
    "single_sphere_distance",
    "pick_color",
    # Manager module
    "SceneKind",
    "SceneConfig",
    "DEFAULT_COLORS",
    "setup_scene",
    "get_scene_kind",
    "scene_distance",
    "scene_color",
]
