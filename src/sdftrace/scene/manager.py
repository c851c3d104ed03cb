"""Scene selection and parameter storage.

Scenes are a tagged variant: ``SceneKind`` names the composition and
``setup_scene`` writes the tag and its parameters to Taichi fields. The two
scene capabilities, ``scene_distance`` and ``scene_color``, dispatch on the
tag inside kernels, so switching scenes is a configuration change rather
than a code change.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from src.sdftrace.scene.manager import SceneConfig, SceneKind, setup_scene
    >>> setup_scene(SceneConfig(kind=SceneKind.MANDELBULB))
"""

from dataclasses import dataclass
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from src.sdftrace.geometry.sdf import sdf_union
from src.sdftrace.scene.library import (
    FAR_DISTANCE,
    bulb_distance,
    ground_distance,
    pick_color,
    single_sphere_distance,
    tiled_spheres_distance,
)

# Type alias for 3D vectors
vec3 = tm.vec3

Color = tuple[float, float, float]


class SceneKind(IntEnum):
    """Enumeration of the available scene compositions."""

    TILED_SPHERES = 0
    MANDELBULB = 1
    GROUND_PLANE = 2
    SPHERE_ON_PLANE = 3


# (ground color, object color) per scene kind
DEFAULT_COLORS: dict[SceneKind, tuple[Color, Color]] = {
    SceneKind.TILED_SPHERES: ((1.0, 0.3, 0.1), (0.85, 0.85, 0.85)),
    SceneKind.MANDELBULB: ((0.85, 0.85, 0.85), (0.85, 1.0, 0.0)),
    SceneKind.GROUND_PLANE: ((0.85, 0.85, 0.85), (0.0, 0.0, 0.0)),
    SceneKind.SPHERE_ON_PLANE: ((0.85, 0.85, 0.85), (0.8, 0.3, 0.3)),
}


@dataclass
class SceneConfig:
    """Configuration for the active scene.

    Attributes:
        kind: Which composition to render.
        ground_height: Height of the ground plane.
        ground_color: Ground albedo. None selects the default for ``kind``.
        object_color: Albedo of the non-ground geometry. None selects the
            default for ``kind``.
        sphere_center: Sphere center for SPHERE_ON_PLANE.
        sphere_radius: Sphere radius for SPHERE_ON_PLANE.
        tile_period: Grid cell size for TILED_SPHERES.
        tile_radius: Sphere radius for TILED_SPHERES.
        tile_height: Height of the sphere centers for TILED_SPHERES.
        bulb_scale: Uniform scale of the Mandelbulb.
        bulb_iterations: Escape-time iteration budget.
        bulb_bail: Escape radius.
        bulb_power: Power of the Mandelbulb transform.
    """

    kind: SceneKind = SceneKind.TILED_SPHERES
    ground_height: float = -2.0
    ground_color: Color | None = None
    object_color: Color | None = None
    sphere_center: tuple[float, float, float] = (0.0, -1.0, 0.0)
    sphere_radius: float = 1.0
    tile_period: float = 2.0
    tile_radius: float = 0.5
    tile_height: float = -1.5
    bulb_scale: float = 2.3
    bulb_iterations: int = 8
    bulb_bail: float = 4.0
    bulb_power: float = 8.0

    def resolved_colors(self) -> tuple[Color, Color]:
        """Return (ground color, object color) with defaults filled in."""
        default_ground, default_object = DEFAULT_COLORS[SceneKind(self.kind)]
        ground = self.ground_color if self.ground_color is not None else default_ground
        other = self.object_color if self.object_color is not None else default_object
        return ground, other

    def validate(self) -> None:
        """Check the parameters.

        Raises:
            ValueError: If the kind is unknown or a size parameter is invalid.
        """
        try:
            SceneKind(self.kind)
        except ValueError as e:
            raise ValueError(f"Unknown scene kind: {self.kind!r}") from e
        if self.sphere_radius <= 0.0:
            raise ValueError(f"sphere_radius must be positive, got {self.sphere_radius}")
        if self.tile_period <= 0.0:
            raise ValueError(f"tile_period must be positive, got {self.tile_period}")
        if self.tile_radius <= 0.0:
            raise ValueError(f"tile_radius must be positive, got {self.tile_radius}")
        if self.bulb_scale <= 0.0:
            raise ValueError(f"bulb_scale must be positive, got {self.bulb_scale}")
        if self.bulb_iterations < 1:
            raise ValueError(f"bulb_iterations must be at least 1, got {self.bulb_iterations}")
        if self.bulb_bail <= 0.0:
            raise ValueError(f"bulb_bail must be positive, got {self.bulb_bail}")


# =============================================================================
# Taichi Fields for Scene State
# =============================================================================

_scene_kind = ti.field(dtype=ti.i32, shape=())
_ground_height = ti.field(dtype=ti.f32, shape=())
_ground_color = ti.Vector.field(3, dtype=ti.f32, shape=())
_object_color = ti.Vector.field(3, dtype=ti.f32, shape=())

_sphere_center = ti.Vector.field(3, dtype=ti.f32, shape=())
_sphere_radius = ti.field(dtype=ti.f32, shape=())

_tile_period = ti.field(dtype=ti.f32, shape=())
_tile_radius = ti.field(dtype=ti.f32, shape=())
_tile_height = ti.field(dtype=ti.f32, shape=())

_bulb_scale = ti.field(dtype=ti.f32, shape=())
_bulb_iterations = ti.field(dtype=ti.i32, shape=())
_bulb_bail = ti.field(dtype=ti.f32, shape=())
_bulb_power = ti.field(dtype=ti.f32, shape=())


def setup_scene(config: SceneConfig) -> None:
    """Validate a scene configuration and make it the active scene.

    Args:
        config: The scene to activate.

    Raises:
        ValueError: If the configuration is invalid.
    """
    config.validate()
    ground_color, object_color = config.resolved_colors()

    _scene_kind[None] = int(config.kind)
    _ground_height[None] = config.ground_height
    _ground_color[None] = list(ground_color)
    _object_color[None] = list(object_color)

    _sphere_center[None] = list(config.sphere_center)
    _sphere_radius[None] = config.sphere_radius

    _tile_period[None] = config.tile_period
    _tile_radius[None] = config.tile_radius
    _tile_height[None] = config.tile_height

    _bulb_scale[None] = config.bulb_scale
    _bulb_iterations[None] = config.bulb_iterations
    _bulb_bail[None] = config.bulb_bail
    _bulb_power[None] = config.bulb_power


def get_scene_kind() -> SceneKind:
    """Get the active scene kind."""
    return SceneKind(int(_scene_kind[None]))


# =============================================================================
# Scene Capabilities (Taichi-side)
# =============================================================================


@ti.func
def _object_distance(p: vec3) -> ti.f32:
    """Distance to the non-ground geometry of the active scene."""
    kind = _scene_kind[None]
    d = FAR_DISTANCE

    if kind == int(SceneKind.TILED_SPHERES):
        d = tiled_spheres_distance(p, _tile_period[None], _tile_radius[None], _tile_height[None])

    elif kind == int(SceneKind.MANDELBULB):
        d = bulb_distance(
            p, _bulb_scale[None], _bulb_iterations[None], _bulb_bail[None], _bulb_power[None]
        )

    elif kind == int(SceneKind.SPHERE_ON_PLANE):
        d = single_sphere_distance(p, _sphere_center[None], _sphere_radius[None])

    return d


@ti.func
def scene_distance(p: vec3) -> ti.f32:
    """Signed distance from ``p`` to the active scene."""
    return sdf_union(_object_distance(p), ground_distance(p, _ground_height[None]))


@ti.func
def scene_color(p: vec3) -> vec3:
    """Surface albedo of the active scene at a point on its surface."""
    ground = ground_distance(p, _ground_height[None])
    return pick_color(ground, _object_distance(p), _ground_color[None], _object_color[None])
