"""Pinhole camera for primary ray generation.

The camera is described by a position, a look-at target, a horizontal field
of view and the maximum distance a ray may travel. ``setup_camera`` derives
an orthonormal basis on the Python side and stores it in Taichi fields:
- forward: unit vector from position toward target
- side: points right in the image plane
- up: points up in the image plane

Primary ray directions are scaled to ``max_ray_distance`` because the
marcher reads the travel limit from the direction's length.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from src.sdftrace.camera.pinhole import CameraConfig, setup_camera
    >>> setup_camera(CameraConfig(position=(0.0, 0.0, 5.0), target=(0.0, 0.0, 0.0)))
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from src.sdftrace.core.ray import Ray, make_ray, vec3

# Alternative up vectors used when the view direction is parallel to world_up
_FALLBACK_UPS = ((0.0, 0.0, -1.0), (1.0, 0.0, 0.0))


# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class CameraConfig:
    """Configuration for the pinhole camera.

    Attributes:
        position: Camera position in world space (x, y, z).
        target: Point the camera looks at in world space (x, y, z).
        fov: Horizontal field of view in degrees, in (0, 180).
        max_ray_distance: Maximum distance any ray may travel.
        world_up: Up direction used to orient the image plane.
    """

    position: tuple[float, float, float] = (0.0, 1.0, 6.0)
    target: tuple[float, float, float] = (0.0, -1.0, 0.0)
    fov: float = 60.0
    max_ray_distance: float = 30.0
    world_up: tuple[float, float, float] = (0.0, 1.0, 0.0)

    def validate(self) -> None:
        """Check the camera parameters.

        Raises:
            ValueError: If position and target coincide, the field of view is
                outside (0, 180) degrees, or the ray distance is not positive.
        """
        offset = np.asarray(self.target, dtype=np.float64) - np.asarray(
            self.position, dtype=np.float64
        )
        if np.linalg.norm(offset) < 1e-8:
            raise ValueError("Camera position and target must differ")
        if not 0.0 < self.fov < 180.0:
            raise ValueError(f"Field of view must be in (0, 180) degrees, got {self.fov}")
        if self.max_ray_distance <= 0.0:
            raise ValueError(
                f"max_ray_distance must be positive, got {self.max_ray_distance}"
            )


# =============================================================================
# Taichi Fields for Camera State (GPU-accessible)
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_forward = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_side = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_up = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_half_fov = ti.field(dtype=ti.f32, shape=())
_camera_max_distance = ti.field(dtype=ti.f32, shape=())


def _camera_basis(config: CameraConfig) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Compute (forward, side, up) for a camera configuration."""
    position = np.array(config.position, dtype=np.float64)
    target = np.array(config.target, dtype=np.float64)

    forward = target - position
    forward = forward / np.linalg.norm(forward)

    side = np.zeros(3)
    for candidate in (config.world_up, *_FALLBACK_UPS):
        side = np.cross(forward, np.array(candidate, dtype=np.float64))
        if np.linalg.norm(side) > 1e-6:
            break
    side = side / np.linalg.norm(side)

    up = np.cross(side, forward)
    return forward, side, up


def setup_camera(config: CameraConfig) -> None:
    """Initialize camera state from configuration.

    Must be called before rendering. Writes to Taichi fields, so call it
    from Python (not from within a kernel).

    Args:
        config: Camera position, target, field of view and ray distance.

    Raises:
        ValueError: If the configuration is invalid.
    """
    config.validate()
    forward, side, up = _camera_basis(config)

    _camera_origin[None] = list(config.position)
    _camera_forward[None] = forward.tolist()
    _camera_side[None] = side.tolist()
    _camera_up[None] = up.tolist()
    _camera_half_fov[None] = math.tan(math.radians(config.fov) / 2.0)
    _camera_max_distance[None] = config.max_ray_distance


# =============================================================================
# Ray Generation (Taichi-compatible, GPU-callable)
# =============================================================================


@ti.func
def camera_ray_direction(px: ti.f32, py: ti.f32, width: ti.i32, height: ti.i32) -> vec3:
    """World-space ray direction through a sub-pixel position.

    Pixel coordinates run left to right and top to bottom. They map to
    device coordinates in [-1, 1], with y flipped and scaled by
    height / width so pixels stay square.

    Args:
        px: Horizontal position in pixels (may be fractional).
        py: Vertical position in pixels, 0 at the top row.
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        A direction whose length is the camera's maximum ray distance.
    """
    w = ti.cast(width, ti.f32)
    h = ti.cast(height, ti.f32)
    u = 2.0 * px / w - 1.0
    v = -(2.0 * py / h - 1.0) * h / w

    offset = (u * _camera_side[None] + v * _camera_up[None]) * _camera_half_fov[None]
    return tm.normalize(_camera_forward[None] + offset) * _camera_max_distance[None]


@ti.func
def get_primary_ray(px: ti.f32, py: ti.f32, width: ti.i32, height: ti.i32) -> Ray:
    """Primary ray from the camera through a sub-pixel position."""
    return make_ray(_camera_origin[None], camera_ray_direction(px, py, width, height))


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float] | float]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, forward, side, up, half_fov and max_distance.
    """

    def _vec(field: "ti.MatrixField") -> tuple[float, float, float]:
        value = field[None]
        return (float(value[0]), float(value[1]), float(value[2]))

    return {
        "origin": _vec(_camera_origin),
        "forward": _vec(_camera_forward),
        "side": _vec(_camera_side),
        "up": _vec(_camera_up),
        "half_fov": float(_camera_half_fov[None]),
        "max_distance": float(_camera_max_distance[None]),
    }
