"""Sphere tracing against the active distance-field scene.

The marcher walks a ray through the scene by repeatedly stepping the current
distance bound. Because every scene distance is a conservative lower bound,
a step never passes through the nearest surface. The cost is slow
convergence for rays that graze a silhouette; there is no iteration cap
beyond the ray's travel distance.

The length of the ray direction is the maximum travel distance. A march ends
either with a hit (distance below the hit threshold) or a miss (travel
distance exhausted).

Example:
    >>> @ti.kernel
    ... def probe() -> ti.i32:
    ...     rec = march(vec3(0.0, 5.0, 0.0), vec3(0.0, -20.0, 0.0))
    ...     return rec.hit
"""

import taichi as ti
import taichi.math as tm

from src.sdftrace.core.ray import dot, length, near_zero, normalize
from src.sdftrace.scene.manager import scene_color, scene_distance

# Type alias for 3D vectors
vec3 = tm.vec3

# Default hit threshold and finite-difference step
DEFAULT_MIN_DIST = 1e-3
DEFAULT_NORMAL_EPS = 1e-3

_min_dist = ti.field(dtype=ti.f32, shape=())
_normal_eps = ti.field(dtype=ti.f32, shape=())


@ti.dataclass
class HitRecord:
    """Result of marching one ray.

    Attributes:
        hit: 1 if the ray reached a surface, 0 if it ran out of distance.
        point: The position where the hit threshold was crossed.
            Only valid if hit == 1.
        normal: Unit surface normal facing the incoming ray.
            Only valid if hit == 1.
        color: Surface albedo at the hit point. Only valid if hit == 1.
    """

    hit: ti.i32
    point: vec3
    normal: vec3
    color: vec3


def set_march_tolerances(
    min_dist: float = DEFAULT_MIN_DIST,
    normal_eps: float = DEFAULT_NORMAL_EPS,
) -> None:
    """Configure the hit threshold and the normal finite-difference step.

    Both values are relative to scene scale. A threshold that is too large
    flattens fine detail; one that is too small causes surface pitting from
    rays that stall near a surface.

    Args:
        min_dist: Distance below which a march reports a hit.
        normal_eps: Offset used for central differences in estimate_normal.

    Raises:
        ValueError: If either value is not positive.
    """
    if min_dist <= 0.0:
        raise ValueError(f"min_dist must be positive, got {min_dist}")
    if normal_eps <= 0.0:
        raise ValueError(f"normal_eps must be positive, got {normal_eps}")
    _min_dist[None] = min_dist
    _normal_eps[None] = normal_eps


def get_march_tolerances() -> tuple[float, float]:
    """Get the configured (min_dist, normal_eps)."""
    return float(_min_dist[None]), float(_normal_eps[None])


@ti.func
def _make_miss_record() -> HitRecord:
    return HitRecord(
        hit=0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        color=vec3(0.0, 0.0, 0.0),
    )


@ti.func
def estimate_normal(pos: vec3, direction: vec3, t: ti.f32) -> vec3:
    """Estimate the surface normal at a hit point by central differences.

    Each partial derivative is ``(f(p + eps) - f(p - eps)) / (2 * eps)``
    minus the residual distance ``t`` at the hit point. The result is
    normalized and flipped, if needed, to face the incoming ray.

    Args:
        pos: A point within the hit threshold of the surface.
        direction: The direction of the ray that hit the surface.
        t: The scene distance at ``pos``.

    Returns:
        A unit normal with ``dot(-direction, normal) >= 0``.
    """
    eps = _normal_eps[None]
    ex = vec3(eps, 0.0, 0.0)
    ey = vec3(0.0, eps, 0.0)
    ez = vec3(0.0, 0.0, eps)

    n = vec3(
        (scene_distance(pos + ex) - scene_distance(pos - ex)) / (2.0 * eps) - t,
        (scene_distance(pos + ey) - scene_distance(pos - ey)) / (2.0 * eps) - t,
        (scene_distance(pos + ez) - scene_distance(pos - ez)) / (2.0 * eps) - t,
    )
    n = normalize(n)

    if dot(-direction, n) < 0.0:
        n = -n
    return n


@ti.func
def march(origin: vec3, direction: vec3) -> HitRecord:
    """March a ray through the active scene.

    Args:
        origin: The starting point of the ray.
        direction: The ray direction; its length is the maximum travel
            distance. Near-zero directions are reported as misses.

    Returns:
        A HitRecord for the first surface within range, or a miss record.
    """
    result = _make_miss_record()

    if near_zero(direction) == 0:
        max_distance = length(direction)
        unit = direction / max_distance
        min_dist = _min_dist[None]

        travelled = 0.0
        pos = origin
        found = 0
        while travelled < max_distance and found == 0:
            t = scene_distance(pos)
            if t < min_dist:
                found = 1
                result = HitRecord(
                    hit=1,
                    point=pos,
                    normal=estimate_normal(pos, direction, t),
                    color=scene_color(pos),
                )
            else:
                travelled += t
                pos += t * unit

    return result
