"""Ray data structure and vector utilities for GPU-accelerated sphere tracing.

This module provides the fundamental Ray dataclass and the vector helpers used
throughout the marcher, normal estimator and hemisphere sampler. All
operations are designed to work within Taichi kernels.

Unlike analytic ray tracing, the direction of a marched ray is not normalized:
its length encodes the maximum distance the ray may travel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -20.0)  # travels at most 20 units
    >>> ray = Ray(origin=origin, direction=direction)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and a range-encoding direction.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Its length is the
            maximum travel distance used by the marcher.
    """

    origin: vec3
    direction: vec3


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector, scaled to the maximum travel distance.

    Returns:
        A new Ray instance.
    """
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length."""
    return tm.normalize(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product of two vectors."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product of two vectors."""
    return tm.cross(a, b)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Used to detect degenerate ray directions before marching.

    Args:
        v: The vector to check.

    Returns:
        1 if all components are near zero, 0 otherwise.
    """
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


# =============================================================================
# Orthonormal Basis
# =============================================================================


@ti.func
def smallest_axis(normal: vec3) -> vec3:
    """Return the coordinate axis of the smallest-magnitude component.

    Ties are resolved in x, y, z order. For a unit normal the selected
    component is at most 1/sqrt(3), so the axis is never parallel to it.

    Args:
        normal: The surface normal (should be normalized).

    Returns:
        A unit coordinate axis (1, 0, 0), (0, 1, 0) or (0, 0, 1).
    """
    ax = ti.abs(normal.x)
    ay = ti.abs(normal.y)
    az = ti.abs(normal.z)
    axis = vec3(0.0, 0.0, 1.0)
    if ax <= ay and ax <= az:
        axis = vec3(1.0, 0.0, 0.0)
    elif ay <= az:
        axis = vec3(0.0, 1.0, 0.0)
    return axis


@ti.func
def build_onb_from_normal(normal: vec3):
    """Build an orthonormal basis from a normal vector.

    Creates a local coordinate frame where the normal is the z-axis. The
    reference axis is the one least aligned with the normal so the cross
    products stay well conditioned.

    Args:
        normal: The surface normal (should be normalized).

    Returns:
        A tuple (tangent, bitangent, normal) forming an orthonormal basis.
    """
    a = smallest_axis(normal)
    tangent = normalize(cross(a, normal))
    bitangent = cross(normal, tangent)
    return tangent, bitangent, normal


@ti.func
def local_to_world(local_dir: vec3, tangent: vec3, bitangent: vec3, normal: vec3) -> vec3:
    """Transform a direction from local to world coordinates.

    Args:
        local_dir: Direction in local coordinates (z-up).
        tangent: The x-axis of the local frame in world coordinates.
        bitangent: The y-axis of the local frame in world coordinates.
        normal: The z-axis of the local frame in world coordinates.

    Returns:
        The direction in world coordinates.
    """
    return local_dir.x * tangent + local_dir.y * bitangent + local_dir.z * normal
