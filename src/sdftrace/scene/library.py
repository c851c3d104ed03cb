"""Scene compositions built from the distance-field primitives.

Each composition comes as a pair of functions: one returning the signed
distance of the non-ground geometry, and one shared ground plane. Surface
color is decided by comparing the two distances at a point already known to
lie on the surface (see ``pick_color``).

All functions take their geometric parameters explicitly so they stay pure;
``src.sdftrace.scene.manager`` supplies the configured values.
"""

import taichi as ti
import taichi.math as tm

from src.sdftrace.geometry.sdf import (
    mandelbulb,
    sdf_plane,
    sdf_sphere,
    sdf_union,
    wrap_coordinate,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# Distance reported for "no geometry" so unions fall through to the ground
FAR_DISTANCE = 1e10


@ti.func
def ground_distance(p: vec3, height: ti.f32) -> ti.f32:
    """Distance to the horizontal ground plane ``y = height`` (normal +y)."""
    return sdf_plane(p - vec3(0.0, height, 0.0), vec3(0.0, 1.0, 0.0))


@ti.func
def tiled_spheres_distance(p: vec3, period: ti.f32, radius: ti.f32, center_y: ti.f32) -> ti.f32:
    """Distance to an infinite x/z grid of spheres.

    The position is wrapped into one cell with a sign-preserving modulo. The
    four sign combinations of the two wrapped axes are unioned so cells on
    both sides of the origin are covered.

    Args:
        p: The position to evaluate.
        period: Cell size along x and z.
        radius: Sphere radius.
        center_y: Height of the sphere centers.
    """
    half = 0.5 * period
    wx = wrap_coordinate(p.x, period)
    wz = wrap_coordinate(p.z, period)
    y = p.y - center_y

    spheres1 = sdf_sphere(vec3(wx - half, y, wz - half), radius)
    spheres2 = sdf_sphere(vec3(-wx - half, y, wz - half), radius)
    spheres3 = sdf_sphere(vec3(wx - half, y, -wz - half), radius)
    spheres4 = sdf_sphere(vec3(-wx - half, y, -wz - half), radius)

    return sdf_union(sdf_union(sdf_union(spheres1, spheres2), spheres3), spheres4)


@ti.func
def bulb_distance(
    p: vec3, scale: ti.f32, iterations: ti.i32, bail: ti.f32, power: ti.f32
) -> ti.f32:
    """Distance to a Mandelbulb uniformly scaled by ``scale``."""
    return mandelbulb(p / scale, iterations, bail, power) * scale


@ti.func
def single_sphere_distance(p: vec3, center: vec3, radius: ti.f32) -> ti.f32:
    """Distance to one sphere."""
    return sdf_sphere(p - center, radius)


@ti.func
def pick_color(ground: ti.f32, other: ti.f32, ground_color: vec3, other_color: vec3) -> vec3:
    """Choose the albedo of whichever sub-shape is nearer at a surface point."""
    color = other_color
    if ground < other:
        color = ground_color
    return color
