"""Signed distance primitives and combinators.

Every primitive maps a position to a signed scalar distance: negative inside,
zero on the surface, positive outside. The magnitude is a conservative lower
bound on the Euclidean distance to the nearest surface point, which is what
makes sphere tracing safe to step by it.

Combinators operate on distances that have already been evaluated, so
composing shapes is a matter of evaluating each primitive at the (possibly
transformed) position and folding the results.

Example:
    >>> @ti.func
    ... def capsule_scene(p: vec3) -> ti.f32:
    ...     a = sdf_sphere(p - vec3(0.0, 0.5, 0.0), 0.5)
    ...     b = sdf_sphere(p + vec3(0.0, 0.5, 0.0), 0.5)
    ...     return sdf_union(a, b)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


# =============================================================================
# Combinators
# =============================================================================


@ti.func
def sdf_union(a: ti.f32, b: ti.f32) -> ti.f32:
    """Union of two shapes: the nearer of the two distances."""
    return ti.min(a, b)


@ti.func
def sdf_difference(a: ti.f32, b: ti.f32) -> ti.f32:
    """Subtract shape ``a`` from shape ``b``."""
    return ti.max(-a, b)


@ti.func
def sdf_intersection(a: ti.f32, b: ti.f32) -> ti.f32:
    """Intersection of two shapes."""
    return ti.max(a, b)


# =============================================================================
# Primitives
# =============================================================================


@ti.func
def sdf_sphere(p: vec3, radius: ti.f32) -> ti.f32:
    """Distance to a sphere of the given radius centered at the origin."""
    return tm.length(p) - radius


@ti.func
def sdf_plane(p: vec3, n: vec3) -> ti.f32:
    """Distance to the plane through the origin with unit normal ``n``.

    Offset ``p`` by a point on the plane to relocate it.
    """
    return tm.dot(p, n)


@ti.func
def mandelbulb(p: vec3, iterations: ti.i32, bail: ti.f32, power: ti.f32) -> ti.f32:
    """Distance estimate to a Mandelbulb fractal.

    Iterates ``z -> z^power + p`` in spherical coordinates while tracking the
    running derivative ``dr``. Iteration stops when the orbit radius exceeds
    ``bail`` or after ``iterations`` steps, and the distance is estimated
    from the escape rate as ``0.5 * log(r) * r / dr``.

    Orbits that never escape use the last radius reached. The estimate is
    then inaccurate near the fractal boundary but still usable for marching.

    Args:
        p: The position to evaluate.
        iterations: Maximum number of escape-time iterations.
        bail: Escape radius.
        power: Exponent of the power transform (8 gives the classic bulb).

    Returns:
        The estimated signed distance.
    """
    z = p
    dr = 1.0
    r = 0.0
    escaped = 0
    for _ in range(iterations):
        if escaped == 0:
            r = tm.length(z)
            if r > bail:
                escaped = 1
            else:
                # convert to polar coordinates
                theta = ti.asin(z.z / r)
                phi = tm.atan2(z.y, z.x)
                dr = r ** (power - 1.0) * power * dr + 1.0

                # scale and rotate the point
                zr = r**power
                theta = theta * power
                phi = phi * power

                # back to cartesian coordinates
                z = zr * vec3(
                    ti.cos(theta) * ti.cos(phi),
                    ti.sin(phi) * ti.cos(theta),
                    ti.sin(theta),
                )
                z += p

    return 0.5 * ti.log(r) * r / dr


# =============================================================================
# Domain Operations
# =============================================================================


@ti.func
def wrap_coordinate(x: ti.f32, period: ti.f32) -> ti.f32:
    """Truncated modulo, matching C ``fmod``: the result keeps the sign of x.

    Tiling scenes rely on this sign behavior and cover negative coordinates
    by also evaluating the negated remainder.
    """
    sign = ti.select(x < 0.0, -1.0, 1.0)
    return x - sign * ti.floor(ti.abs(x) / period) * period
