"""Cosine-weighted hemisphere sampling for diffuse bounces.

Directions are drawn with density proportional to the cosine of the angle
from the surface normal (Malley's method): a point is drawn uniformly in the
unit disk and lifted onto the hemisphere. With this distribution the
Lambertian reflectance integral is estimated by a plain average, so the
integrator never divides by a pdf.

All draws come from an explicit per-task stream (see ``core.rng``); each
function returns the advanced stream state first.
"""

import taichi as ti
import taichi.math as tm

from src.sdftrace.core.ray import build_onb_from_normal, local_to_world, normalize
from src.sdftrace.core.rng import next_signed

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def random_in_unit_disk(state: ti.u32):
    """Draw a point uniformly from the unit disk by rejection sampling.

    Pairs of uniforms in [-1, 1) are redrawn while they fall outside the
    disk, about 4/pi pairs per accepted point on average.

    Args:
        state: The task's random stream.

    Returns:
        A tuple (state, x, y) with x^2 + y^2 <= 1.
    """
    s = state
    x = 1.0
    y = 1.0
    accepted = 0
    while accepted == 0:
        s, x = next_signed(s)
        s, y = next_signed(s)
        if x * x + y * y <= 1.0:
            accepted = 1
    return s, x, y


@ti.func
def sample_cosine_hemisphere(normal: vec3, state: ti.u32):
    """Sample a cosine-weighted direction about a normal.

    Args:
        normal: The surface normal (should be normalized).
        state: The task's random stream.

    Returns:
        A tuple (state, direction) where direction is a unit vector with a
        non-negative dot product with ``normal``.
    """
    s, x, y = random_in_unit_disk(state)
    z = ti.sqrt(ti.max(0.0, 1.0 - x * x - y * y))

    tangent, bitangent, n = build_onb_from_normal(normal)
    direction = normalize(local_to_world(vec3(x, y, z), tangent, bitangent, n))
    return s, direction
