"""Path tracing integrator for sphere-traced distance fields.

This module implements the light transport for one ray and the per-pixel
sampling loop built on top of it:

    - Diffuse (Lambertian) bounces with cosine-weighted sampling
    - Constant ambient sky reached by rays that escape after a bounce
    - Fixed bounce budget (paths that never escape contribute nothing)
    - Stratified, jittered sub-pixel sampling for anti-aliasing
    - Deterministic per-pixel random streams

Each pixel is an independent task. Its random stream is seeded from the
render seed and the pixel's linear index, and is threaded through every
sub-sample and every bounce of that pixel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from src.sdftrace.core.integrator import setup_tracer, render_single_pixel
    >>> setup_tracer()
    >>> color = render_single_pixel(32, 32, 64, 64, seed=7, samples_per_axis=2, bounces=2)
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

from src.sdftrace.camera.pinhole import get_primary_ray
from src.sdftrace.core.marcher import (
    DEFAULT_MIN_DIST,
    DEFAULT_NORMAL_EPS,
    march,
    set_march_tolerances,
)
from src.sdftrace.core.rng import next_float, seed_stream
from src.sdftrace.core.sampling import sample_cosine_hemisphere

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Offset of a bounced ray's origin along the surface normal
DEFAULT_PUSH_DISTANCE = 1e-2

# Radiance of the ambient sky
DEFAULT_SKY_COLOR = (1.0, 1.0, 1.0)

# Color written for pixels whose estimate is NaN or infinite
SENTINEL_COLOR = vec3(1.0, 0.0, 1.0)


class PathState(IntEnum):
    """States of a path during integration."""

    TRACING = 0
    HIT = 1
    ESCAPED = 2
    TERMINATED = 3


# =============================================================================
# Tracer Configuration
# =============================================================================

_push_distance = ti.field(dtype=ti.f32, shape=())
_sky_color = ti.Vector.field(3, dtype=ti.f32, shape=())

# Number of pixels replaced by SENTINEL_COLOR in the last dispatch
_nonfinite_count = ti.field(dtype=ti.i32, shape=())


def setup_tracer(
    min_dist: float = DEFAULT_MIN_DIST,
    normal_eps: float = DEFAULT_NORMAL_EPS,
    push_distance: float = DEFAULT_PUSH_DISTANCE,
    sky_color: tuple[float, float, float] = DEFAULT_SKY_COLOR,
) -> None:
    """Configure the tuning parameters of the integrator.

    Args:
        min_dist: Marcher hit threshold.
        normal_eps: Finite-difference step for normals.
        push_distance: Offset of bounced ray origins along the normal. Must
            exceed ``min_dist`` or a bounce immediately re-hits its surface.
        sky_color: Radiance returned by rays that escape after a bounce.

    Raises:
        ValueError: If a parameter is out of range.
    """
    if push_distance <= min_dist:
        raise ValueError(
            f"push_distance ({push_distance}) must exceed min_dist ({min_dist})"
        )
    if any(c < 0.0 for c in sky_color):
        raise ValueError(f"sky_color components must be non-negative, got {sky_color}")

    set_march_tolerances(min_dist, normal_eps)
    _push_distance[None] = push_distance
    _sky_color[None] = list(sky_color)


def reset_nonfinite_count() -> None:
    """Reset the non-finite pixel counter."""
    _nonfinite_count[None] = 0


def get_nonfinite_count() -> int:
    """Get the number of sentinel pixels written since the last reset."""
    return int(_nonfinite_count[None])


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def trace_path(origin: vec3, direction: vec3, state: ti.u32, bounces: ti.i32):
    """Estimate the radiance arriving along one ray.

    The path is followed iteratively for bounce indices 0..bounces:

    - A primary miss terminates with black; there is no visible background.
    - A hit multiplies the reflectance mask by the surface albedo and, while
      budget remains, continues along a cosine-weighted direction from a
      point pushed off the surface.
    - A miss after at least one bounce escapes to the sky and adds the
      mask times the sky radiance.
    - Exhausting the budget while still hitting terminates with whatever
      has been accumulated, which may be nothing.

    With ``bounces == 0`` no path can reach the sky, so the primary hit's
    albedo is returned instead (an albedo preview).

    Args:
        origin: Ray origin.
        direction: Ray direction; its length is the maximum travel distance
            and is reused for every bounce.
        state: The task's random stream.
        bounces: Number of diffuse bounces allowed after the primary hit.

    Returns:
        A tuple (state, radiance).
    """
    s = state
    radiance = vec3(0.0, 0.0, 0.0)
    mask = vec3(1.0, 1.0, 1.0)

    max_length = tm.length(direction)
    ray_origin = origin
    ray_direction = direction

    path_state = int(PathState.TRACING)
    for bounce in range(bounces + 1):
        if path_state == int(PathState.TRACING) or path_state == int(PathState.HIT):
            rec = march(ray_origin, ray_direction)

            if rec.hit == 0:
                if bounce == 0:
                    path_state = int(PathState.TERMINATED)
                else:
                    radiance += mask * _sky_color[None]
                    path_state = int(PathState.ESCAPED)
            else:
                path_state = int(PathState.HIT)
                mask *= rec.color

                if bounces == 0:
                    radiance = rec.color
                    path_state = int(PathState.TERMINATED)
                elif bounce < bounces:
                    new_direction = vec3(0.0, 0.0, 0.0)
                    s, new_direction = sample_cosine_hemisphere(rec.normal, s)
                    ray_origin = rec.point + rec.normal * _push_distance[None]
                    ray_direction = new_direction * max_length
                else:
                    path_state = int(PathState.TERMINATED)

    return s, radiance


@ti.func
def render_pixel(
    x: ti.i32,
    y: ti.i32,
    width: ti.i32,
    height: ti.i32,
    seed: ti.u32,
    samples_per_axis: ti.i32,
    bounces: ti.i32,
) -> vec3:
    """Average a stratified grid of jittered samples for one pixel.

    Sub-sample ``n`` lies in cell ``(n % S, n // S)`` of an S x S grid over
    the pixel, offset by a uniform jitter within the cell.

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).
        width: Image width in pixels.
        height: Image height in pixels.
        seed: Global render seed.
        samples_per_axis: Grid size S.
        bounces: Bounce budget per path.

    Returns:
        The averaged radiance.
    """
    s = seed_stream(seed, y * width + x)
    total = vec3(0.0, 0.0, 0.0)
    cell = 1.0 / ti.cast(samples_per_axis, ti.f32)

    for n in range(samples_per_axis * samples_per_axis):
        cx = ti.cast(n % samples_per_axis, ti.f32)
        cy = ti.cast(n // samples_per_axis, ti.f32)

        jx = 0.0
        jy = 0.0
        s, jx = next_float(s)
        s, jy = next_float(s)

        px = ti.cast(x, ti.f32) + (cx + jx) * cell
        py = ti.cast(y, ti.f32) + (cy + jy) * cell
        ray = get_primary_ray(px, py, width, height)

        radiance = vec3(0.0, 0.0, 0.0)
        s, radiance = trace_path(ray.origin, ray.direction, s, bounces)
        total += radiance

    return total * (cell * cell)


@ti.func
def finalize_pixel(color: vec3) -> vec3:
    """Replace a non-finite estimate by the sentinel color and count it."""
    result = color
    bad = 0
    for c in ti.static(range(3)):
        if tm.isnan(color[c]) or tm.isinf(color[c]):
            bad = 1
    if bad == 1:
        result = SENTINEL_COLOR
        _nonfinite_count[None] += 1
    return result


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def render_tiles(
    out: ti.template(),
    width: ti.i32,
    height: ti.i32,
    tile_size: ti.i32,
    seed: ti.u32,
    samples_per_axis: ti.i32,
    bounces: ti.i32,
):
    """Render every pixel of the image into ``out``.

    The image is covered by square tiles of ``tile_size`` pixels. Tiles
    that extend past the border skip their out-of-range coordinates. Each
    pixel writes only its own element of ``out``.

    Args:
        out: Vector field of shape (height, width) receiving RGB values.
        width: Image width in pixels.
        height: Image height in pixels.
        tile_size: Tile edge length in pixels.
        seed: Global render seed.
        samples_per_axis: Stratified grid size per pixel.
        bounces: Bounce budget per path.
    """
    tiles_x = (width + tile_size - 1) // tile_size
    tiles_y = (height + tile_size - 1) // tile_size
    for ty, tx, ly, lx in ti.ndrange(tiles_y, tiles_x, tile_size, tile_size):
        x = tx * tile_size + lx
        y = ty * tile_size + ly
        if x < width and y < height:
            color = render_pixel(x, y, width, height, seed, samples_per_axis, bounces)
            out[y, x] = finalize_pixel(color)


@ti.kernel
def _render_single_pixel(
    x: ti.i32,
    y: ti.i32,
    width: ti.i32,
    height: ti.i32,
    seed: ti.u32,
    samples_per_axis: ti.i32,
    bounces: ti.i32,
) -> vec3:
    return finalize_pixel(render_pixel(x, y, width, height, seed, samples_per_axis, bounces))


# =============================================================================
# Public Rendering API
# =============================================================================


def render_single_pixel(
    x: int,
    y: int,
    width: int,
    height: int,
    seed: int,
    samples_per_axis: int = 1,
    bounces: int = 2,
) -> tuple[float, float, float]:
    """Render one pixel exactly as the full-image kernel would.

    The camera, scene and tracer must already be set up. Useful for tests
    and for inspecting individual pixels.

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).
        width: Image width in pixels.
        height: Image height in pixels.
        seed: Global render seed (only the low 32 bits are used).
        samples_per_axis: Stratified grid size.
        bounces: Bounce budget per path.

    Returns:
        Tuple of (R, G, B) values.
    """
    color = _render_single_pixel(
        x, y, width, height, seed & 0xFFFFFFFF, samples_per_axis, bounces
    )
    return (float(color[0]), float(color[1]), float(color[2]))
