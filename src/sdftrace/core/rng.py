"""Per-pixel random streams for reproducible Monte Carlo sampling.

Taichi's built-in ``ti.random()`` draws from a generator whose state is tied
to hardware threads, so results depend on scheduling. Instead, every pixel
task owns a 32-bit PCG state seeded from ``(seed, pixel index)`` and threads
it explicitly through each draw::

    state = seed_stream(seed, index)
    state, u = next_float(state)
    state, v = next_signed(state)

The same seed and index always reproduce the same sequence of draws, no
matter how the pixel grid is split across threads or tiles.
"""

import taichi as ti

# PCG-RXS-M-XS 32-bit constants
PCG_MULTIPLIER = 747796405
PCG_INCREMENT = 2891336453
PCG_OUTPUT_MULTIPLIER = 277803737

# 2^-24, maps the top 24 bits of a word onto [0, 1)
FLOAT_SCALE = 1.0 / 16777216.0


@ti.func
def _lcg_step(state: ti.u32) -> ti.u32:
    return state * ti.u32(PCG_MULTIPLIER) + ti.u32(PCG_INCREMENT)


@ti.func
def _permute(state: ti.u32) -> ti.u32:
    word = ((state >> ((state >> ti.u32(28)) + ti.u32(4))) ^ state) * ti.u32(PCG_OUTPUT_MULTIPLIER)
    return (word >> ti.u32(22)) ^ word


@ti.func
def pcg_hash(value: ti.u32) -> ti.u32:
    """Hash a 32-bit value with one PCG step and output permutation."""
    return _permute(_lcg_step(value))


@ti.func
def seed_stream(seed: ti.u32, index: ti.i32) -> ti.u32:
    """Create the initial stream state for one task.

    Args:
        seed: Global render seed.
        index: The task's unique linear index (pixel ``y * width + x``).

    Returns:
        The initial 32-bit generator state.
    """
    return pcg_hash(ti.cast(index, ti.u32) ^ pcg_hash(seed))


@ti.func
def next_u32(state: ti.u32):
    """Advance the stream and return ``(state, word)``."""
    new_state = _lcg_step(state)
    return new_state, _permute(new_state)


@ti.func
def next_float(state: ti.u32):
    """Advance the stream and return ``(state, u)`` with u uniform in [0, 1)."""
    new_state, word = next_u32(state)
    return new_state, ti.cast(word >> ti.u32(8), ti.f32) * FLOAT_SCALE


@ti.func
def next_signed(state: ti.u32):
    """Advance the stream and return ``(state, u)`` with u uniform in [-1, 1)."""
    new_state, u = next_float(state)
    return new_state, u * 2.0 - 1.0
