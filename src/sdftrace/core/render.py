"""Render driver: configuration, output buffer lifecycle and dispatch.

``render`` is the single entry point for producing an image. It validates a
``RenderConfig``, pushes camera, scene and tracer parameters into Taichi
fields, allocates the output buffer, dispatches the tiled pixel kernel and
copies the result back as a flat, row-major float32 array (3 floats per
pixel). The buffer is released on every exit path.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from src.sdftrace.core.render import RenderConfig, render
    >>> result = render(RenderConfig(width=320, height=240, seed=1))
    >>> image = result.as_image()  # (240, 320, 3)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import numpy.typing as npt
import taichi as ti

from src.sdftrace.camera.pinhole import CameraConfig, setup_camera
from src.sdftrace.core.integrator import (
    DEFAULT_PUSH_DISTANCE,
    DEFAULT_SKY_COLOR,
    get_nonfinite_count,
    render_tiles,
    reset_nonfinite_count,
    setup_tracer,
)
from src.sdftrace.core.marcher import DEFAULT_MIN_DIST, DEFAULT_NORMAL_EPS
from src.sdftrace.scene.manager import SceneConfig, SceneKind, setup_scene

logger = logging.getLogger(__name__)

SEED_MASK = 0xFFFFFFFF


# =============================================================================
# Errors
# =============================================================================


class RenderError(Exception):
    """Base class for render failures."""


class ConfigError(RenderError, ValueError):
    """The render configuration is invalid."""


class RenderAllocationError(RenderError, MemoryError):
    """The output buffer could not be allocated."""


# =============================================================================
# Configuration
# =============================================================================

# Option names accepted by RenderConfig.from_dict
_OPTION_NAMES = {
    "width": "width",
    "height": "height",
    "samplesPerAxis": "samples_per_axis",
    "bounces": "bounces",
    "seed": "seed",
    "minDist": "min_dist",
    "normalEps": "normal_eps",
    "pushDistance": "push_distance",
    "skyColor": "sky_color",
    "tileSize": "tile_size",
}
_CAMERA_OPTION_NAMES = {
    "cameraPos": "position",
    "cameraTarget": "target",
    "cameraFov": "fov",
    "maxRayDistance": "max_ray_distance",
}


@dataclass
class RenderConfig:
    """Everything needed to render one image.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_axis: Anti-aliasing grid size; each pixel averages
            ``samples_per_axis ** 2`` samples.
        bounces: Diffuse bounces per path. 0 renders primary albedo.
        seed: Global random seed. None derives one from the clock.
        camera: Camera configuration.
        scene: Scene configuration.
        min_dist: Marcher hit threshold.
        normal_eps: Finite-difference step for normals.
        push_distance: Offset of bounced ray origins along the normal.
        sky_color: Radiance of the ambient sky.
        tile_size: Edge length of the square pixel tiles used for dispatch.
            Does not affect the output.
    """

    width: int = 640
    height: int = 480
    samples_per_axis: int = 2
    bounces: int = 2
    seed: int | None = None
    camera: CameraConfig = field(default_factory=CameraConfig)
    scene: SceneConfig = field(default_factory=SceneConfig)
    min_dist: float = DEFAULT_MIN_DIST
    normal_eps: float = DEFAULT_NORMAL_EPS
    push_distance: float = DEFAULT_PUSH_DISTANCE
    sky_color: tuple[float, float, float] = DEFAULT_SKY_COLOR
    tile_size: int = 16

    def validate(self) -> None:
        """Check the configuration.

        Raises:
            ConfigError: If any parameter is out of range.
        """
        if self.width < 1 or self.height < 1:
            raise ConfigError(f"Image size must be positive, got {self.width}x{self.height}")
        if self.samples_per_axis < 1:
            raise ConfigError(f"samples_per_axis must be at least 1, got {self.samples_per_axis}")
        if self.bounces < 0:
            raise ConfigError(f"bounces must be non-negative, got {self.bounces}")
        if self.tile_size < 1:
            raise ConfigError(f"tile_size must be at least 1, got {self.tile_size}")
        if self.min_dist <= 0.0 or self.normal_eps <= 0.0:
            raise ConfigError("min_dist and normal_eps must be positive")
        if self.push_distance <= self.min_dist:
            raise ConfigError(
                f"push_distance ({self.push_distance}) must exceed min_dist ({self.min_dist})"
            )
        if any(c < 0.0 for c in self.sky_color):
            raise ConfigError(f"sky_color components must be non-negative, got {self.sky_color}")
        try:
            self.camera.validate()
            self.scene.validate()
        except ValueError as e:
            raise ConfigError(str(e)) from e

    @classmethod
    def from_dict(cls, options: dict[str, Any]) -> RenderConfig:
        """Build a configuration from an option record.

        Recognized options are ``width``, ``height``, ``samplesPerAxis``,
        ``bounces``, ``seed``, ``cameraPos``, ``cameraTarget``, ``cameraFov``,
        ``maxRayDistance`` and ``scene`` (a SceneKind name such as
        ``"mandelbulb"``), plus the tuning options ``minDist``,
        ``normalEps``, ``pushDistance``, ``skyColor`` and ``tileSize``.

        Args:
            options: Mapping of option names to values.

        Returns:
            The corresponding RenderConfig (not yet validated).

        Raises:
            ConfigError: If an option name or scene name is unknown.
        """
        kwargs: dict[str, Any] = {}
        camera_kwargs: dict[str, Any] = {}
        scene = SceneConfig()

        for key, value in options.items():
            if key in _OPTION_NAMES:
                kwargs[_OPTION_NAMES[key]] = value
            elif key in _CAMERA_OPTION_NAMES:
                camera_kwargs[_CAMERA_OPTION_NAMES[key]] = value
            elif key == "scene":
                scene = SceneConfig(kind=parse_scene_kind(value))
            else:
                raise ConfigError(f"Unknown render option: {key!r}")

        for name in ("position", "target"):
            if name in camera_kwargs:
                camera_kwargs[name] = tuple(float(c) for c in camera_kwargs[name])
        if "sky_color" in kwargs:
            kwargs["sky_color"] = tuple(float(c) for c in kwargs["sky_color"])

        return cls(camera=CameraConfig(**camera_kwargs), scene=scene, **kwargs)


def parse_scene_kind(value: str | int | SceneKind) -> SceneKind:
    """Convert a scene name (case-insensitive) or number to a SceneKind.

    Raises:
        ConfigError: If the value names no scene.
    """
    if isinstance(value, str):
        try:
            return SceneKind[value.strip().upper().replace("-", "_")]
        except KeyError as e:
            names = ", ".join(k.name.lower() for k in SceneKind)
            raise ConfigError(f"Unknown scene {value!r}; expected one of: {names}") from e
    try:
        return SceneKind(value)
    except ValueError as e:
        raise ConfigError(f"Unknown scene {value!r}") from e


def resolve_seed(seed: int | None) -> int:
    """Return a 32-bit render seed.

    An explicit seed is reduced to its low 32 bits. None derives a seed from
    the clock, for non-reproducible renders.
    """
    if seed is None:
        return time.time_ns() & SEED_MASK
    return int(seed) & SEED_MASK


# =============================================================================
# Output Buffer
# =============================================================================


@contextmanager
def output_buffer(width: int, height: int) -> Iterator[ti.MatrixField]:
    """Allocate the RGB output field for one render.

    The field lives in its own SNode tree, which is destroyed when the
    context exits, whether normally or through an exception.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.

    Yields:
        A vector field of shape (height, width).

    Raises:
        RenderAllocationError: If the field cannot be allocated.
    """
    try:
        builder = ti.FieldsBuilder()
        buffer = ti.Vector.field(3, dtype=ti.f32)
        builder.dense(ti.ij, (height, width)).place(buffer)
        tree = builder.finalize()
    except (RuntimeError, MemoryError) as e:
        raise RenderAllocationError(
            f"Could not allocate a {width}x{height} output buffer"
        ) from e

    try:
        yield buffer
    finally:
        tree.destroy()


# =============================================================================
# Rendering
# =============================================================================


@dataclass
class RenderResult:
    """A finished render.

    Attributes:
        pixels: Flat row-major RGB float32 array of ``width * height * 3``.
        width: Image width in pixels.
        height: Image height in pixels.
        seed: The seed actually used.
        nonfinite_pixels: Pixels replaced by the sentinel color.
        elapsed: Wall-clock render time in seconds.
    """

    pixels: npt.NDArray[np.float32]
    width: int
    height: int
    seed: int
    nonfinite_pixels: int = 0
    elapsed: float = 0.0

    def as_image(self) -> npt.NDArray[np.float32]:
        """View the pixels as a (height, width, 3) array, top row first."""
        return self.pixels.reshape(self.height, self.width, 3)

    def pixel(self, x: int, y: int) -> tuple[float, float, float]:
        """Get the color of pixel (x, y), with y = 0 at the top."""
        offset = (y * self.width + x) * 3
        r, g, b = self.pixels[offset : offset + 3]
        return (float(r), float(g), float(b))


def apply_config(config: RenderConfig) -> None:
    """Push camera, scene and tracer settings into Taichi fields."""
    setup_tracer(
        min_dist=config.min_dist,
        normal_eps=config.normal_eps,
        push_distance=config.push_distance,
        sky_color=config.sky_color,
    )
    setup_camera(config.camera)
    setup_scene(config.scene)


def render(config: RenderConfig) -> RenderResult:
    """Render an image.

    Args:
        config: The render configuration.

    Returns:
        The rendered pixels and render metadata.

    Raises:
        ConfigError: If the configuration is invalid.
        RenderAllocationError: If the output buffer cannot be allocated.
            Nothing is dispatched in that case.
    """
    config.validate()
    seed = resolve_seed(config.seed)
    apply_config(config)
    reset_nonfinite_count()

    logger.info(
        "Rendering %dx%d, %d samples/pixel, %d bounces, scene=%s, seed=%d",
        config.width,
        config.height,
        config.samples_per_axis**2,
        config.bounces,
        SceneKind(config.scene.kind).name.lower(),
        seed,
    )

    start = time.perf_counter()
    with output_buffer(config.width, config.height) as buffer:
        render_tiles(
            buffer,
            config.width,
            config.height,
            config.tile_size,
            seed,
            config.samples_per_axis,
            config.bounces,
        )
        pixels = buffer.to_numpy().astype(np.float32).reshape(-1)
    elapsed = time.perf_counter() - start

    nonfinite = get_nonfinite_count()
    if nonfinite:
        logger.warning(
            "%d pixel(s) produced non-finite radiance and were replaced by the sentinel color",
            nonfinite,
        )
    logger.debug("Render finished in %.3fs", elapsed)

    return RenderResult(
        pixels=pixels,
        width=config.width,
        height=config.height,
        seed=seed,
        nonfinite_pixels=nonfinite,
        elapsed=elapsed,
    )
