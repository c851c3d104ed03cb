"""Tests for the render driver.

Tests cover:
- RenderConfig validation and construction from option records
- Scene name parsing and seed resolution
- Deterministic, tiling-independent output
- Non-finite pixel handling and logging
- Output buffer allocation failures
"""

import logging

import numpy as np
import pytest
import taichi as ti


def _small_config(**kwargs):
    from src.sdftrace.camera.pinhole import CameraConfig
    from src.sdftrace.core.render import RenderConfig
    from src.sdftrace.scene.manager import SceneConfig, SceneKind

    defaults = dict(
        width=12,
        height=9,
        samples_per_axis=1,
        bounces=2,
        seed=1234,
        camera=CameraConfig(position=(0.0, 0.0, 4.0), target=(0.0, -0.5, 0.0)),
        scene=SceneConfig(
            kind=SceneKind.SPHERE_ON_PLANE, sphere_center=(0.0, -1.0, 0.0), ground_height=-2.0
        ),
    )
    defaults.update(kwargs)
    return RenderConfig(**defaults)


class TestRenderConfig:
    """Tests for RenderConfig validation."""

    def test_default_is_valid(self):
        """Test the default configuration validates."""
        from src.sdftrace.core.render import RenderConfig

        RenderConfig().validate()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"width": 0},
            {"height": -3},
            {"samples_per_axis": 0},
            {"bounces": -1},
            {"tile_size": 0},
            {"min_dist": 0.0},
            {"push_distance": 1e-4},
            {"sky_color": (1.0, 1.0, -1.0)},
        ],
    )
    def test_invalid_values_raise_config_error(self, kwargs):
        """Test out-of-range values raise ConfigError."""
        from src.sdftrace.core.render import ConfigError, RenderConfig

        with pytest.raises(ConfigError):
            RenderConfig(**kwargs).validate()

    def test_camera_errors_become_config_errors(self):
        """Test camera validation failures surface as ConfigError."""
        from src.sdftrace.camera.pinhole import CameraConfig
        from src.sdftrace.core.render import ConfigError, RenderConfig

        config = RenderConfig(camera=CameraConfig(fov=200.0))
        with pytest.raises(ConfigError):
            config.validate()

    def test_config_error_is_value_error(self):
        """Test ConfigError can be caught as ValueError."""
        from src.sdftrace.core.render import ConfigError, RenderError

        assert issubclass(ConfigError, ValueError)
        assert issubclass(ConfigError, RenderError)


class TestFromDict:
    """Tests for building configurations from option records."""

    def test_from_dict_maps_options(self):
        """Test recognized options land in the right fields."""
        from src.sdftrace.core.render import RenderConfig
        from src.sdftrace.scene.manager import SceneKind

        config = RenderConfig.from_dict(
            {
                "width": 320,
                "height": 200,
                "samplesPerAxis": 3,
                "bounces": 4,
                "seed": 99,
                "cameraPos": [0, 2, 8],
                "cameraTarget": [0, 0, 0],
                "cameraFov": 45.0,
                "maxRayDistance": 50.0,
                "scene": "mandelbulb",
                "skyColor": [0.5, 0.5, 1],
            }
        )
        assert (config.width, config.height) == (320, 200)
        assert config.samples_per_axis == 3
        assert config.bounces == 4
        assert config.seed == 99
        assert config.camera.position == (0.0, 2.0, 8.0)
        assert config.camera.target == (0.0, 0.0, 0.0)
        assert config.camera.fov == 45.0
        assert config.camera.max_ray_distance == 50.0
        assert config.scene.kind == SceneKind.MANDELBULB
        assert config.sky_color == (0.5, 0.5, 1.0)
        config.validate()

    def test_unknown_option_raises(self):
        """Test an unrecognized option name is rejected."""
        from src.sdftrace.core.render import ConfigError, RenderConfig

        with pytest.raises(ConfigError, match="samples"):
            RenderConfig.from_dict({"samples": 4})

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("mandelbulb", "MANDELBULB"),
            ("Tiled-Spheres", "TILED_SPHERES"),
            (" ground_plane ", "GROUND_PLANE"),
            (3, "SPHERE_ON_PLANE"),
        ],
    )
    def test_parse_scene_kind(self, value, expected):
        """Test scene names and numbers are parsed."""
        from src.sdftrace.core.render import parse_scene_kind

        assert parse_scene_kind(value).name == expected

    @pytest.mark.parametrize("value", ["teapot", 12])
    def test_parse_unknown_scene(self, value):
        """Test unknown scenes raise ConfigError."""
        from src.sdftrace.core.render import ConfigError, parse_scene_kind

        with pytest.raises(ConfigError):
            parse_scene_kind(value)

    def test_resolve_seed(self):
        """Test explicit seeds are masked and missing seeds are generated."""
        from src.sdftrace.core.render import SEED_MASK, resolve_seed

        assert resolve_seed(17) == 17
        assert resolve_seed((1 << 32) + 5) == 5
        generated = resolve_seed(None)
        assert 0 <= generated <= SEED_MASK


class TestRender:
    """End-to-end render tests."""

    def test_output_shape_and_range(self):
        """Test the flat buffer layout and a bounded white-sky estimate."""
        from src.sdftrace.core.render import render

        result = render(_small_config())
        assert result.pixels.dtype == np.float32
        assert result.pixels.shape == (12 * 9 * 3,)
        assert result.as_image().shape == (9, 12, 3)
        assert result.seed == 1234
        assert result.nonfinite_pixels == 0
        assert np.all(result.pixels >= 0.0)
        assert np.all(result.pixels <= 1.0 + 1e-6)

    def test_same_seed_is_bit_identical(self):
        """Test two renders with the same seed produce identical pixels."""
        from src.sdftrace.core.render import render

        a = render(_small_config(samples_per_axis=2))
        b = render(_small_config(samples_per_axis=2))
        assert np.array_equal(a.pixels, b.pixels)

    def test_different_seeds_differ(self):
        """Test changing the seed changes the noise."""
        from src.sdftrace.core.render import render

        a = render(_small_config(seed=1))
        b = render(_small_config(seed=2))
        assert not np.array_equal(a.pixels, b.pixels)

    def test_tile_size_does_not_change_output(self):
        """Test the image is independent of the dispatch tile size."""
        from src.sdftrace.core.render import render

        a = render(_small_config(tile_size=16))
        b = render(_small_config(tile_size=5))
        c = render(_small_config(tile_size=1))
        assert np.array_equal(a.pixels, b.pixels)
        assert np.array_equal(a.pixels, c.pixels)

    def test_single_pixel_matches_full_render(self):
        """Test render_single_pixel reproduces a pixel of the full image."""
        from src.sdftrace.core.integrator import render_single_pixel
        from src.sdftrace.core.render import render

        config = _small_config(samples_per_axis=2)
        result = render(config)
        for x, y in ((0, 0), (6, 4), (11, 8)):
            color = render_single_pixel(x, y, 12, 9, 1234, samples_per_axis=2, bounces=2)
            assert color == pytest.approx(result.pixel(x, y), abs=1e-5)

    def test_ground_plane_albedo_image(self):
        """Test a zero-bounce render of the ground is uniformly its color."""
        from src.sdftrace.camera.pinhole import CameraConfig
        from src.sdftrace.core.render import render
        from src.sdftrace.scene.manager import SceneConfig, SceneKind

        config = _small_config(
            bounces=0,
            camera=CameraConfig(position=(0.0, 5.0, 0.0), target=(0.0, 0.0, 0.0)),
            scene=SceneConfig(kind=SceneKind.GROUND_PLANE),
        )
        result = render(config)
        np.testing.assert_allclose(result.pixels, 0.85, atol=1e-6)

    def test_nonfinite_pixels_use_sentinel(self, caplog):
        """Test NaN/inf estimates are replaced by magenta and reported."""
        from src.sdftrace.camera.pinhole import CameraConfig
        from src.sdftrace.core.render import render
        from src.sdftrace.scene.manager import SceneConfig, SceneKind

        config = _small_config(
            width=4,
            height=3,
            bounces=0,
            camera=CameraConfig(position=(0.0, 5.0, 0.0), target=(0.0, 0.0, 0.0)),
            scene=SceneConfig(
                kind=SceneKind.GROUND_PLANE, ground_color=(float("inf"), 0.5, 0.5)
            ),
        )
        with caplog.at_level(logging.WARNING, logger="src.sdftrace.core.render"):
            result = render(config)

        assert result.nonfinite_pixels == 12
        np.testing.assert_array_equal(result.as_image().reshape(-1, 3), [[1.0, 0.0, 1.0]] * 12)
        assert any("non-finite" in r.getMessage() for r in caplog.records)

    def test_invalid_config_dispatches_nothing(self, monkeypatch):
        """Test configuration errors are raised before any kernel runs."""
        from src.sdftrace.core import render as render_module

        calls = []
        monkeypatch.setattr(render_module, "render_tiles", lambda *a: calls.append(a))
        with pytest.raises(render_module.ConfigError):
            render_module.render(_small_config(width=0))
        assert calls == []


class TestOutputBuffer:
    """Tests for output buffer allocation."""

    def test_allocation_failure(self, monkeypatch):
        """Test a failed allocation raises RenderAllocationError without rendering."""
        from src.sdftrace.core import render as render_module

        def failing_builder():
            raise RuntimeError("out of memory")

        calls = []
        monkeypatch.setattr(render_module.ti, "FieldsBuilder", failing_builder)
        monkeypatch.setattr(render_module, "render_tiles", lambda *a: calls.append(a))

        with pytest.raises(render_module.RenderAllocationError):
            render_module.render(_small_config())
        assert calls == []

    def test_buffer_shape(self):
        """Test the buffer is a (height, width) vector field."""
        from src.sdftrace.core.render import output_buffer

        with output_buffer(7, 3) as buffer:
            assert buffer.shape == (3, 7)
            assert buffer.n == 3

    def test_buffer_released_on_error(self, monkeypatch):
        """Test the buffer tree is destroyed when rendering raises."""
        from src.sdftrace.core import render as render_module

        destroyed = []
        real_builder = ti.FieldsBuilder

        class TrackingBuilder:
            def __init__(self):
                self._builder = real_builder()

            def dense(self, *args):
                return self._builder.dense(*args)

            def finalize(self):
                return TrackingTree(self._builder.finalize())

        class TrackingTree:
            def __init__(self, tree):
                self._tree = tree

            def destroy(self):
                destroyed.append(True)
                self._tree.destroy()

        def exploding_render(*args):
            raise RuntimeError("kernel failed")

        monkeypatch.setattr(render_module.ti, "FieldsBuilder", TrackingBuilder)
        monkeypatch.setattr(render_module, "render_tiles", exploding_render)

        with pytest.raises(RuntimeError, match="kernel failed"):
            render_module.render(_small_config())
        assert destroyed == [True]
