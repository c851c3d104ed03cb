"""Unit tests for the sphere-tracing marcher.

Tests cover:
- Hits and misses against the ground plane
- Travel distance encoded in the direction length
- Normal estimation accuracy and orientation
- Degenerate directions and tolerance validation
"""

import numpy as np
import pytest
import taichi as ti


def _march(origin, direction):
    """March one ray and return (hit, point, normal, color) as numpy."""
    from src.sdftrace.core.marcher import march, vec3

    hit = ti.field(dtype=ti.i32, shape=())
    vals = ti.Vector.field(3, dtype=ti.f32, shape=3)

    @ti.kernel
    def march_kernel(
        ox: ti.f32, oy: ti.f32, oz: ti.f32, dx: ti.f32, dy: ti.f32, dz: ti.f32
    ):
        rec = march(vec3(ox, oy, oz), vec3(dx, dy, dz))
        hit[None] = rec.hit
        vals[0] = rec.point
        vals[1] = rec.normal
        vals[2] = rec.color

    march_kernel(*origin, *direction)
    v = vals.to_numpy()
    return int(hit[None]), v[0], v[1], v[2]


class TestMarchHits:
    """Tests for hit and miss detection."""

    def test_hits_ground_plane(self, ground_only):
        """Test a downward ray hits the plane y = -2."""
        hit, point, normal, color = _march((0.0, 5.0, 0.0), (0.0, -20.0, 0.0))
        assert hit == 1
        assert abs(point[1] + 2.0) < 2e-3
        np.testing.assert_allclose(normal, [0.0, 1.0, 0.0], atol=1e-3)
        np.testing.assert_allclose(color, [0.85, 0.85, 0.85], atol=1e-6)

    def test_miss_when_surface_beyond_range(self, ground_only):
        """Test the plane 7 units away is missed by a 5-unit ray."""
        hit, _, _, _ = _march((0.0, 5.0, 0.0), (0.0, -5.0, 0.0))
        assert hit == 0

    def test_hit_when_surface_within_range(self, ground_only):
        """Test the same ray reaches the plane once it is long enough."""
        hit, _, _, _ = _march((0.0, 5.0, 0.0), (0.0, -7.5, 0.0))
        assert hit == 1

    def test_miss_pointing_away(self, ground_only):
        """Test a ray pointing up never hits the ground."""
        hit, _, _, _ = _march((0.0, 0.0, 0.0), (0.0, 30.0, 0.0))
        assert hit == 0

    def test_pushed_origin_does_not_rehit(self, ground_only):
        """Test a ray starting just above the threshold and leaving does not hit."""
        hit, _, _, _ = _march((0.0, -2.0 + 1e-2, 0.0), (0.0, 30.0, 0.0))
        assert hit == 0

    def test_zero_direction_is_miss(self, ground_only):
        """Test a near-zero direction is reported as a miss."""
        hit, _, _, _ = _march((0.0, -1.999, 0.0), (0.0, 0.0, 0.0))
        assert hit == 0

    def test_miss_record_is_zeroed(self, ground_only):
        """Test a miss carries zero point, normal and color."""
        hit, point, normal, color = _march((0.0, 0.0, 0.0), (0.0, 30.0, 0.0))
        assert hit == 0
        assert np.all(point == 0.0)
        assert np.all(normal == 0.0)
        assert np.all(color == 0.0)


class TestNormals:
    """Tests for finite-difference normals."""

    @pytest.mark.parametrize(
        "direction",
        [
            (0.0, 0.0, -1.0),
            (1.0, 1.0, -1.0),
            (-0.3, 0.5, -1.0),
        ],
    )
    def test_sphere_normals_are_radial(self, sphere_at_origin, direction):
        """Test normals on the unit sphere match the radial direction."""
        d = np.array(direction) / np.linalg.norm(direction)
        origin = -4.0 * d
        hit, point, normal, _ = _march(tuple(origin), tuple(d * 10.0))
        assert hit == 1
        radial = point / np.linalg.norm(point)
        assert abs(np.linalg.norm(normal) - 1.0) < 1e-4
        assert np.dot(normal, radial) > 1.0 - 1e-2

    def test_normal_faces_incoming_ray(self, sphere_at_origin):
        """Test a normal computed for a ray arriving from behind is flipped."""
        from src.sdftrace.core.marcher import estimate_normal, vec3

        out = ti.Vector.field(3, dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            p = vec3(0.0, 0.0, 1.0)
            out[0] = estimate_normal(p, vec3(0.0, 0.0, -1.0), 0.0)
            out[1] = estimate_normal(p, vec3(0.0, 0.0, 1.0), 0.0)

        test_kernel()
        n = out.to_numpy()
        np.testing.assert_allclose(n[0], [0.0, 0.0, 1.0], atol=1e-3)
        np.testing.assert_allclose(n[1], [0.0, 0.0, -1.0], atol=1e-3)


class TestTolerances:
    """Tests for tolerance configuration."""

    def test_set_and_get(self):
        """Test tolerances round-trip through the Taichi fields."""
        from src.sdftrace.core.marcher import get_march_tolerances, set_march_tolerances

        set_march_tolerances(5e-4, 2e-3)
        min_dist, normal_eps = get_march_tolerances()
        assert abs(min_dist - 5e-4) < 1e-9
        assert abs(normal_eps - 2e-3) < 1e-9

    @pytest.mark.parametrize("min_dist,normal_eps", [(0.0, 1e-3), (1e-3, -1.0)])
    def test_invalid_tolerances_raise(self, min_dist, normal_eps):
        """Test non-positive tolerances raise ValueError."""
        from src.sdftrace.core.marcher import set_march_tolerances

        with pytest.raises(ValueError):
            set_march_tolerances(min_dist, normal_eps)
