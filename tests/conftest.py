"""Pytest configuration for renderer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu)
    yield


@pytest.fixture(autouse=True)
def reset_render_state():
    """Restore default tracer settings and scene before each test.

    This ensures tests are isolated from each other.
    """
    # Import here so Taichi is initialized before fields are declared
    from src.sdftrace.core.integrator import reset_nonfinite_count, setup_tracer
    from src.sdftrace.scene.manager import SceneConfig, setup_scene

    setup_tracer()
    setup_scene(SceneConfig())
    reset_nonfinite_count()
    yield


@pytest.fixture
def sphere_at_origin():
    """Activate a unit sphere at the origin with the ground far below."""
    from src.sdftrace.scene.manager import SceneConfig, SceneKind, setup_scene

    setup_scene(
        SceneConfig(
            kind=SceneKind.SPHERE_ON_PLANE,
            sphere_center=(0.0, 0.0, 0.0),
            sphere_radius=1.0,
            ground_height=-100.0,
        )
    )


@pytest.fixture
def ground_only():
    """Activate the ground-plane-only scene at y = -2."""
    from src.sdftrace.scene.manager import SceneConfig, SceneKind, setup_scene

    setup_scene(SceneConfig(kind=SceneKind.GROUND_PLANE, ground_height=-2.0))
