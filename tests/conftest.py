"""
Pytest configuration and shared fixtures for OPTICS clustering tests.

This module provides:
- Shared test fixtures
- Point set generators (2-D blobs, colors, geographic coordinates)
- Hand-built orderings for extraction tests
- Settings and logging context cleanup
"""

import json
import numpy as np
import pytest
from typing import List, Optional

from optics_clustering.core.point import PointRecord


# =============================================================================
# Test Data Generators
# =============================================================================

@pytest.fixture
def two_groups_points():
    """
    Two well separated groups of 6 points.

    - Group 0: near (0, 0)
    - Group 1: near (100, 100)
    """
    offsets = [(0, 0), (1, 0), (0, 1), (1, 1), (2, 0), (0, 2)]
    group0 = [(x, y) for x, y in offsets]
    group1 = [(100 + x, 100 + y) for x, y in offsets]
    return group0 + group1


@pytest.fixture
def line_points():
    """1-D points used for hand-traced orderings."""
    return [(0.0,), (3.0,), (1.0,), (10.0,), (4.0,), (20.0,)]


@pytest.fixture
def blob_points():
    """
    Generate points with clear cluster structure plus two outliers.

    Creates 2 tight blobs of 30 points and 2 isolated points:
    - Blob 0: centered at (0, 0)
    - Blob 1: centered at (50, 50)
    - Outliers: (200, 200), (-100, 50)
    """
    np.random.seed(42)
    n_per_blob = 30

    blob0 = np.random.randn(n_per_blob, 2) * 0.3
    blob1 = np.array([50.0, 50.0]) + np.random.randn(n_per_blob, 2) * 0.3
    outliers = np.array([[200.0, 200.0], [-100.0, 50.0]])

    points = np.vstack([blob0, blob1, outliers])
    labels = np.array([0] * n_per_blob + [1] * n_per_blob + [-1, -1])
    return points, labels


@pytest.fixture
def random_points():
    """Unstructured 2-D points for property checks."""
    np.random.seed(42)
    return np.random.rand(80, 2) * 20


@pytest.fixture
def color_points():
    """Five reds followed by five blues (RGB 0-255)."""
    reds = [(255, 0, 0), (250, 5, 5), (245, 0, 10), (255, 10, 0), (240, 5, 5)]
    blues = [(0, 0, 255), (5, 5, 250), (0, 10, 245), (10, 0, 255), (5, 5, 240)]
    return reds + blues


@pytest.fixture
def geo_points():
    """Five (latitude, longitude) pairs around New York and five around Los Angeles."""
    offsets = [(0.0, 0.0), (0.01, 0.0), (0.0, 0.01), (0.01, 0.01), (0.02, 0.0)]
    new_york = [(40.71 + dlat, -74.00 + dlon) for dlat, dlon in offsets]
    los_angeles = [(34.05 + dlat, -118.24 + dlon) for dlat, dlon in offsets]
    return new_york + los_angeles


@pytest.fixture
def points_file(tmp_path, two_groups_points):
    """Write the two groups to a JSON points file."""
    path = tmp_path / "points.json"
    path.write_text(json.dumps({"points": [list(p) for p in two_groups_points]}))
    return path


# =============================================================================
# Ordering Fixtures
# =============================================================================

def make_ordering(
    reachability: List[Optional[float]],
    core: Optional[List[Optional[float]]] = None,
) -> List[PointRecord]:
    """Build an already ordered sequence with the given distances."""
    if core is None:
        core = [1.0] * len(reachability)
    return [
        PointRecord(
            index=i,
            coordinates=(float(i),),
            order=i,
            reachability_distance=rd,
            core_distance=cd,
        )
        for i, (rd, cd) in enumerate(zip(reachability, core))
    ]


@pytest.fixture
def ordering_factory():
    """Factory for hand-built orderings."""
    return make_ordering


# =============================================================================
# Cleanup
# =============================================================================

@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Reset cached settings and the run ID after each test."""
    yield
    from optics_clustering.config.settings_loader import ConfigManager
    from optics_clustering.utils.advanced_logging import LogContext

    ConfigManager._settings = None
    LogContext.clear_run_id()


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for component interactions"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests for full workflows"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take >1 second"
    )
