"""
Unit tests for PointRecord and NeighborEdge.
"""

import pytest

from optics_clustering.core.point import NeighborEdge, PointRecord


def _point_with_neighbors(distances):
    point = PointRecord(index=0, coordinates=(0.0,))
    point.set_neighbors(NeighborEdge(i + 1, d) for i, d in enumerate(distances))
    return point


@pytest.mark.unit
class TestNeighbors:
    """Test neighborhood storage."""

    def test_sorted_ascending(self):
        point = _point_with_neighbors([3.0, 1.0, 2.0])
        assert [e.distance for e in point.neighbors] == [1.0, 2.0, 3.0]
        assert point.neighbor_count == 3

    def test_stable_for_ties(self):
        """Equal distances keep the order they were scanned in."""
        point = _point_with_neighbors([2.0, 1.0, 2.0, 1.0])
        assert [e.index for e in point.neighbors] == [2, 4, 1, 3]

    def test_discard_distances(self):
        point = _point_with_neighbors([1.0, 2.0])
        point.discard_neighbor_distances()
        assert [e.index for e in point.neighbors] == [1, 2]
        assert all(e.distance is None for e in point.neighbors)


@pytest.mark.unit
class TestCoreDistance:
    """Test core distance computation."""

    @pytest.mark.parametrize(
        "min_points,expected",
        [(2, 1.0), (3, 2.0), (4, None)],
    )
    def test_core_distance(self, min_points, expected):
        point = _point_with_neighbors([1.0, 2.0, 3.0])
        assert point.update_core_distance(min_points) == expected
        assert point.core_distance == expected

    def test_no_neighbors(self):
        point = PointRecord(index=0, coordinates=(0.0,))
        assert point.update_core_distance(2) is None


@pytest.mark.unit
class TestReachability:
    """Test reachability propagation rules."""

    def test_reachability_without_core(self):
        point = PointRecord(index=0, coordinates=(0.0,))
        assert point.reachability_via(NeighborEdge(1, 4.0)) == 4.0

    def test_reachability_with_core(self):
        point = PointRecord(index=0, coordinates=(0.0,), core_distance=2.5)
        assert point.reachability_via(NeighborEdge(1, 1.0)) == 2.5
        assert point.reachability_via(NeighborEdge(2, 3.0)) == 3.0

    def test_offer_to_undefined(self):
        point = PointRecord(index=0, coordinates=(0.0,))
        assert point.offer_reachability(5.0) is True
        assert point.reachability_distance == 5.0

    def test_offer_only_lowers(self):
        point = PointRecord(index=0, coordinates=(0.0,), reachability_distance=3.0)
        assert point.offer_reachability(4.0) is False
        assert point.offer_reachability(3.0) is False
        assert point.reachability_distance == 3.0
        assert point.offer_reachability(2.0) is True
        assert point.reachability_distance == 2.0


@pytest.mark.unit
class TestPointRecordState:
    """Test reset and serialization."""

    def test_reset(self):
        point = _point_with_neighbors([1.0, 2.0])
        point.order = 4
        point.processed = True
        point.seeded = True
        point.core_distance = 1.0
        point.reachability_distance = 2.0

        point.reset()

        assert point.order is None
        assert point.processed is False
        assert point.seeded is False
        assert point.core_distance is None
        assert point.reachability_distance is None
        assert point.neighbors == []

    def test_to_dict(self):
        point = PointRecord(index=3, coordinates=(1.0, 2.0), order=0, core_distance=0.5)
        assert point.to_dict() == {
            "index": 3,
            "order": 0,
            "coordinates": [1.0, 2.0],
            "core_distance": 0.5,
            "reachability_distance": None,
        }
