"""
Point records for the OPTICS ordering engine.

A PointRecord is one ingested payload plus the state the engine maintains
for it during a run. Neighbors are referenced by arena index so that the
engine applies every reachability update as an indexed write into its own
point list.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class NeighborEdge:
    """A neighbor found while expanding one point."""

    index: int
    distance: Optional[float]


@dataclass
class PointRecord:
    """
    A single data item and its per-run OPTICS state.

    Attributes:
        index: Stable identity (insertion order)
        coordinates: Opaque payload handed to the distance metric
        order: Position in the final ordering (set after a run)
        processed: Point has been expanded in the current run
        seeded: Point has been queued (or expanded) in the current run
        core_distance: Distance to the (min_points - 1)-th nearest neighbor,
            None when the neighborhood is too sparse
        reachability_distance: Smallest reachability offered so far
        neighbors: Epsilon neighborhood, ascending by distance
    """

    index: int
    coordinates: Tuple[Any, ...]
    order: Optional[int] = None
    processed: bool = False
    seeded: bool = False
    core_distance: Optional[float] = None
    reachability_distance: Optional[float] = None
    neighbors: List[NeighborEdge] = field(default_factory=list)

    def reset(self) -> None:
        """Clear all per-run state."""
        self.order = None
        self.processed = False
        self.seeded = False
        self.core_distance = None
        self.reachability_distance = None
        self.neighbors = []

    @property
    def neighbor_count(self) -> int:
        return len(self.neighbors)

    def set_neighbors(self, edges: Iterable[NeighborEdge]) -> None:
        """
        Store the epsilon neighborhood sorted ascending by distance.

        The sort is stable: equal distances keep their scan order.
        """
        self.neighbors = sorted(edges, key=lambda edge: edge.distance)

    def update_core_distance(self, min_points: int) -> Optional[float]:
        """
        Set the core distance from the sorted neighborhood.

        The core distance is the distance of the neighbor at 0-based
        position ``min_points - 2``; fewer than ``min_points`` neighbors
        leaves it undefined.

        Args:
            min_points: Density threshold

        Returns:
            The core distance (None when undefined)
        """
        if self.neighbor_count < min_points:
            self.core_distance = None
        else:
            self.core_distance = self.neighbors[min_points - 2].distance
        return self.core_distance

    def reachability_via(self, edge: NeighborEdge) -> float:
        """Reachability this point offers to one of its neighbors."""
        if self.core_distance is None:
            return edge.distance
        return max(self.core_distance, edge.distance)

    def offer_reachability(self, rd: float) -> bool:
        """
        Apply a reachability candidate.

        Both processed and unprocessed points only ever lower a defined
        value; an undefined value takes the candidate.

        Returns:
            True when the stored value changed
        """
        if self.reachability_distance is None or rd < self.reachability_distance:
            self.reachability_distance = rd
            return True
        return False

    def discard_neighbor_distances(self) -> None:
        """Drop edge distances of a point that is not a core point."""
        self.neighbors = [NeighborEdge(edge.index, None) for edge in self.neighbors]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "index": self.index,
            "order": self.order,
            "coordinates": list(self.coordinates),
            "core_distance": self.core_distance,
            "reachability_distance": self.reachability_distance,
        }
