"""
Clusters extracted from an OPTICS ordering.

A Cluster is an immutable, contiguous slice of the ordered sequence. The
ClusterRegistry counts every cluster an engine emits and refuses to go past
a hard maximum, which signals badly chosen thresholds.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Tuple

from optics_clustering.core.point import PointRecord
from optics_clustering.utils.error_handling import ConfigurationOverflowError

logger = logging.getLogger(__name__)

DEFAULT_MAX_CLUSTERS = 1000


@dataclass(frozen=True)
class Cluster:
    """Ordered group of points drawn from one ordering."""

    points: Tuple[PointRecord, ...]

    @classmethod
    def from_points(cls, points: Iterable[PointRecord]) -> "Cluster":
        """
        Build a cluster from a buffer of ordered points.

        Members are snapshotted so that re-running the engine does not
        change an already extracted cluster.
        """
        return cls(points=tuple(copy.copy(p) for p in points))

    @property
    def size(self) -> int:
        return len(self.points)

    @property
    def indices(self) -> List[int]:
        """Insertion indices of the members, in ordering order."""
        return [p.index for p in self.points]

    @property
    def orders(self) -> List[int]:
        return [p.order for p in self.points]

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[PointRecord]:
        return iter(self.points)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "size": self.size,
            "indices": self.indices,
            "orders": self.orders,
        }


class ClusterRegistry:
    """Collects emitted clusters and enforces the cluster-count ceiling."""

    def __init__(self, max_clusters: int = DEFAULT_MAX_CLUSTERS):
        """
        Initialize registry.

        Args:
            max_clusters: Largest number of clusters that may be emitted
        """
        self.max_clusters = max_clusters
        self._clusters: List[Cluster] = []
        self._count = 0

    def add(self, cluster: Cluster) -> None:
        """
        Record a newly emitted cluster.

        Raises:
            ConfigurationOverflowError: If this cluster would exceed the
                maximum cluster count
        """
        if self._count + 1 > self.max_clusters:
            logger.error(
                f"Cluster limit exceeded: {self._count + 1} > {self.max_clusters}"
            )
            raise ConfigurationOverflowError(
                f"Over {self.max_clusters} clusters found. "
                "The epsilon and min points settings probably need tweaking.",
                details={"max_clusters": self.max_clusters},
            )
        self._count += 1
        self._clusters.append(cluster)

    @property
    def clusters(self) -> List[Cluster]:
        return list(self._clusters)

    @property
    def count(self) -> int:
        return self._count

    def reset(self) -> None:
        """Forget all clusters and restart the count."""
        self._clusters = []
        self._count = 0
