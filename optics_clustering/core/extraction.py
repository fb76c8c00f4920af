"""
Cluster Extraction from an OPTICS ordering.

Two independent heuristics turn the ordered sequence into contiguous
clusters:

- DBSCANExtractor: density threshold on reachability (DBSCAN-equivalent
  clusters for a given cluster epsilon)
- InflectionExtractor: splits where reachability jumps by more than a delta
  that adapts to the spread of core distances in the data; noisy data pulls
  out clusters with more variability inside, smooth data is split more
  readily

A buffer becomes a cluster only when it holds strictly more than
``min_points`` members.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from optics_clustering.core.cluster import Cluster, ClusterRegistry
from optics_clustering.core.point import PointRecord
from optics_clustering.utils.error_handling import DegenerateInputError

logger = logging.getLogger(__name__)


def mean_reachability(points: Sequence[PointRecord]) -> float:
    """
    Mean of all defined reachability distances.

    Raises:
        DegenerateInputError: If no point has a defined reachability distance
    """
    values = [p.reachability_distance for p in points if p.reachability_distance is not None]
    if not values:
        raise DegenerateInputError(
            "No points with a defined reachability distance; "
            "cannot compute the average reachability",
            details={"n_points": len(points)},
        )
    return sum(values) / len(values)


def core_distance_std(points: Sequence[PointRecord]) -> float:
    """Population standard deviation of all defined core distances (0.0 if none)."""
    values = [p.core_distance for p in points if p.core_distance is not None]
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    variance = 0.0
    for value in values:
        variance += (value - mean) ** 2
    variance /= len(values)
    return math.sqrt(variance)


class BaseClusterExtractor(ABC):
    """
    Abstract base class for extraction heuristics.

    Clusters are returned per call and also recorded in the registry, which
    enforces the overall cluster ceiling.
    """

    name: str = "base"
    parameters: Tuple[str, ...] = ()

    def __init__(self, min_points: int, registry: Optional[ClusterRegistry] = None):
        """
        Initialize extractor.

        Args:
            min_points: A buffer needs more than this many members to count
            registry: Registry shared with the engine (a private one if None)
        """
        self.min_points = min_points
        self.registry = registry if registry is not None else ClusterRegistry()

    @abstractmethod
    def extract(self, ordered_points: Sequence[PointRecord], **params) -> List[Cluster]:
        """
        Extract clusters from an ordered sequence.

        Args:
            ordered_points: Output of OpticsEngine.run()
            **params: Heuristic-specific thresholds

        Returns:
            Clusters in ordering order
        """
        pass

    def _flush(self, buffer: List[PointRecord], clusters: List[Cluster]) -> None:
        if len(buffer) > self.min_points:
            cluster = Cluster.from_points(buffer)
            self.registry.add(cluster)
            clusters.append(cluster)


class DBSCANExtractor(BaseClusterExtractor):
    """Density-threshold extraction."""

    name = "dbscan"
    parameters = ("cluster_epsilon",)

    def extract(
        self,
        ordered_points: Sequence[PointRecord],
        cluster_epsilon: float,
    ) -> List[Cluster]:
        """
        Extract DBSCAN-style clusters.

        Args:
            ordered_points: Output of OpticsEngine.run()
            cluster_epsilon: Reachability threshold (<= epsilon_max_radius)

        Returns:
            Clusters in ordering order
        """
        clusters: List[Cluster] = []
        buffer: List[PointRecord] = []

        for p in ordered_points:
            rd = p.reachability_distance
            if rd is None or rd > cluster_epsilon:
                self._flush(buffer, clusters)
                if p.core_distance is not None and p.core_distance <= cluster_epsilon:
                    buffer = [p]
                else:
                    # Noise
                    buffer = []
            else:
                buffer.append(p)

        self._flush(buffer, clusters)

        logger.info(
            f"DBSCAN extraction (cluster_epsilon={cluster_epsilon}) found "
            f"{len(clusters)} clusters in {len(ordered_points)} points"
        )
        return clusters


class InflectionExtractor(BaseClusterExtractor):
    """Inflection-based extraction."""

    name = "inflection"
    parameters = ("cluster_epsilon", "min_delta")

    def extract(
        self,
        ordered_points: Sequence[PointRecord],
        cluster_epsilon: float,
        min_delta: float = 0.5,
    ) -> List[Cluster]:
        """
        Extract clusters at reachability inflections.

        Args:
            ordered_points: Output of OpticsEngine.run()
            cluster_epsilon: Reachability above this always starts a new cluster
            min_delta: Base jump size tolerated inside a cluster; widened by
                a tenth of the core-distance standard deviation

        Returns:
            Clusters in ordering order

        Raises:
            DegenerateInputError: If no point has a defined reachability distance
        """
        avg_rd = mean_reachability(ordered_points)
        min_delta = min_delta + core_distance_std(ordered_points) / 10

        logger.debug(
            f"Inflection extraction: avg_rd={avg_rd}, effective min_delta={min_delta}"
        )

        clusters: List[Cluster] = []
        previous = ordered_points[0]
        buffer: List[PointRecord] = [previous]
        running_rd: List[float] = []

        for position in range(1, len(ordered_points)):
            p = ordered_points[position]
            next_point = ordered_points[position + 1] if position + 1 < len(ordered_points) else None

            if self._continues_cluster(p, previous, next_point, cluster_epsilon, min_delta, avg_rd, running_rd):
                buffer.append(p)
                running_rd.append(p.reachability_distance)
            else:
                self._flush(buffer, clusters)
                buffer = [p]
                running_rd = []

            previous = p

        self._flush(buffer, clusters)

        logger.info(
            f"Inflection extraction (cluster_epsilon={cluster_epsilon}, "
            f"min_delta={min_delta:.4f}) found {len(clusters)} clusters "
            f"in {len(ordered_points)} points"
        )
        return clusters

    @staticmethod
    def _continues_cluster(
        p: PointRecord,
        previous: PointRecord,
        next_point: Optional[PointRecord],
        cluster_epsilon: float,
        min_delta: float,
        avg_rd: float,
        running_rd: List[float],
    ) -> bool:
        """Decide whether p is added to the current buffer or starts a new one."""
        rd = p.reachability_distance
        if rd == 0:
            return True
        if rd is None or rd > cluster_epsilon:
            return False

        # Undefined neighbors count as zero
        previous_rd = previous.reachability_distance or 0.0
        next_rd = None
        if next_point is not None:
            next_rd = next_point.reachability_distance or 0.0

        if previous_rd + min_delta > rd:
            return True
        if next_rd is not None and next_rd + min_delta > rd:
            return True

        # Low density region: tolerate twice the delta
        if running_rd and sum(running_rd) / len(running_rd) < avg_rd - min_delta:
            if previous_rd + min_delta * 2 > rd:
                return True
            if next_rd is not None and next_rd + min_delta * 2 > rd:
                return True

        return False
