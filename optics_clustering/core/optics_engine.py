"""
OPTICS Ordering Engine.

Ordering Points To Identify the Clustering Structure (Ankerst, Breunig,
Kriegel, Sander 1999) produces an ordering of the points together with a
core distance and a reachability distance for each of them.

This engine does not use the textbook priority queue. After expanding a
point it continues with that point's nearest unprocessed neighbor and
queues the remaining neighbors in a FIFO seed list, which is only consulted
once an expansion yields no unprocessed neighbor. When the seed list is
exhausted the first unprocessed point in insertion order is taken. Neighbor
scans are unindexed, so a run is O(n^2) distance evaluations.
"""

import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Tuple, Type, Union

import numpy as np

from optics_clustering.core.cluster import DEFAULT_MAX_CLUSTERS, Cluster, ClusterRegistry
from optics_clustering.core.extraction import (
    BaseClusterExtractor,
    DBSCANExtractor,
    InflectionExtractor,
    core_distance_std,
)
from optics_clustering.core.metrics import BaseDistanceMetric, get_metric
from optics_clustering.core.point import NeighborEdge, PointRecord
from optics_clustering.utils.advanced_logging import PerformanceLogger, ProgressLogger
from optics_clustering.utils.error_handling import ConfigurationError, DegenerateInputError

logger = logging.getLogger(__name__)


class OpticsEngine:
    """
    Computes the OPTICS cluster ordering of a point set.

    The engine owns the point arena: every per-point mutation during a run
    is an indexed write into ``self._points``.
    """

    def __init__(
        self,
        epsilon_max_radius: float,
        min_points: int,
        metric: Union[str, BaseDistanceMetric, Callable[[Any, Any], float]] = "euclidean",
        point_dimensions: Optional[int] = None,
        progress_log_interval: int = 1000,
        max_clusters: int = DEFAULT_MAX_CLUSTERS,
    ):
        """
        Initialize engine.

        Args:
            epsilon_max_radius: Maximum radius of a neighborhood
            min_points: Minimum neighbors for a point to be a core point
            metric: Metric name, metric instance or plain distance function
            point_dimensions: Payload arity (None = metric default)
            progress_log_interval: Log progress every N expanded points
            max_clusters: Ceiling on the number of extracted clusters

        Raises:
            ConfigurationError: If the radius is negative, min_points < 2 or
                the metric is unknown
        """
        if epsilon_max_radius < 0:
            raise ConfigurationError(
                "epsilon_max_radius must be >= 0",
                details={"epsilon_max_radius": epsilon_max_radius},
            )
        if min_points < 2:
            raise ConfigurationError(
                "min_points must be >= 2",
                details={"min_points": min_points},
            )

        self.epsilon_max_radius = epsilon_max_radius
        self.min_points = min_points
        self.metric = get_metric(metric, point_dimensions)
        self.progress_log_interval = progress_log_interval

        self._points: List[PointRecord] = []
        self._ordered: List[PointRecord] = []
        self._unprocessed: Dict[int, PointRecord] = {}
        self._seeds: Deque[int] = deque()
        self._registry = ClusterRegistry(max_clusters=max_clusters)
        self._has_run = False

        logger.info(
            f"Initialized OpticsEngine: epsilon_max_radius={epsilon_max_radius}, "
            f"min_points={min_points}, metric={self.metric.name}"
        )

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    def add_point(self, payload: Any) -> PointRecord:
        """
        Add one data point.

        Args:
            payload: Coordinates in the shape the metric expects

        Returns:
            The new point record

        Raises:
            InvalidInputError: If the payload arity does not match the metric
        """
        coordinates = self.metric.validate(payload)
        point = PointRecord(index=len(self._points), coordinates=coordinates)
        self._points.append(point)
        return point

    def add_points(self, payloads: Union[Iterable[Any], np.ndarray]) -> List[PointRecord]:
        """
        Add many data points (a 2-D numpy array adds one point per row).

        The whole batch is validated before any point is added.

        Raises:
            InvalidInputError: If any payload does not match the metric; no
                point of the batch is added
        """
        batch = [self.metric.validate(payload) for payload in payloads]
        start = len(self._points)
        added = [PointRecord(index=start + i, coordinates=coordinates) for i, coordinates in enumerate(batch)]
        self._points.extend(added)
        logger.debug(f"Added {len(added)} points ({len(self._points)} total)")
        return added

    # -------------------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------------------

    def run(self) -> List[PointRecord]:
        """
        Order the current points.

        Returns:
            Points in cluster order, each carrying order, core distance and
            reachability distance
        """
        self._reset_run_state()

        if not self._points:
            logger.warning("OpticsEngine.run() called with no points, returning empty ordering")
            self._has_run = True
            return []

        progress = ProgressLogger(
            total_items=len(self._points),
            operation="optics_ordering",
            log_interval=self.progress_log_interval,
        )

        with PerformanceLogger(
            "optics_ordering",
            item_count=len(self._points),
            metric=self.metric.name,
            epsilon_max_radius=self.epsilon_max_radius,
            min_points=self.min_points,
        ) as perf:
            next_point: Optional[PointRecord] = self._points[0]
            while next_point is not None:
                next_point = self._expand_cluster_order(next_point)
                progress.update(seed_queue=len(self._seeds))
                if next_point is None:
                    next_point = self._find_next_unprocessed()

            for order, point in enumerate(self._ordered):
                point.order = order

            # seeded stays set until the next run starts
            for point in self._points:
                point.processed = False

            perf.add_result(
                core_points=sum(1 for p in self._ordered if p.core_distance is not None),
                unreached_points=sum(1 for p in self._ordered if p.reachability_distance is None),
            )

        progress.complete()
        self._has_run = True
        return list(self._ordered)

    def _reset_run_state(self) -> None:
        for point in self._points:
            point.reset()
        self._ordered = []
        self._unprocessed = {point.index: point for point in self._points}
        self._seeds = deque()

    def _expand_cluster_order(self, point: PointRecord) -> Optional[PointRecord]:
        """
        Expand one point and pick the point to expand after it.

        Returns:
            The nearest unprocessed neighbor, or None when there is none
        """
        self._process_point(point)
        self._epsilon_neighborhood(point)
        point.update_core_distance(self.min_points)
        self._propagate_reachability(point)
        if point.core_distance is None:
            point.discard_neighbor_distances()

        next_point: Optional[PointRecord] = None
        for edge in point.neighbors:
            neighbor = self._points[edge.index]
            if neighbor.processed:
                continue
            if next_point is None:
                next_point = neighbor
            elif not neighbor.seeded:
                neighbor.seeded = True
                self._seeds.append(neighbor.index)

        return next_point

    def _process_point(self, point: PointRecord) -> None:
        point.processed = True
        point.seeded = True
        self._ordered.append(point)
        del self._unprocessed[point.index]

    def _epsilon_neighborhood(self, point: PointRecord) -> None:
        """Scan every unprocessed point and keep those within epsilon."""
        edges = []
        for other in self._unprocessed.values():
            if other.index == point.index:
                continue
            distance = self.metric.distance(point.coordinates, other.coordinates)
            if distance <= self.epsilon_max_radius:
                edges.append(NeighborEdge(other.index, distance))
        point.set_neighbors(edges)

    def _propagate_reachability(self, point: PointRecord) -> None:
        for edge in point.neighbors:
            rd = point.reachability_via(edge)
            self._points[edge.index].offer_reachability(rd)

    def _find_next_unprocessed(self) -> Optional[PointRecord]:
        """First unprocessed point from the seed list, else in insertion order."""
        while self._seeds:
            candidate = self._points[self._seeds.popleft()]
            if not candidate.processed:
                return candidate

        for point in self._unprocessed.values():
            return point
        return None

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def points(self) -> List[PointRecord]:
        """All points in insertion order."""
        return list(self._points)

    @property
    def ordered_points(self) -> List[PointRecord]:
        """Points in the order produced by the last run."""
        return list(self._ordered)

    @property
    def unprocessed_points(self) -> List[PointRecord]:
        return list(self._unprocessed.values())

    def __len__(self) -> int:
        return len(self._points)

    # -------------------------------------------------------------------------
    # Clusters
    # -------------------------------------------------------------------------

    @property
    def clusters(self) -> List[Cluster]:
        """Every cluster extracted since the last reset_clusters()."""
        return self._registry.clusters

    @property
    def n_clusters(self) -> int:
        return self._registry.count

    def reset_clusters(self) -> None:
        """Forget extracted clusters and restart the cluster count."""
        self._registry.reset()

    def _require_ordering(self) -> List[PointRecord]:
        if not self._has_run:
            raise DegenerateInputError(
                "run() has not produced an ordering yet",
                details={"n_points": len(self._points)},
            )
        return self._ordered

    def extract_clusters(self, extractor_cls: Type[BaseClusterExtractor], **params: Any) -> List[Cluster]:
        """
        Extract clusters from the last ordering with any extraction heuristic.

        Args:
            extractor_cls: BaseClusterExtractor subclass to run
            **params: Thresholds accepted by its extract()

        Returns:
            Clusters found by this extraction
        """
        extractor = extractor_cls(self.min_points, self._registry)
        return extractor.extract(self._require_ordering(), **params)

    def extract_dbscan_clusters(self, cluster_epsilon: float) -> List[Cluster]:
        """
        Extract DBSCAN-style clusters from the last ordering.

        Args:
            cluster_epsilon: Reachability threshold

        Returns:
            Clusters found by this extraction
        """
        return self.extract_clusters(DBSCANExtractor, cluster_epsilon=cluster_epsilon)

    def extract_inflection_clusters(
        self,
        cluster_epsilon: float,
        min_delta: float = 0.5,
    ) -> List[Cluster]:
        """
        Extract inflection-based clusters from the last ordering.

        Args:
            cluster_epsilon: Reachability above this always starts a new cluster
            min_delta: Base reachability jump tolerated inside a cluster

        Returns:
            Clusters found by this extraction
        """
        return self.extract_clusters(
            InflectionExtractor,
            cluster_epsilon=cluster_epsilon,
            min_delta=min_delta,
        )

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def core_distance_std(self) -> float:
        """Population standard deviation of the defined core distances."""
        return core_distance_std(self._points)

    def reachability_plot(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Reachability plot of the last ordering.

        Returns:
            (indices, reachability, core) arrays in ordering order; undefined
            distances are NaN
        """
        ordered = self._ordered
        indices = np.array([p.index for p in ordered], dtype=np.int64)
        reachability = np.array(
            [np.nan if p.reachability_distance is None else p.reachability_distance for p in ordered],
            dtype=np.float64,
        )
        core = np.array(
            [np.nan if p.core_distance is None else p.core_distance for p in ordered],
            dtype=np.float64,
        )
        return indices, reachability, core
