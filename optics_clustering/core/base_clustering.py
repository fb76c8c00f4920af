"""
Clustering configuration and result containers.

Shared by ClusteringEngine and the reporting layer.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from optics_clustering.core.cluster import Cluster
from optics_clustering.core.metrics import BaseDistanceMetric
from optics_clustering.core.point import PointRecord

logger = logging.getLogger(__name__)


@dataclass
class ClusteringConfig:
    """Configuration for one ordering + extraction call."""

    extraction: str
    epsilon_max_radius: float
    min_points: int
    params: Dict[str, Any] = field(default_factory=dict)
    metric: str = "euclidean"
    point_dimensions: Optional[int] = None
    compute_quality_metrics: bool = True


class ClusteringResult:
    """Results from clustering operation."""

    def __init__(
        self,
        cluster_labels: np.ndarray,
        n_clusters: int,
        outlier_count: int,
        quality_metrics: Dict[str, float],
        ordering: Optional[List[PointRecord]] = None,
        clusters: Optional[List[Cluster]] = None,
    ):
        self.cluster_labels = cluster_labels
        self.n_clusters = n_clusters
        self.outlier_count = outlier_count
        self.quality_metrics = quality_metrics
        self.ordering = ordering or []
        self.clusters = clusters or []

    @property
    def labels(self) -> np.ndarray:
        """Alias for cluster_labels."""
        return self.cluster_labels

    @property
    def reachability(self) -> np.ndarray:
        """Reachability distances in ordering order (NaN = undefined)."""
        return np.array(
            [np.nan if p.reachability_distance is None else p.reachability_distance for p in self.ordering],
            dtype=np.float64,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "n_clusters": self.n_clusters,
            "outlier_count": self.outlier_count,
            "quality_metrics": self.quality_metrics,
            "total_items": len(self.cluster_labels),
            "cluster_sizes": [c.size for c in self.clusters],
        }


def labels_from_clusters(n_points: int, clusters: List[Cluster]) -> np.ndarray:
    """
    Per-point cluster labels indexed by insertion order.

    Args:
        n_points: Number of ingested points
        clusters: Extracted clusters (label = position in this list)

    Returns:
        int32 array, -1 for points outside every cluster
    """
    labels = np.full(n_points, -1, dtype=np.int32)
    for label, cluster in enumerate(clusters):
        labels[cluster.indices] = label
    return labels


def pairwise_distances(points: List[PointRecord], metric: BaseDistanceMetric) -> np.ndarray:
    """Symmetric distance matrix of the points under the metric."""
    n = len(points)
    matrix = np.zeros((n, n), dtype=np.float64)
    for i in range(n):
        for j in range(i + 1, n):
            d = metric.distance(points[i].coordinates, points[j].coordinates)
            matrix[i, j] = d
            matrix[j, i] = d
    return matrix


def calculate_quality_metrics(
    distance_matrix: np.ndarray,
    labels: np.ndarray,
) -> Dict[str, float]:
    """
    Calculate clustering quality metrics.

    Uses the precomputed distance matrix so that any metric (colors,
    geographic coordinates) is scored with the distance it was clustered by.

    Args:
        distance_matrix: Pairwise distances (N x N)
        labels: Cluster labels (-1 = noise)

    Returns:
        Dictionary of quality metrics
    """
    from sklearn.metrics import silhouette_score

    metrics: Dict[str, float] = {}

    non_outlier_mask = labels != -1
    n_clustered = int(np.sum(non_outlier_mask))
    if len(labels) > 0:
        metrics["clustered_ratio"] = float(n_clustered / len(labels))

    n_labels = len(np.unique(labels[non_outlier_mask]))
    if n_labels > 1 and n_clustered > n_labels:
        sub_matrix = distance_matrix[np.ix_(non_outlier_mask, non_outlier_mask)]
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                # Silhouette score (higher is better, range: -1 to 1)
                silhouette = silhouette_score(
                    sub_matrix,
                    labels[non_outlier_mask],
                    metric="precomputed",
                )
            metrics["silhouette_score"] = float(silhouette)
        except ValueError as e:
            logger.warning(f"Silhouette score could not be computed: {e}")

    return metrics
