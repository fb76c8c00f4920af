"""
Core OPTICS module.

Exports:
- OpticsEngine: Cluster ordering engine
- PointRecord, NeighborEdge: Per-point state
- Cluster, ClusterRegistry: Extraction output
- DBSCANExtractor, InflectionExtractor: Extraction heuristics
- ClusteringEngine: One-call orchestration
- ClusteringResult, ClusteringConfig: Result and configuration containers
- Distance metrics
"""

from optics_clustering.core.metrics import (
    BaseDistanceMetric,
    CallableMetric,
    CIEDE2000Metric,
    EuclideanMetric,
    HaversineMetric,
    METRICS,
    get_metric,
)
from optics_clustering.core.point import NeighborEdge, PointRecord
from optics_clustering.core.cluster import Cluster, ClusterRegistry
from optics_clustering.core.extraction import (
    BaseClusterExtractor,
    DBSCANExtractor,
    InflectionExtractor,
)
from optics_clustering.core.optics_engine import OpticsEngine
from optics_clustering.core.base_clustering import ClusteringConfig, ClusteringResult
from optics_clustering.core.clustering_engine import ClusteringEngine

__all__ = [
    "OpticsEngine",
    "PointRecord",
    "NeighborEdge",
    "Cluster",
    "ClusterRegistry",
    "BaseClusterExtractor",
    "DBSCANExtractor",
    "InflectionExtractor",
    "ClusteringEngine",
    "ClusteringResult",
    "ClusteringConfig",
    "BaseDistanceMetric",
    "CallableMetric",
    "EuclideanMetric",
    "CIEDE2000Metric",
    "HaversineMetric",
    "METRICS",
    "get_metric",
]
