"""
data_models.py

Pydantic data models for the OPTICS clustering library.
Defines the points input file and the report produced from an ordering run.

Schema Design:
- Input: a JSON list of coordinate lists, or an object with a "points" key
- Output: the ordering (one entry per point) plus extracted cluster summaries
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from optics_clustering.core.base_clustering import ClusteringResult
from optics_clustering.core.cluster import Cluster
from optics_clustering.core.point import PointRecord


# =============================================================================
# ENUMS
# =============================================================================


class ExtractionMethod(str, Enum):
    """Supported cluster extraction heuristics."""

    DBSCAN = "dbscan"
    INFLECTION = "inflection"


class MetricName(str, Enum):
    """Built-in distance metrics."""

    EUCLIDEAN = "euclidean"
    CIEDE2000 = "ciede2000"
    HAVERSINE = "haversine"


# =============================================================================
# INPUT MODELS
# =============================================================================


class PointsInput(BaseModel):
    """Points file contents."""

    points: List[List[float]] = Field(default_factory=list, description="Point coordinates in insertion order")

    @field_validator("points")
    @classmethod
    def validate_points(cls, v: List[List[float]]) -> List[List[float]]:
        for i, point in enumerate(v):
            if not point:
                raise ValueError(f"Point {i} has no coordinates")
        return v

    @classmethod
    def from_payload(cls, payload: Union[List[Any], Dict[str, Any]]) -> "PointsInput":
        """Accept either a bare list of points or {"points": [...]}."""
        if isinstance(payload, list):
            return cls(points=payload)
        return cls(**payload)


# =============================================================================
# OUTPUT MODELS
# =============================================================================


class OrderedPoint(BaseModel):
    """One entry of the cluster ordering."""

    index: int = Field(..., description="Insertion index")
    order: int = Field(..., description="Position in the ordering")
    coordinates: List[float]
    core_distance: Optional[float] = Field(None, description="Null when the neighborhood is too sparse")
    reachability_distance: Optional[float] = Field(None, description="Null for a point no earlier point reaches")
    cluster: Optional[int] = Field(None, description="Cluster label (null = not in any cluster)")

    @classmethod
    def from_record(cls, record: PointRecord, cluster: Optional[int] = None) -> "OrderedPoint":
        return cls(
            index=record.index,
            order=record.order,
            coordinates=list(record.coordinates),
            core_distance=record.core_distance,
            reachability_distance=record.reachability_distance,
            cluster=cluster,
        )


class ClusterSummary(BaseModel):
    """Summary of one extracted cluster."""

    cluster_id: int
    size: int = Field(..., ge=1)
    indices: List[int] = Field(..., description="Member insertion indices in ordering order")
    first_order: int
    last_order: int

    @classmethod
    def from_cluster(cls, cluster_id: int, cluster: Cluster) -> "ClusterSummary":
        orders = cluster.orders
        return cls(
            cluster_id=cluster_id,
            size=cluster.size,
            indices=cluster.indices,
            first_order=orders[0],
            last_order=orders[-1],
        )


class OrderingReport(BaseModel):
    """Result of one ordering run and its extraction."""

    run_id: Optional[str] = None
    metric: MetricName
    extraction: ExtractionMethod
    epsilon_max_radius: float
    min_points: int
    extraction_params: Dict[str, float] = Field(default_factory=dict)
    total_items: int
    clusters_created: int
    outliers: int
    quality_metrics: Dict[str, float] = Field(default_factory=dict)
    ordering: List[OrderedPoint] = Field(default_factory=list)
    clusters: List[ClusterSummary] = Field(default_factory=list)
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def build_report(
    result: ClusteringResult,
    metric: str,
    extraction: str,
    epsilon_max_radius: float,
    min_points: int,
    extraction_params: Optional[Dict[str, float]] = None,
    run_id: Optional[str] = None,
) -> OrderingReport:
    """
    Build an OrderingReport from a ClusteringResult.

    Args:
        result: Output of ClusteringEngine.cluster()
        metric: Metric name used for the run
        extraction: Extraction heuristic used
        epsilon_max_radius: Ordering radius
        min_points: Density threshold
        extraction_params: Heuristic parameters
        run_id: Optional run identifier

    Returns:
        OrderingReport
    """
    labels = result.cluster_labels
    ordering = []
    for record in result.ordering:
        label = int(labels[record.index])
        ordering.append(OrderedPoint.from_record(record, cluster=label if label >= 0 else None))

    return OrderingReport(
        run_id=run_id,
        metric=MetricName(metric.lower()),
        extraction=ExtractionMethod(extraction),
        epsilon_max_radius=epsilon_max_radius,
        min_points=min_points,
        extraction_params=dict(extraction_params or {}),
        total_items=len(labels),
        clusters_created=result.n_clusters,
        outliers=result.outlier_count,
        quality_metrics=result.quality_metrics,
        ordering=ordering,
        clusters=[ClusterSummary.from_cluster(i, c) for i, c in enumerate(result.clusters)],
    )
