"""
Clustering Engine - Orchestrates ordering and extraction.

Main entry point for clustering a point set in one call: ingest the points,
compute the OPTICS ordering, extract clusters with the requested heuristic
and summarize the outcome.
"""

import logging
from typing import Any, Dict, Iterable, Optional, Type, Union

import numpy as np

from optics_clustering.core.base_clustering import (
    ClusteringConfig,
    ClusteringResult,
    calculate_quality_metrics,
    labels_from_clusters,
    pairwise_distances,
)
from optics_clustering.core.extraction import BaseClusterExtractor, DBSCANExtractor, InflectionExtractor
from optics_clustering.core.metrics import METRICS
from optics_clustering.core.optics_engine import OpticsEngine
from optics_clustering.utils.advanced_logging import timed
from optics_clustering.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)


class ClusteringEngine:
    """
    Main clustering engine.

    Provides a unified interface over the two extraction heuristics.
    """

    # Registry of available extraction heuristics
    EXTRACTORS: Dict[str, Type[BaseClusterExtractor]] = {
        "dbscan": DBSCANExtractor,
        "inflection": InflectionExtractor,
    }

    def __init__(self, progress_log_interval: int = 1000, max_clusters: int = 1000):
        """
        Initialize clustering engine.

        Args:
            progress_log_interval: Passed to every OpticsEngine created
            max_clusters: Cluster ceiling for every OpticsEngine created
        """
        self.progress_log_interval = progress_log_interval
        self.max_clusters = max_clusters
        logger.info("Initialized ClusteringEngine")

    @classmethod
    def from_settings(cls, settings) -> "ClusteringEngine":
        """Create an engine from loaded Settings."""
        return cls(
            progress_log_interval=settings.performance.progress_log_interval,
            max_clusters=settings.extraction.max_clusters,
        )

    @timed(operation="optics_clustering")
    def cluster(
        self,
        points: Union[Iterable[Any], np.ndarray],
        epsilon_max_radius: float,
        min_points: int,
        extraction: str = "dbscan",
        extraction_params: Optional[Dict[str, Any]] = None,
        metric: str = "euclidean",
        point_dimensions: Optional[int] = None,
        compute_quality_metrics: bool = True,
    ) -> ClusteringResult:
        """
        Order the points and extract clusters.

        Args:
            points: Point payloads (sequence of sequences or 2-D array)
            epsilon_max_radius: Neighborhood radius for the ordering
            min_points: Density threshold
            extraction: Heuristic name (dbscan/inflection)
            extraction_params: Heuristic parameters (cluster_epsilon, min_delta)
            metric: Metric name (euclidean/ciede2000/haversine) or instance
            point_dimensions: Payload arity override
            compute_quality_metrics: Score the result with a silhouette

        Returns:
            ClusteringResult with labels, ordering and clusters

        Raises:
            ConfigurationError: If extraction or its parameters are invalid
        """
        extraction = extraction.lower()
        params = dict(extraction_params or {})

        errors = self.validate_clustering_config(extraction, params)
        if errors:
            if "extraction" in errors:
                raise ConfigurationError(
                    f"Unsupported extraction '{extraction}'. "
                    f"Supported: {list(self.EXTRACTORS.keys())}",
                    details=errors,
                )
            raise ConfigurationError(
                f"Invalid {extraction} parameters: {errors}",
                details=errors,
            )

        config = ClusteringConfig(
            extraction=extraction,
            epsilon_max_radius=epsilon_max_radius,
            min_points=min_points,
            params=params,
            metric=metric,
            point_dimensions=point_dimensions,
            compute_quality_metrics=compute_quality_metrics,
        )
        return self.cluster_with_config(points, config)

    def cluster_with_config(
        self,
        points: Union[Iterable[Any], np.ndarray],
        config: ClusteringConfig,
    ) -> ClusteringResult:
        """Order and extract according to a ClusteringConfig."""
        engine = OpticsEngine(
            epsilon_max_radius=config.epsilon_max_radius,
            min_points=config.min_points,
            metric=config.metric,
            point_dimensions=config.point_dimensions,
            progress_log_interval=self.progress_log_interval,
            max_clusters=self.max_clusters,
        )
        engine.add_points(points)

        logger.info(f"Starting OPTICS ordering on {len(engine)} points")
        ordering = engine.run()

        clusters = engine.extract_clusters(self.EXTRACTORS[config.extraction], **config.params)

        labels = labels_from_clusters(len(engine), clusters)
        outlier_count = int(np.sum(labels == -1))

        quality_metrics: Dict[str, float] = {}
        if config.compute_quality_metrics and len(clusters) > 1:
            distances = pairwise_distances(engine.points, engine.metric)
            quality_metrics = calculate_quality_metrics(distances, labels)

        logger.info(
            f"{config.extraction} extraction complete: {len(clusters)} clusters, "
            f"{outlier_count} outliers"
        )

        return ClusteringResult(
            cluster_labels=labels,
            n_clusters=len(clusters),
            outlier_count=outlier_count,
            quality_metrics=quality_metrics,
            ordering=ordering,
            clusters=clusters,
        )

    def validate_clustering_config(
        self,
        extraction: str,
        params: Dict[str, Any],
        metric: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Validate extraction configuration.

        Args:
            extraction: Heuristic name
            params: Heuristic parameters
            metric: Optional metric name to check against the registry

        Returns:
            Dictionary of validation errors (empty if valid)
        """
        errors = {}

        if extraction not in self.EXTRACTORS:
            errors["extraction"] = f"Unsupported extraction '{extraction}'"
            return errors

        if metric is not None and metric.lower() not in METRICS:
            errors["metric"] = f"Unsupported metric '{metric}'"

        accepted = self.EXTRACTORS[extraction].parameters
        for key in params:
            if key not in accepted:
                errors[key] = f"Not a {extraction} parameter"

        cluster_epsilon = params.get("cluster_epsilon")
        if cluster_epsilon is None:
            errors["cluster_epsilon"] = "Required"
        elif cluster_epsilon < 0:
            errors["cluster_epsilon"] = "Must be >= 0"

        if extraction == "inflection":
            min_delta = params.get("min_delta", 0.5)
            if min_delta < 0:
                errors["min_delta"] = "Must be >= 0"

        return errors
