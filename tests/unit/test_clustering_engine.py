"""
Unit tests for ClusteringEngine orchestration layer.

Tests the ClusteringEngine class including:
- Extraction selection
- Parameter validation
- Label assignment and outlier counting
- Quality metrics
"""

import numpy as np
import pytest

from optics_clustering.config.settings_loader import Settings
from optics_clustering.core.base_clustering import (
    ClusteringConfig,
    ClusteringResult,
    calculate_quality_metrics,
    labels_from_clusters,
    pairwise_distances,
)
from optics_clustering.core.cluster import Cluster
from optics_clustering.core.clustering_engine import ClusteringEngine
from optics_clustering.core.extraction import DBSCANExtractor
from optics_clustering.core.metrics import EuclideanMetric
from optics_clustering.core.point import PointRecord
from optics_clustering.utils.error_handling import ConfigurationError


@pytest.mark.unit
class TestClusteringEngine:
    """Test suite for ClusteringEngine."""

    def test_init(self):
        """Test ClusteringEngine initialization."""
        engine = ClusteringEngine()
        assert engine.progress_log_interval == 1000
        assert engine.max_clusters == 1000

    def test_from_settings(self):
        settings = Settings(
            performance={"progress_log_interval": 10},
            extraction={"max_clusters": 7},
        )
        engine = ClusteringEngine.from_settings(settings)
        assert engine.progress_log_interval == 10
        assert engine.max_clusters == 7

    def test_extractor_registry(self):
        """Test that both extraction heuristics are registered."""
        for name in ["dbscan", "inflection"]:
            assert name in ClusteringEngine.EXTRACTORS

    def test_cluster_dbscan(self, two_groups_points):
        engine = ClusteringEngine()

        result = engine.cluster(
            two_groups_points,
            epsilon_max_radius=5.0,
            min_points=3,
            extraction="dbscan",
            extraction_params={"cluster_epsilon": 5.0},
        )

        assert isinstance(result, ClusteringResult)
        assert result.n_clusters == 2
        assert result.outlier_count == 0
        assert result.labels.tolist() == [0] * 6 + [1] * 6
        assert len(result.ordering) == 12

    def test_cluster_inflection(self, two_groups_points):
        engine = ClusteringEngine()

        result = engine.cluster(
            two_groups_points,
            epsilon_max_radius=5.0,
            min_points=3,
            extraction="inflection",
            extraction_params={"cluster_epsilon": 5.0, "min_delta": 0.5},
        )

        assert result.n_clusters == 2

    def test_case_insensitive_extraction_name(self, two_groups_points):
        engine = ClusteringEngine()
        for name in ["DBSCAN", "DBScan", "dbscan"]:
            result = engine.cluster(
                two_groups_points,
                epsilon_max_radius=5.0,
                min_points=3,
                extraction=name,
                extraction_params={"cluster_epsilon": 5.0},
            )
            assert result.n_clusters == 2

    def test_unsupported_extraction(self, two_groups_points):
        engine = ClusteringEngine()
        with pytest.raises(ValueError, match="Unsupported extraction"):
            engine.cluster(
                two_groups_points,
                epsilon_max_radius=5.0,
                min_points=3,
                extraction="xi",
                extraction_params={"cluster_epsilon": 5.0},
            )

    def test_cluster_dispatches_through_registry(self, two_groups_points, monkeypatch):
        """The extractor is looked up in EXTRACTORS by name."""
        calls = []

        class RecordingExtractor(DBSCANExtractor):
            def extract(self, ordered_points, cluster_epsilon):
                calls.append(cluster_epsilon)
                return super().extract(ordered_points, cluster_epsilon=cluster_epsilon)

        monkeypatch.setitem(ClusteringEngine.EXTRACTORS, "dbscan", RecordingExtractor)
        result = ClusteringEngine().cluster(
            two_groups_points,
            epsilon_max_radius=5.0,
            min_points=3,
            extraction_params={"cluster_epsilon": 5.0},
        )

        assert calls == [5.0]
        assert result.n_clusters == 2

    def test_foreign_parameter_rejected(self, two_groups_points):
        engine = ClusteringEngine()
        with pytest.raises(ConfigurationError, match="Invalid dbscan parameters") as exc_info:
            engine.cluster(
                two_groups_points,
                epsilon_max_radius=5.0,
                min_points=3,
                extraction_params={"cluster_epsilon": 5.0, "min_delta": 0.5},
            )
        assert "min_delta" in exc_info.value.details

    def test_missing_cluster_epsilon(self, two_groups_points):
        engine = ClusteringEngine()
        with pytest.raises(ConfigurationError, match="Invalid dbscan parameters"):
            engine.cluster(two_groups_points, epsilon_max_radius=5.0, min_points=3)

    def test_quality_metrics(self, two_groups_points):
        engine = ClusteringEngine()
        result = engine.cluster(
            two_groups_points,
            epsilon_max_radius=5.0,
            min_points=3,
            extraction_params={"cluster_epsilon": 5.0},
        )

        assert result.quality_metrics["clustered_ratio"] == 1.0
        assert result.quality_metrics["silhouette_score"] > 0.9

    def test_quality_metrics_disabled(self, two_groups_points):
        engine = ClusteringEngine()
        result = engine.cluster(
            two_groups_points,
            epsilon_max_radius=5.0,
            min_points=3,
            extraction_params={"cluster_epsilon": 5.0},
            compute_quality_metrics=False,
        )
        assert result.quality_metrics == {}

    def test_cluster_with_config(self, two_groups_points):
        config = ClusteringConfig(
            extraction="dbscan",
            epsilon_max_radius=5.0,
            min_points=3,
            params={"cluster_epsilon": 5.0},
        )
        result = ClusteringEngine().cluster_with_config(two_groups_points, config)
        assert result.n_clusters == 2

    def test_empty_points(self):
        result = ClusteringEngine().cluster(
            [],
            epsilon_max_radius=5.0,
            min_points=3,
            extraction_params={"cluster_epsilon": 5.0},
        )
        assert result.n_clusters == 0
        assert result.ordering == []
        assert len(result.labels) == 0


@pytest.mark.unit
class TestValidateClusteringConfig:
    """Test parameter validation."""

    def test_valid_dbscan(self):
        assert ClusteringEngine().validate_clustering_config("dbscan", {"cluster_epsilon": 1.0}) == {}

    def test_valid_inflection(self):
        errors = ClusteringEngine().validate_clustering_config(
            "inflection", {"cluster_epsilon": 1.0, "min_delta": 0.2}
        )
        assert errors == {}

    def test_negative_cluster_epsilon(self):
        errors = ClusteringEngine().validate_clustering_config("dbscan", {"cluster_epsilon": -1.0})
        assert "cluster_epsilon" in errors

    def test_negative_min_delta(self):
        errors = ClusteringEngine().validate_clustering_config(
            "inflection", {"cluster_epsilon": 1.0, "min_delta": -0.1}
        )
        assert "min_delta" in errors

    def test_unknown_metric(self):
        errors = ClusteringEngine().validate_clustering_config(
            "dbscan", {"cluster_epsilon": 1.0}, metric="cosine"
        )
        assert "metric" in errors

    def test_unknown_extraction(self):
        errors = ClusteringEngine().validate_clustering_config("xi", {})
        assert list(errors) == ["extraction"]


@pytest.mark.unit
class TestResultHelpers:
    """Test label and quality helpers."""

    def test_labels_from_clusters(self):
        points = [PointRecord(index=i, coordinates=(float(i),)) for i in range(6)]
        clusters = [Cluster.from_points(points[3:5]), Cluster.from_points(points[0:2])]

        labels = labels_from_clusters(6, clusters)

        assert labels.tolist() == [1, 1, -1, 0, 0, -1]

    def test_pairwise_distances(self):
        points = [
            PointRecord(index=0, coordinates=(0.0, 0.0)),
            PointRecord(index=1, coordinates=(3.0, 4.0)),
        ]
        matrix = pairwise_distances(points, EuclideanMetric())
        assert matrix.tolist() == [[0.0, 5.0], [5.0, 0.0]]

    def test_quality_metrics_single_cluster(self):
        matrix = np.zeros((3, 3))
        metrics = calculate_quality_metrics(matrix, np.array([0, 0, -1]))
        assert metrics == {"clustered_ratio": pytest.approx(2 / 3)}

    def test_result_to_dict(self, two_groups_points):
        result = ClusteringEngine().cluster(
            two_groups_points,
            epsilon_max_radius=5.0,
            min_points=3,
            extraction_params={"cluster_epsilon": 5.0},
        )
        data = result.to_dict()

        assert data["n_clusters"] == 2
        assert data["total_items"] == 12
        assert data["cluster_sizes"] == [6, 6]
        assert np.isnan(result.reachability[0])
