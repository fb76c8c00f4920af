#!/usr/bin/env python3
"""
OPTICS Clustering CLI

Command-line interface for ordering point sets and extracting clusters.

Usage:
    python cli.py order points.json                          # Print the cluster ordering
    python cli.py order points.json --json                   # Ordering as JSON
    python cli.py cluster points.json --method dbscan        # Order + DBSCAN-style extraction
    python cli.py cluster colors.json --metric ciede2000 \\
        --epsilon 20 --min-points 4 --method inflection      # Order + inflection extraction

Points files hold either a JSON list of coordinate lists or an object with a
"points" key. Defaults come from config/settings.yaml (or --config).
"""

import sys
import json
import uuid
import argparse
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from optics_clustering.config.settings_loader import ConfigManager, Settings
from optics_clustering.core.clustering_engine import ClusteringEngine
from optics_clustering.core.optics_engine import OpticsEngine
from optics_clustering.schemas.data_models import OrderedPoint, OrderingReport, PointsInput, build_report
from optics_clustering.utils.advanced_logging import LogContext, configure_logging, log_exceptions
from optics_clustering.utils.error_handling import OpticsError


class ClusteringCLI:
    """CLI for the OPTICS clustering library."""

    def __init__(self, settings: Settings):
        """
        Initialize CLI.

        Args:
            settings: Loaded settings supplying every default
        """
        self.settings = settings

    @staticmethod
    def load_points(path: str) -> List[List[float]]:
        """
        Read a points file.

        Raises:
            FileNotFoundError: If the file does not exist
            json.JSONDecodeError: If the file is not valid JSON
            ValidationError: If the JSON does not hold a list of points
        """
        with open(path, "r") as f:
            payload = json.load(f)
        return PointsInput.from_payload(payload).points

    def order(
        self,
        points: List[List[float]],
        epsilon_max_radius: float,
        min_points: int,
        metric: str,
        point_dimensions: Optional[int] = None,
    ) -> List[OrderedPoint]:
        """Compute the cluster ordering of the points."""
        engine = OpticsEngine(
            epsilon_max_radius=epsilon_max_radius,
            min_points=min_points,
            metric=metric,
            point_dimensions=point_dimensions,
            progress_log_interval=self.settings.performance.progress_log_interval,
            max_clusters=self.settings.extraction.max_clusters,
        )
        engine.add_points(points)
        return [OrderedPoint.from_record(p) for p in engine.run()]

    def cluster(
        self,
        points: List[List[float]],
        epsilon_max_radius: float,
        min_points: int,
        metric: str,
        method: str,
        params: Dict[str, float],
        point_dimensions: Optional[int] = None,
        run_id: Optional[str] = None,
    ) -> OrderingReport:
        """Order the points, extract clusters and build a report."""
        engine = ClusteringEngine.from_settings(self.settings)
        result = engine.cluster(
            points,
            epsilon_max_radius=epsilon_max_radius,
            min_points=min_points,
            extraction=method,
            extraction_params=params,
            metric=metric,
            point_dimensions=point_dimensions,
            compute_quality_metrics=self.settings.performance.compute_quality_metrics,
        )
        return build_report(
            result,
            metric=metric,
            extraction=method,
            epsilon_max_radius=epsilon_max_radius,
            min_points=min_points,
            extraction_params=params,
            run_id=run_id,
        )


def print_json(data: Any, indent: int = 2):
    """Pretty print JSON."""
    print(json.dumps(data, indent=indent, default=str))


def _fmt(value: Optional[float]) -> str:
    return "undefined" if value is None else f"{value:.4f}"


def print_ordering(ordering: List[OrderedPoint]):
    """Print the ordering as a text reachability plot."""
    print(f"📈 Cluster Ordering ({len(ordering)} points)\n")
    print(f"{'order':>6} {'index':>6} {'reachability':>14} {'core':>12}  point")
    for p in ordering:
        label = "" if p.cluster is None else f"  [cluster {p.cluster}]"
        print(
            f"{p.order:>6} {p.index:>6} {_fmt(p.reachability_distance):>14} "
            f"{_fmt(p.core_distance):>12}  {p.coordinates}{label}"
        )


def print_report(report: OrderingReport):
    """Print clustering results."""
    print(f"✅ Extraction: {report.extraction.value} (metric: {report.metric.value})")
    print(f"   Points: {report.total_items}")
    print(f"   Clusters: {report.clusters_created}")
    print(f"   Outliers: {report.outliers}")

    for name, value in report.quality_metrics.items():
        print(f"   {name}: {value:.4f}")

    if report.clusters:
        print("\n📦 Clusters\n")
        for cluster in report.clusters:
            print(
                f"   #{cluster.cluster_id}: {cluster.size} points "
                f"(orders {cluster.first_order}-{cluster.last_order})"
            )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="OPTICS Clustering CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("command", help="Command to execute", choices=["order", "cluster"])
    parser.add_argument("points_file", help="JSON file with the points")
    parser.add_argument("--metric", "-m", help="Metric (euclidean/ciede2000/haversine)")
    parser.add_argument("--epsilon", "-e", type=float, help="Maximum neighborhood radius")
    parser.add_argument("--min-points", "-k", type=int, help="Minimum neighbors for a core point")
    parser.add_argument("--dimensions", "-d", type=int, help="Point arity (defaults to the metric's)")
    parser.add_argument("--method", "-a", choices=["dbscan", "inflection"], help="Extraction heuristic")
    parser.add_argument("--cluster-epsilon", type=float, help="Extraction reachability threshold")
    parser.add_argument("--min-delta", type=float, help="Inflection base delta")
    parser.add_argument("--config", "-c", help="Settings YAML file")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of text")
    parser.add_argument("--log-level", help="Log level (DEBUG/INFO/WARNING/ERROR)")

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ConfigManager.reload_config(args.config)
    except (FileNotFoundError, OpticsError) as e:
        print(f"❌ Configuration failed: {e}", file=sys.stderr)
        sys.exit(1)

    log_settings = settings.logging
    configure_logging(
        log_level=args.log_level or log_settings.level,
        log_format=log_settings.format,
        log_file=log_settings.file.path if log_settings.file.enabled else None,
        service_name=settings.service.name,
        max_size_mb=log_settings.file.max_size_mb,
        backup_count=log_settings.file.backup_count,
    )

    optics = settings.optics
    epsilon = args.epsilon if args.epsilon is not None else optics.epsilon_max_radius
    min_points = args.min_points if args.min_points is not None else optics.min_points
    metric = (args.metric or optics.metric).lower()
    dimensions = args.dimensions if args.dimensions is not None else optics.point_dimensions

    cli = ClusteringCLI(settings)
    run_id = str(uuid.uuid4())

    try:
        with LogContext.run_context(run_id), log_exceptions(operation=f"cli_{args.command}"):
            points = cli.load_points(args.points_file)

            if args.command == "order":
                ordering = cli.order(points, epsilon, min_points, metric, dimensions)
                if args.json:
                    print_json([p.model_dump() for p in ordering])
                else:
                    print_ordering(ordering)
                return

            method = args.method or settings.extraction.default_method
            params = settings.extraction.params_for(method)
            if args.cluster_epsilon is not None:
                params["cluster_epsilon"] = args.cluster_epsilon
            if args.min_delta is not None and method == "inflection":
                params["min_delta"] = args.min_delta

            report = cli.cluster(
                points,
                epsilon_max_radius=epsilon,
                min_points=min_points,
                metric=metric,
                method=method,
                params=params,
                point_dimensions=dimensions,
                run_id=run_id,
            )
            if args.json:
                print_json(report.model_dump(mode="json"))
            else:
                print_report(report)
                print()
                print_ordering(report.ordering)

    except FileNotFoundError as e:
        print(f"❌ File not found: {e.filename}", file=sys.stderr)
        sys.exit(1)
    except (json.JSONDecodeError, ValidationError) as e:
        print(f"❌ Invalid points file: {e}", file=sys.stderr)
        sys.exit(1)
    except OpticsError as e:
        print(f"❌ {e.error_code}: {e.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
