"""
End-to-end tests for the command-line interface.

Tests the complete workflow:
1. Write a points file
2. Run the CLI (order / cluster)
3. Check the printed ordering, report and exit status
"""

import json

import pytest

import cli


def _run(capsys, *argv):
    cli.main(list(argv))
    return capsys.readouterr()


@pytest.mark.e2e
class TestOrderCommand:
    """Test the order command."""

    def test_order_json(self, capsys, points_file):
        captured = _run(
            capsys, "order", str(points_file),
            "--epsilon", "5", "--min-points", "3", "--json", "--log-level", "WARNING",
        )
        ordering = json.loads(captured.out)

        assert len(ordering) == 12
        assert [p["order"] for p in ordering] == list(range(12))
        assert ordering[0]["reachability_distance"] is None
        assert ordering[6]["reachability_distance"] is None
        assert sorted(p["index"] for p in ordering[:6]) == list(range(6))

    def test_order_text(self, capsys, points_file):
        captured = _run(
            capsys, "order", str(points_file),
            "--epsilon", "5", "--min-points", "3", "--log-level", "WARNING",
        )
        assert "Cluster Ordering (12 points)" in captured.out
        assert "undefined" in captured.out

    def test_bare_list_file(self, capsys, tmp_path):
        path = tmp_path / "colors.json"
        path.write_text(json.dumps([[255, 0, 0], [250, 5, 5], [0, 0, 255]]))

        captured = _run(
            capsys, "order", str(path),
            "--metric", "ciede2000", "--epsilon", "10", "--min-points", "2", "--json",
            "--log-level", "WARNING",
        )
        ordering = json.loads(captured.out)

        assert [p["index"] for p in ordering] == [0, 1, 2]
        assert ordering[2]["reachability_distance"] is None


@pytest.mark.e2e
class TestClusterCommand:
    """Test the cluster command."""

    def test_cluster_json(self, capsys, points_file):
        captured = _run(
            capsys, "cluster", str(points_file),
            "--epsilon", "5", "--min-points", "3", "--method", "dbscan",
            "--cluster-epsilon", "5", "--json", "--log-level", "WARNING",
        )
        report = json.loads(captured.out)

        assert report["extraction"] == "dbscan"
        assert report["clusters_created"] == 2
        assert report["outliers"] == 0
        assert [c["size"] for c in report["clusters"]] == [6, 6]
        assert report["extraction_params"] == {"cluster_epsilon": 5.0}
        assert report["run_id"]

    def test_cluster_inflection_text(self, capsys, points_file):
        captured = _run(
            capsys, "cluster", str(points_file),
            "--epsilon", "5", "--min-points", "3", "--method", "inflection",
            "--cluster-epsilon", "5", "--min-delta", "0.5", "--log-level", "WARNING",
        )

        assert "Extraction: inflection" in captured.out
        assert "Clusters: 2" in captured.out
        assert "#1: 6 points (orders 6-11)" in captured.out

    def test_settings_file(self, capsys, points_file, tmp_path):
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(
            "optics:\n"
            "  epsilon_max_radius: 5.0\n"
            "  min_points: 3\n"
            "extraction:\n"
            "  default_method: dbscan\n"
            "  dbscan:\n"
            "    cluster_epsilon: 5.0\n"
            "logging:\n"
            "  level: WARNING\n"
        )

        captured = _run(capsys, "cluster", str(points_file), "--config", str(config_file), "--json")
        report = json.loads(captured.out)

        assert report["min_points"] == 3
        assert report["clusters_created"] == 2


@pytest.mark.e2e
class TestCLIErrors:
    """Errors print a message and exit with status 1."""

    def test_missing_points_file(self, capsys, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["order", str(tmp_path / "missing.json"), "--log-level", "WARNING"])

        assert exc_info.value.code == 1
        assert "File not found" in capsys.readouterr().err

    def test_invalid_json(self, capsys, tmp_path):
        path = tmp_path / "points.json"
        path.write_text("{not json")

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["order", str(path), "--log-level", "WARNING"])

        assert exc_info.value.code == 1
        assert "Invalid points file" in capsys.readouterr().err

    def test_wrong_arity_for_metric(self, capsys, points_file):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["order", str(points_file), "--metric", "ciede2000", "--log-level", "WARNING"])

        assert exc_info.value.code == 1
        assert "InvalidInputError" in capsys.readouterr().err

    def test_min_points_too_small(self, capsys, points_file):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["order", str(points_file), "--min-points", "1", "--log-level", "WARNING"])

        assert exc_info.value.code == 1
        assert "ConfigurationError" in capsys.readouterr().err

    def test_missing_config_file(self, capsys, points_file, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["order", str(points_file), "--config", str(tmp_path / "missing.yaml")])

        assert exc_info.value.code == 1
        assert "Configuration failed" in capsys.readouterr().err

    def test_unknown_command(self, points_file):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["explode", str(points_file)])
        assert exc_info.value.code == 2
