"""Tests for CLI."""

import subprocess
import sys
from pathlib import Path

import pytest

from transit_graph.cli import parse_stop_zone_overrides


def run_cli(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "transit_graph.cli", *args],
        capture_output=True,
        text=True,
    )


def test_cli_convert_basic(gtfs_minimal: Path) -> None:
    """Test CLI convert command."""
    result = run_cli("convert", "--input", str(gtfs_minimal))

    assert result.returncode == 0
    assert "Conversion successful" in result.stdout
    assert "'service_nodes': 4" in result.stdout


def test_cli_convert_options(gtfs_minimal: Path) -> None:
    """Test CLI convert command with service and zoning options."""
    result = run_cli(
        "-v",
        "convert",
        "--input",
        str(gtfs_minimal),
        "--exclude-route",
        "R2",
        "--search-radius",
        "25",
        "--crs",
        "EPSG:2154",
        "--prune-dangling-nodes",
        "true",
    )

    assert result.returncode == 0
    assert "'routed_services': 1" in result.stdout
    assert "'service_nodes': 3" in result.stdout


def test_cli_convert_strict_failure(gtfs_edgecases: Path) -> None:
    """Test strict conversion of an invalid feed fails."""
    result = run_cli("convert", "--input", str(gtfs_edgecases), "--strict", "true")

    assert result.returncode == 1
    assert "Error:" in result.stderr


def test_cli_convert_missing_input(tmp_path: Path) -> None:
    """Test converting a missing feed fails cleanly."""
    result = run_cli("convert", "--input", str(tmp_path / "missing"))

    assert result.returncode == 1
    assert "Error:" in result.stderr


def test_cli_validate_basic(gtfs_minimal: Path) -> None:
    """Test CLI validate command."""
    result = run_cli("validate", "--input", str(gtfs_minimal))

    assert result.returncode == 0
    assert "Validation successful" in result.stdout


def test_cli_validate_invalid(gtfs_edgecases: Path) -> None:
    """Test CLI validate command on an invalid feed."""
    result = run_cli("validate", "--input", str(gtfs_edgecases))

    assert result.returncode == 1
    assert "Validation failed" in result.stdout
    assert "Trip T4 references non-existent route R9" in result.stdout


def test_cli_no_command() -> None:
    """Test CLI without a command prints help and fails."""
    result = run_cli()

    assert result.returncode == 1
    assert "usage" in result.stdout.lower()


def test_parse_stop_zone_overrides() -> None:
    """Test STOP_ID=ZONE_ID parsing."""
    assert parse_stop_zone_overrides(["A=Z1", "B=Z2"]) == {"A": "Z1", "B": "Z2"}

    with pytest.raises(ValueError):
        parse_stop_zone_overrides(["A"])
    with pytest.raises(ValueError):
        parse_stop_zone_overrides(["=Z1"])
