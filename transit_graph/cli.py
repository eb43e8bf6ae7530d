"""Command-line interface for transit-graph-pipeline."""

import argparse
import logging
import sys

from transit_graph.api import convert, validate
from transit_graph.gtfs.models import ConvertConfig, ServicesConfig, ZoningConfig
from transit_graph.gtfs.modes import MAPPINGS
from transit_graph.version import VERSION


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_stop_zone_overrides(values: list[str]) -> dict[str, str]:
    """Parse STOP_ID=ZONE_ID pairs."""
    overrides: dict[str, str] = {}
    for value in values:
        stop_id, sep, zone_id = value.partition("=")
        if not sep or not stop_id or not zone_id:
            raise ValueError(f"Invalid stop zone override '{value}', expected STOP_ID=ZONE_ID")
        overrides[stop_id] = zone_id
    return overrides


def cmd_convert(args: argparse.Namespace) -> int:
    """Execute convert command."""
    setup_logging(args.verbose)

    try:
        config = ConvertConfig(
            input_path=args.input,
            services=ServicesConfig(
                mode_mapping=args.mode_mapping,
                excluded_route_types=set(args.exclude_route_type),
                included_route_ids=set(args.include_route),
                excluded_route_ids=set(args.exclude_route),
                prune_dangling_nodes=args.prune_dangling_nodes,
            ),
            zoning=ZoningConfig(
                search_radius_m=args.search_radius,
                projected_crs=args.crs,
                match_platform_names=args.match_platform_names,
                overwritten_stop_zones=parse_stop_zone_overrides(args.stop_zone),
            ),
            strict=args.strict,
        )

        result = convert(args.input, config)
        print("\nConversion successful!")
        print(f"Stats: {result.stats}")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        logging.exception("Conversion failed")
        return 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Execute validate command."""
    setup_logging(args.verbose)

    try:
        report = validate(args.input)
        if report.valid:
            print("\nValidation successful!")
            print(f"Stats: {report.stats}")
            if report.warnings:
                print(f"Warnings ({len(report.warnings)}):")
                for warning in report.warnings:
                    print(f"  - {warning}")
            return 0
        else:
            print(f"\nValidation failed with {len(report.errors)} errors:")
            for error in report.errors:
                print(f"  - {error}")
            return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        logging.exception("Validation failed")
        return 1


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="transit-graph",
        description="Build a transit service network and platform zones from GTFS datasets",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Convert command
    convert_parser = subparsers.add_parser(
        "convert", help="Build service network, scheduled trips and platform zones"
    )
    convert_parser.add_argument(
        "--input", required=True, help="Path to GTFS directory or zip archive"
    )
    convert_parser.add_argument(
        "--mode-mapping",
        choices=list(MAPPINGS),
        default="original",
        help="Route type to mode mapping (default: original)",
    )
    convert_parser.add_argument(
        "--exclude-route-type",
        type=int,
        action="append",
        default=[],
        help="Deactivate a GTFS route type (repeatable)",
    )
    convert_parser.add_argument(
        "--include-route",
        action="append",
        default=[],
        help="Only keep this GTFS route id (repeatable, default: all routes)",
    )
    convert_parser.add_argument(
        "--exclude-route",
        action="append",
        default=[],
        help="Discard this GTFS route id (repeatable)",
    )
    convert_parser.add_argument(
        "--prune-dangling-nodes",
        type=lambda x: x.lower() == "true",
        default=False,
        help="Remove service nodes without legs (default: false)",
    )
    convert_parser.add_argument(
        "--search-radius",
        type=float,
        default=40.0,
        help="Stop to platform zone search radius in meters (default: 40)",
    )
    convert_parser.add_argument(
        "--crs",
        default="EPSG:3857",
        help="Projected CRS used for spatial matching (default: EPSG:3857)",
    )
    convert_parser.add_argument(
        "--match-platform-names",
        type=lambda x: x.lower() == "true",
        default=True,
        help="Prefer zones whose platform name equals the stop's platform code (default: true)",
    )
    convert_parser.add_argument(
        "--stop-zone",
        action="append",
        default=[],
        metavar="STOP_ID=ZONE_ID",
        help="Force a GTFS stop onto an existing platform zone (repeatable)",
    )
    convert_parser.add_argument(
        "--strict",
        type=lambda x: x.lower() == "true",
        default=False,
        help="Fail when feed validation reports errors (default: false)",
    )
    convert_parser.set_defaults(func=cmd_convert)

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a GTFS feed")
    validate_parser.add_argument(
        "--input", required=True, help="Path to GTFS directory or zip archive"
    )
    validate_parser.set_defaults(func=cmd_validate)

    # Parse and execute
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
