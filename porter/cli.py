"""Command line interface for running migrations."""

import argparse
import logging
import sys
from typing import List, Optional

from .config import Config
from .exceptions import ConfigurationError, UnknownPackage
from .models.migration import MigrationStatus, RunRequest
from .orchestrator import MigrationOrchestrator
from .registry import feature_list, list_packages

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Porter - Migrate community data between platforms"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run migration
    run_parser = subparsers.add_parser("run", help="Run a migration")
    run_parser.add_argument("--source", "-s", required=True, help="Source connection alias")
    run_parser.add_argument("--package", "-p", required=True, help="Source platform id")
    run_parser.add_argument("--output", "-o", default="file", help="'file' or a target platform id")
    run_parser.add_argument("--target", "-t", help="Target connection alias")
    run_parser.add_argument("--output-dir", default="./export", help="Directory for file output")
    run_parser.add_argument("--config", "-c", help="Path to config file")
    run_parser.add_argument("--capture-only", action="store_true", help="Record queries without running them")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # Feature support
    show_parser = subparsers.add_parser("show", help="Show feature support of a package")
    show_parser.add_argument("type", choices=["source", "target"], help="Package type")
    show_parser.add_argument("name", help="Package id")

    # Registered packages
    list_parser = subparsers.add_parser("list", help="List registered packages")
    list_parser.add_argument("type", choices=["sources", "targets"], help="Package type")

    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        if args.command == "run":
            return run_migration(args)
        elif args.command == "show":
            return show_features(args)
        elif args.command == "list":
            return show_packages(args)
        else:
            parser.print_help()
            return 0
    except (ConfigurationError, UnknownPackage) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


def run_migration(args) -> int:
    """Run a migration and print its comments."""
    config = Config.load(args.config)
    request = RunRequest(
        source=args.source,
        package=args.package,
        output=args.output,
        target=args.target,
        output_dir=args.output_dir,
        capture_only=args.capture_only,
    )

    orchestrator = MigrationOrchestrator(config, request)
    state = orchestrator.run()

    print("\n" + "=" * 60)
    print(f"MIGRATION {state.status.value.upper()}")
    print("=" * 60)
    for comment in state.comments:
        print(comment)

    if state.rows:
        print("\nRows:")
        for table, count in state.rows.items():
            print(f"  {table}: {count}")

    return 1 if state.status == MigrationStatus.FAILED else 0


def show_features(args) -> int:
    """Print the feature support table of one package."""
    rows = feature_list(args.type, args.name)
    width = max(len(row["feature"]) for row in rows)

    print(f"\nSupport for {args.type} {args.name}\n")
    print(f"{'Feature'.ljust(width)}  Support")
    print(f"{'-' * width}  -------")
    for row in rows:
        print(f"{row['feature'].ljust(width)}  {row['support']}")
    return 0


def show_packages(args) -> int:
    """Print registered package ids and names."""
    for package in list_packages(args.type):
        print(f"{package['id']}: {package['name']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
