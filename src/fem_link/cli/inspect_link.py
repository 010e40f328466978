#!/usr/bin/env python3
"""
Link element inspection CLI.

This script inspects packed element records and validates settings files.

Usage:
    python -m fem_link.cli.inspect_link record.npz [options]

Examples:
    # Describe a packed element record
    python -m fem_link.cli.inspect_link element_7.npz

    # Validate a settings file
    python -m fem_link.cli.inspect_link --validate settings.yaml

    # Generate template settings
    python -m fem_link.cli.inspect_link --template > settings.yaml
"""

import argparse
import logging
import sys
from pathlib import Path

from fem_link.core.config import TEMPLATE_SETTINGS, LinkSettings
from fem_link.core.errors import LinkError
from fem_link.core.helpers import format_matrix
from fem_link.elements.base import ElementFactory
from fem_link.elements.serialization import ElementRecord

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def print_template() -> None:
    """Print template settings to stdout."""
    print(TEMPLATE_SETTINGS)


def validate_settings(settings_path: str) -> bool:
    """Validate a settings file and print the resulting settings."""
    try:
        settings = LinkSettings.from_yaml(settings_path)
    except (OSError, ValueError) as e:
        print(f"\n✗ Validation failed: {e}")
        return False

    print("Settings validation:")
    print("=" * 50)
    print(settings)
    print("\n✓ Settings are valid")
    return True


def describe_record(record_path: str) -> str:
    """
    Build a human readable description of a packed element record.

    Raises
    ------
    CorruptDataError
        If the file is not a valid element record.
    ValueError
        If the record holds an element type that is not registered.
    """
    data = Path(record_path).read_bytes()
    record = ElementRecord.from_bytes(data)
    ElementFactory.get_class(record.class_name)

    lines = [
        f"Record: {record_path}",
        "=" * 50,
        f"Element: {record.tag} ({record.class_name})",
        f"  dimension: {record.dimension}",
        f"  nodes: {record.nodes.tolist()}",
        f"  directions: {record.directions.tolist()}",
        "  kb:",
        format_matrix(record.kb),
    ]
    if record.cb is not None:
        lines += ["  cb:", format_matrix(record.cb)]
    if record.x.size:
        lines.append(f"  x: {record.x.tolist()}")
    if record.y.size:
        lines.append(f"  y: {record.y.tolist()}")
    lines += [
        f"  Mratio: {record.mratio.tolist()}",
        f"  pdelta: {record.pdelta}, addRayleigh: {record.add_rayleigh}",
        f"  rayleigh [alpha_m, beta_k, beta_k0, beta_kc]: {record.rayleigh.tolist()}",
        f"  geometry_tolerance: {record.geometry_tolerance:.3e}",
        "Committed state:",
        f"  ub: {record.ub_committed.tolist()}",
        f"  ubdot: {record.ubdot_committed.tolist()}",
        f"  qb: {record.qb_committed.tolist()}",
    ]
    return "\n".join(lines)


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Inspect packed link element records and settings files.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s element.npz                    Describe a packed record
  %(prog)s --validate settings.yaml       Validate settings
  %(prog)s --template > settings.yaml     Generate template
        """,
    )

    parser.add_argument(
        "record",
        nargs="?",
        help="Path to a packed element record",
    )

    parser.add_argument(
        "--validate",
        metavar="SETTINGS",
        help="Validate a YAML settings file",
    )

    parser.add_argument(
        "--template",
        "-t",
        action="store_true",
        help="Print template settings to stdout",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    if args.template:
        print_template()
        return 0

    setup_logging(args.verbose)

    if args.validate:
        return 0 if validate_settings(args.validate) else 1

    if not args.record:
        parser.print_help()
        return 1

    record_path = Path(args.record)
    if not record_path.exists():
        print(f"Error: Record file not found: {record_path}")
        return 1

    try:
        print(describe_record(str(record_path)))
        return 0
    except (LinkError, ValueError) as e:
        logger.error("Cannot describe %s: %s", record_path, e)
        print(f"\nError: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
