"""
igm-acctest - CLI Entry Point.

Commands:
    sweep   Delete resources leaked by failed acceptance test runs

Usage:
    igm-acctest sweep --dry-run
    igm-acctest sweep --prefix igm-test-
"""

import argparse
import sys

from . import constants as CONSTANTS
from .compute import ComputeClient
from .exceptions import ConfigurationError
from .logger import setup_logger
from .settings import AcceptanceSettings
from .sweeper import sweep_test_resources


def build_parser() -> argparse.ArgumentParser:
    # Accepted before or after the subcommand; SUPPRESS keeps the subparser
    # from resetting a value given at the top level
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--debug", action="store_true", default=argparse.SUPPRESS, help="Enable debug logging"
    )

    parser = argparse.ArgumentParser(
        prog="igm-acctest",
        description="Instance group manager acceptance test tooling",
        parents=[common],
    )
    parser.set_defaults(debug=False)
    subparsers = parser.add_subparsers(dest="command", required=True)

    sweep = subparsers.add_parser("sweep", parents=[common], help="Delete leaked test resources")
    sweep.add_argument(
        "--prefix",
        default=f"{CONSTANTS.TEST_NAME_PREFIX}-",
        help="Only delete resources whose name starts with this prefix",
    )
    sweep.add_argument("--dry-run", action="store_true", help="List matches without deleting")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = AcceptanceSettings()
    logger = setup_logger(debug_mode=args.debug or settings.debug)

    if args.command == "sweep":
        if not settings.project:
            logger.error("GOOGLE_PROJECT (or GCLOUD_PROJECT) must be set to sweep")
            return 2
        try:
            compute = ComputeClient.from_settings(settings)
        except ConfigurationError as e:
            logger.error(str(e))
            return 2

        report = sweep_test_resources(compute, prefix=args.prefix, dry_run=args.dry_run)
        return 1 if report.failure_count else 0

    return 2


if __name__ == "__main__":
    sys.exit(main())
