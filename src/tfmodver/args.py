"""Argument parsing for terraform-module-versions."""

import argparse

from tfmodver.constants import Constants
from tfmodver.versioning.models import Strategy


def _positive_int(value):
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return number


def _add_constraint_args(parser):
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--constraint",
                       dest="CONSTRAINT",
                       help="Version constraints, e.g. '>= 1.2.0, < 2.0.0' or '~> 1.2'",
                       action="store",
                       type=str)
    group.add_argument("--constraint-file",
                       dest="CONSTRAINT_FILE",
                       help="Read version constraints from a file (one or more per line)",
                       action="store",
                       type=str)


def build_parser():
    """Build the argument parser with the ``show`` and ``update`` subcommands."""
    parser = argparse.ArgumentParser(
        prog=Constants.APP_NAME,
        description="Report and update version pins of Terraform registry modules",
        add_help=True,
    )

    parser.add_argument("--cache-dir",
                        dest="CACHE_DIR",
                        help="Directory for cached registry responses (default: $XDG_CACHE_HOME/terraform-module-versions)",
                        action="store",
                        type=str)
    parser.add_argument("--cache-ttl",
                        dest="CACHE_TTL",
                        help="Lifetime of cached registry responses, e.g. 24h or 1h30m",
                        action="store",
                        type=str)
    parser.add_argument("--cache-clear",
                        dest="CACHE_CLEAR",
                        help="Remove all cached registry responses before running",
                        action="store_true")
    parser.add_argument("--no-cache",
                        dest="NO_CACHE",
                        help="Do not read or write the registry cache",
                        action="store_true")
    parser.add_argument("--workers",
                        dest="WORKERS",
                        help="Maximum concurrent registry requests (default: %(default)s)",
                        action="store",
                        type=_positive_int,
                        default=Constants.DEFAULT_WORKERS)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        default="INFO")
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if warnings are present.",
                        action="store_true")

    subparsers = parser.add_subparsers(dest="COMMAND", metavar="{show,update}")
    subparsers.required = True

    show = subparsers.add_parser("show", help="Show module usages and available updates")
    show.add_argument("PATH", help="Root directory of the Terraform configuration")
    _add_constraint_args(show)

    update = subparsers.add_parser("update", help="Update module versions in place")
    update.add_argument("PATH", help="Root directory of the Terraform configuration")
    _add_constraint_args(update)
    strategy_group = update.add_mutually_exclusive_group()
    strategy_group.add_argument("--module",
                                dest="MODULES",
                                help="Only update modules matching PATTERN with STRATEGY "
                                     "(PATTERN=minor|latest; may be repeated)",
                                metavar="PATTERN=STRATEGY",
                                action="append",
                                type=str,
                                default=[])
    strategy_group.add_argument("--version-strategy",
                                dest="VERSION_STRATEGY",
                                help="Strategy applied to every module",
                                action="store",
                                type=str.lower,
                                choices=Strategy.values())
    update.add_argument("--diff",
                        dest="DIFF",
                        help="Print a unified diff instead of writing files",
                        action="store_true")
    update.add_argument("--diff-tool",
                        dest="DIFF_TOOL",
                        help="External command the diff is piped through, e.g. 'delta'",
                        action="store",
                        type=str)
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
