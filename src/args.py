"""Argument parsing functionality for nugetmgr."""

import argparse
from constants import Constants


def _add_common(parser):
    """Logging and configuration options shared by every action."""
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not output to console.",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)
    parser.add_argument("-p", "--package",
                        dest="PACKAGE",
                        help="NuGet package identifier (case-insensitive)",
                        action="store",
                        type=str,
                        required=True)


def _add_mutation(parser):
    """Options shared by delist and deprecate."""
    parser.add_argument("-k", "--api-key",
                        dest="API_KEY",
                        help=f"NuGet API key (default: ${Constants.ENV_API_KEY})",
                        action="store",
                        type=str)
    targets = parser.add_mutually_exclusive_group(required=True)
    targets.add_argument("-v", "--version",
                         dest="VERSIONS",
                         help="Version to process (repeatable)",
                         action="append",
                         type=str)
    targets.add_argument("-l", "--load_list",
                         dest="VERSIONS_FILE",
                         help="Load versions to process from a file, one per line",
                         action="store",
                         type=str)
    targets.add_argument("--all-listed",
                         dest="ALL_LISTED",
                         help="Process every currently listed version",
                         action="store_true")
    parser.add_argument("--source",
                        dest="PUSH_SOURCE",
                        help="Package source passed to nuget.exe -Source",
                        action="store",
                        type=str)
    parser.add_argument("--skip-unlisted",
                        dest="SKIP_UNLISTED",
                        help="Look up current status first and skip versions that are already unlisted",
                        action="store_true")


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="nugetmgr",
        description=(
            "nugetmgr - discover NuGet package versions and bulk unlist/deprecate them"
        ),
        add_help=True,
    )
    sub = parser.add_subparsers(dest="action", required=True)

    query = sub.add_parser("query", help="List every version of a package with its listed status")
    _add_common(query)
    query.add_argument("-s", "--source",
                       dest="SOURCE",
                       help="Query source (default: flatcontainer)",
                       action="store",
                       type=str.lower,
                       choices=Constants.SUPPORTED_SOURCES,
                       default=Constants.SUPPORTED_SOURCES[0])
    query.add_argument("--calibrate",
                       dest="CALIBRATE",
                       help="Correct listed status against the registration index and the NuGet CLI",
                       action="store_true")
    query.add_argument("--order",
                       dest="ORDER",
                       help="Version ordering: ordinal (string) or semver (default from config: ordinal)",
                       action="store",
                       type=str.lower,
                       choices=Constants.ORDERINGS)
    query.add_argument("-o", "--output",
                       dest="OUTPUT",
                       help="Path to output file (JSON or CSV)",
                       action="store",
                       type=str)
    query.add_argument("-f", "--format",
                       dest="OUTPUT_FORMAT",
                       help="Output format (json or csv). If not specified, inferred from --output extension; defaults to json.",
                       action="store",
                       type=str.lower,
                       choices=['json', 'csv'])

    delist = sub.add_parser("delist", help="Unlist selected versions")
    _add_common(delist)
    _add_mutation(delist)

    deprecate = sub.add_parser("deprecate",
                               help="Deprecate selected versions (performed as unlist, with the reason recorded)")
    _add_common(deprecate)
    _add_mutation(deprecate)
    deprecate.add_argument("--reason",
                           dest="REASONS",
                           help="Deprecation reason (repeatable)",
                           action="append",
                           type=str.lower,
                           choices=["critical-bugs", "legacy"],
                           default=[])
    deprecate.add_argument("--other",
                           dest="OTHER_REASON",
                           help="Free-text deprecation reason",
                           action="store",
                           type=str)
    deprecate.add_argument("--alt-package",
                           dest="ALT_PACKAGE",
                           help="Alternative package to recommend",
                           action="store",
                           type=str)
    deprecate.add_argument("--alt-version",
                           dest="ALT_VERSION",
                           help="Version of the alternative package",
                           action="store",
                           type=str)

    return parser.parse_args(argv)
