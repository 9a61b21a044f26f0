"""CLI entry point for the query action: list versions and export them."""

from __future__ import annotations

import csv
import json
import logging
import sys
from typing import Any, Optional

from constants import Constants, ExitCodes
from versioning.models import ResolutionResult, SourceSelector
from versioning.resolver import ResolutionError, VersionResolver

logger = logging.getLogger(__name__)


def export_csv(result: ResolutionResult, path: str) -> None:
    """Exports the resolved versions to a CSV file.

    Args:
        result: Resolution result to export.
        path: File path to export the CSV.
    """
    headers = ["Package", "Version", "Status", "Source"]
    try:
        with open(path, "w", newline="", encoding="utf-8") as file:
            writer = csv.writer(file)
            writer.writerow(headers)
            for record in result:
                writer.writerow([
                    result.package,
                    record.version,
                    "Listed" if record.listed else "Unlisted",
                    result.selector.value,
                ])
        logging.info("CSV file has been successfully exported at: %s", path)
    except (OSError, csv.Error) as e:
        logging.error("CSV file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def export_json(result: ResolutionResult, path: str) -> None:
    """Exports the resolved versions to a JSON file.

    Args:
        result: Resolution result to export.
        path: File path to export the JSON.
    """
    try:
        with open(path, "w", encoding="utf-8") as file:
            json.dump(result.to_dict(), file, ensure_ascii=False, indent=4)
        logging.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logging.error("JSON file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def _output_format(args: Any) -> Optional[str]:
    output = getattr(args, "OUTPUT", None)
    if not output:
        return None
    if getattr(args, "OUTPUT_FORMAT", None):
        return args.OUTPUT_FORMAT.lower()
    return "csv" if output.lower().endswith(".csv") else "json"


def report(result: ResolutionResult) -> None:
    """Log a summary of a resolution and warn on suspiciously small results."""
    logger.info("=== Query completed: %d versions found ===", len(result))
    logger.info("Listed: %d, Unlisted: %d", result.listed_count, result.unlisted_count)
    for record in result.records[:5]:
        logger.info("  - %s (%s)", record.version, "Listed" if record.listed else "Unlisted")
    if len(result) == 0:
        logger.warning("No versions found. Package may not exist or the source may be unavailable.")
    elif len(result) < Constants.LOW_VERSION_COUNT_WARNING:
        logger.warning("Only %d versions found. This might indicate source limitations.", len(result))


def run_query(args: Any, resolver: Optional[VersionResolver] = None) -> ResolutionResult:
    """Entry point for the query action.

    Args:
        args: Parsed CLI arguments namespace.
        resolver: Resolver to use; a default one is built when omitted.
    """
    resolver = resolver or VersionResolver()
    selector = SourceSelector.parse(args.SOURCE)
    logger.info("=== Querying package: %s (source: %s) ===", args.PACKAGE, selector.value)
    try:
        result = resolver.resolve(
            args.PACKAGE,
            selector,
            calibrate=getattr(args, "CALIBRATE", False),
            ordering=getattr(args, "ORDER", None),
        )
    except ResolutionError as exc:
        logger.error("%s", exc)
        sys.exit(ExitCodes.CONNECTION_ERROR.value)

    if not getattr(args, "QUIET", False):
        for record in result:
            sys.stdout.write(f"{record.version}\t{'Listed' if record.listed else 'Unlisted'}\n")
    report(result)

    fmt = _output_format(args)
    if fmt == "csv":
        export_csv(result, args.OUTPUT)
    elif fmt == "json":
        export_json(result, args.OUTPUT)
    return result
