"""CLI entry point for the delist and deprecate actions.

Runs the batch in a worker thread so Ctrl+C in the main thread can request
cancellation and then wait for the batch to settle.
"""

from __future__ import annotations

import logging
import os
import sys
import threading
from typing import Any, List, Optional

from constants import Constants, ExitCodes
from cli_common import load_lines_file
from mutation.engine import BatchSession, CancelToken, partition_targets
from versioning.models import (
    DeprecationInfo,
    MutationKind,
    MutationOutcome,
    MutationRequest,
    SourceSelector,
)

logger = logging.getLogger(__name__)

_JOIN_INTERVAL = 0.2  # seconds


def _resolve_api_key(args: Any) -> str:
    key = getattr(args, "API_KEY", None) or os.environ.get(Constants.ENV_API_KEY, "")
    if not key.strip():
        sys.stderr.write(
            f"Error: An API key is required (use -k or set {Constants.ENV_API_KEY}).\n"
        )
        sys.exit(2)
    return key.strip()


def _deprecation_info(args: Any) -> DeprecationInfo:
    info = DeprecationInfo(
        reasons=list(getattr(args, "REASONS", None) or []),
        other=getattr(args, "OTHER_REASON", None),
        alternative_package=getattr(args, "ALT_PACKAGE", None),
        alternative_version=getattr(args, "ALT_VERSION", None),
    )
    if info.is_empty():
        sys.stderr.write("Error: Please give at least one deprecation reason (--reason or --other).\n")
        sys.exit(2)
    return info


def _select_targets(args: Any, session: BatchSession) -> List[str]:
    """Determine the versions to process from flags, a file, or the registry."""
    needs_status = getattr(args, "ALL_LISTED", False) or getattr(args, "SKIP_UNLISTED", False)
    result = session.resolve(args.PACKAGE, SourceSelector.REGISTRATION_API) if needs_status else None
    if result is not None and not result.ok:
        logger.error("Could not read the current status of %s from the registration index", args.PACKAGE)
        sys.exit(ExitCodes.CONNECTION_ERROR.value)

    if getattr(args, "ALL_LISTED", False):
        return [r.version for r in result if r.listed]
    if getattr(args, "VERSIONS_FILE", None):
        versions = load_lines_file(args.VERSIONS_FILE)
    else:
        versions = [v.strip() for v in (getattr(args, "VERSIONS", None) or []) if v.strip()]

    if result is not None:
        listed, unlisted = partition_targets(result.records, versions)
        if unlisted:
            logger.info("Already unlisted versions (skipped): %s", ", ".join(unlisted))
        return listed
    return versions


def _progress(completed: int, total: int) -> None:
    logger.info("[%d/%d] processed", completed, total)


def run_mutation(args: Any, session: Optional[BatchSession] = None) -> MutationOutcome:
    """Entry point for delist/deprecate.

    Args:
        args: Parsed CLI arguments namespace.
        session: Batch session to use; a default one is built when omitted.
    """
    session = session or BatchSession()
    api_key = _resolve_api_key(args)
    kind = MutationKind.DEPRECATE if args.action == "deprecate" else MutationKind.DELIST
    reason = _deprecation_info(args) if kind == MutationKind.DEPRECATE else None
    if getattr(args, "PUSH_SOURCE", None):
        Constants.NUGET_PUSH_SOURCE = args.PUSH_SOURCE

    targets = _select_targets(args, session)
    if not targets:
        logger.warning("No listed versions selected to unlist.")
        sys.exit(ExitCodes.SUCCESS.value)

    request = MutationRequest(package=args.PACKAGE, credential=api_key, targets=targets, kind=kind, reason=reason)
    logger.info("Starting batch %s for package: %s", kind.value, args.PACKAGE)
    logger.info("Versions: %s", ", ".join(targets))
    if reason is not None:
        logger.info("Deprecation info: %s", reason.describe())

    holder: dict = {}
    token = CancelToken()

    def _worker() -> None:
        try:
            holder["outcome"] = session.run_batch(request, _progress, token)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            holder["error"] = exc

    worker = threading.Thread(target=_worker, name="nugetmgr-batch", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(_JOIN_INTERVAL)
    except KeyboardInterrupt:
        logger.warning("Cancelling operation...")
        token.cancel()
        worker.join()

    if "error" in holder:
        logger.error("Batch failed: %s", holder["error"])
        sys.exit(ExitCodes.FILE_ERROR.value)

    outcome: MutationOutcome = holder["outcome"]
    if outcome.cancelled:
        logger.warning("Batch %s was cancelled: %d/%d successful", kind.value, outcome.success_count, outcome.total_count)
    elif outcome.all_succeeded:
        logger.info("Batch %s completed successfully", kind.value)
        logger.info("Status changes can take a few minutes to show up in query results")
    else:
        logger.warning("Batch %s completed with errors: %d/%d successful",
                       kind.value, outcome.success_count, outcome.total_count)
    return outcome


def exit_code_for(outcome: MutationOutcome) -> int:
    """Map a batch outcome to the process exit code."""
    if outcome.cancelled:
        return ExitCodes.CANCELLED.value
    if outcome.all_succeeded:
        return ExitCodes.SUCCESS.value
    return ExitCodes.EXIT_WARNINGS.value
