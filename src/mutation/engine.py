"""Batch delist/deprecate engine with progress reporting and cancellation.

Items are mutated one at a time, strictly in input order. Cancellation is
cooperative: the token is checked before each item and is handed to the
mutation primitive, which terminates its child process when the token fires.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, List, Optional, Tuple, Union

from common.logging_utils import extra_context, redact
from registry.nuget.cli import CliResult, delete_version
from versioning.models import (
    BatchState,
    ItemOutcome,
    MutationKind,
    MutationOutcome,
    MutationRequest,
    ResolutionResult,
    SourceSelector,
    VersionOrdering,
    VersionRecord,
    normalize_package_id,
)
from versioning.resolver import VersionResolver

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
DeleteFn = Callable[..., CliResult]


class CancelToken:
    """Thread-safe cancellation flag passed through long-running calls."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)


class BatchMutationEngine:
    """Run one MutationRequest against the delete primitive."""

    def __init__(self, delete_fn: Optional[DeleteFn] = None):
        self._delete_fn = delete_fn or delete_version
        self.state = BatchState.PENDING

    def _mutate(self, request: MutationRequest, package_id: str, version: str, token: CancelToken) -> ItemOutcome:
        result = self._delete_fn(package_id, version, request.credential, cancel_token=token)
        if request.kind == MutationKind.DEPRECATE:
            note = request.reason.describe() if request.reason else "Reasons: unspecified"
            if result.ok:
                message = f"Unlisted as deprecation substitute ({note})"
            else:
                message = f"Deprecation substitute (unlist) failed: {result.message} ({note})"
        else:
            message = "Unlisted" if result.ok else (result.message or "Unlist failed")
        return ItemOutcome(version=version, succeeded=result.ok, message=redact(message, request.credential))

    def run(
        self,
        request: MutationRequest,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> MutationOutcome:
        """Mutate every target version, recording each outcome independently.

        Args:
            request: Package, credential, targets and kind
            progress_callback: Called as (completed, total) after each item
                and once more when cancellation stops the loop
            cancel_token: Checked before and after every item

        Returns:
            MutationOutcome; total_count is always len(request.targets)
        """
        package_id = normalize_package_id(request.package)
        token = cancel_token or CancelToken()
        total = len(request.targets)
        outcome = MutationOutcome(total_count=total)
        self.state = BatchState.RUNNING
        verb = "deprecation" if request.kind == MutationKind.DEPRECATE else "unlist"
        logger.info("Starting %s of %d version(s) of %s", verb, total, package_id)
        if request.kind == MutationKind.DEPRECATE:
            logger.info("No deprecation endpoint available; versions will be unlisted instead")

        for version in request.targets:
            if token.cancelled:
                outcome.cancelled = True
                logger.warning("Operation cancelled by user")
                if progress_callback:
                    progress_callback(len(outcome.per_item), total)
                break

            try:
                item = self._mutate(request, package_id, version, token)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                item = ItemOutcome(version=version, succeeded=False, message=redact(str(exc), request.credential))
                logger.error("%s: %s", version, item.message)
            outcome.per_item.append(item)
            if item.succeeded:
                outcome.success_count += 1
                logger.info("%s: %s", version, item.message)
            else:
                logger.warning("%s: %s", version, item.message)
            logger.debug(
                "Batch item finished",
                extra=extra_context(
                    event="mutation",
                    component="engine",
                    action=request.kind.value,
                    target=f"{package_id} {version}",
                    outcome="success" if item.succeeded else "failed",
                ),
            )
            if progress_callback:
                progress_callback(len(outcome.per_item), total)
            if token.cancelled:
                outcome.cancelled = True
                logger.warning("Operation cancelled by user")
                break

        if outcome.cancelled:
            self.state = BatchState.CANCELLED
        elif outcome.success_count == total:
            self.state = BatchState.COMPLETED
        else:
            self.state = BatchState.FAILED
        outcome.state = self.state
        logger.info("%s completed: %d/%d successful", verb.capitalize(), outcome.success_count, total)
        return outcome


def partition_targets(records: Iterable[VersionRecord], versions: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Split selected versions into (listed, already_unlisted) by current status.

    Versions not present in records are treated as listed.
    """
    status = {r.key: r.listed for r in records}
    listed, unlisted = [], []
    for version in versions:
        (listed if status.get(version.lower(), True) else unlisted).append(version)
    return listed, unlisted


class BatchSession:
    """Operator-facing entry point: resolve, run one batch at a time, cancel.

    Starting a batch cancels every batch that is running or still queued,
    then waits for the running one to settle before the new one begins.
    A queued batch whose token was cancelled ends immediately as cancelled.
    """

    def __init__(
        self,
        resolver: Optional[VersionResolver] = None,
        engine_factory: Optional[Callable[[], BatchMutationEngine]] = None,
    ):
        self._resolver = resolver or VersionResolver()
        self._engine_factory = engine_factory or BatchMutationEngine
        self._run_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._pending: List[CancelToken] = []

    def resolve(
        self,
        package: str,
        selector: Union[SourceSelector, str, int, None] = SourceSelector.PACKAGE_BASE_ADDRESS,
        calibrate: bool = False,
        ordering: Union[VersionOrdering, str, None] = None,
    ) -> ResolutionResult:
        return self._resolver.resolve(package, selector, calibrate=calibrate, ordering=ordering)

    def run_batch(
        self,
        request: MutationRequest,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> MutationOutcome:
        if not (request.credential or "").strip():
            raise ValueError("An API key is required for batch operations")
        token = cancel_token or CancelToken()
        with self._state_lock:
            for earlier in self._pending:
                earlier.cancel()
            self._pending.append(token)
        try:
            with self._run_lock:
                return self._engine_factory().run(request, on_progress, token)
        finally:
            with self._state_lock:
                self._pending.remove(token)

    def request_cancel(self) -> bool:
        """Signal every running or queued batch. Returns True when one was signalled."""
        with self._state_lock:
            live = [t for t in self._pending if not t.cancelled]
            for token in live:
                token.cancel()
        return bool(live)

    @property
    def busy(self) -> bool:
        with self._state_lock:
            return bool(self._pending)
