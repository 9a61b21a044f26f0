"""Correct listed/unlisted flags against authoritative sources.

Two passes, each skipped (and logged) when its source is unavailable:

1. registration lookup: a version present in the registration map takes the
   map's flag; versions absent from the map are left alone.
2. NuGet CLI listing: the CLI only reports listed versions, so a version is
   listed exactly when the CLI reports it. Skipped when the CLI returns
   nothing, since an empty listing cannot be told apart from an outage.

Calibration never adds or removes versions.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from constants import Constants
from common.logging_utils import extra_context
from registry.nuget.client import fetch_registration_status
from registry.nuget.cli import list_versions
from .models import StrategyResult, VersionRecord

logger = logging.getLogger(__name__)

StatusLookup = Callable[[str], Tuple[Optional[Dict[str, bool]], List[str]]]
CliLister = Callable[[str], StrategyResult]


@dataclass
class CalibrationReport:
    """Calibrated records and what changed."""
    records: List[VersionRecord]
    corrections: int = 0
    passes: List[str] = field(default_factory=list)
    log: List[str] = field(default_factory=list)


class StatusCalibrator:
    """Overwrite listed flags where an authoritative source disagrees."""

    def __init__(
        self,
        status_lookup: StatusLookup = fetch_registration_status,
        cli_lister: Optional[CliLister] = list_versions,
        use_cli: Optional[bool] = None,
    ):
        self._status_lookup = status_lookup
        self._cli_lister = cli_lister
        self._use_cli = Constants.CALIBRATE_WITH_CLI if use_cli is None else use_cli

    def _note(self, report: CalibrationReport, message: str, level: int = logging.INFO) -> None:
        report.log.append(message)
        logger.log(level, message)

    def calibrate(self, package: str, records: List[VersionRecord]) -> CalibrationReport:
        """Return a report whose records are copies of the input with corrected flags."""
        report = CalibrationReport(records=[VersionRecord(r.version, r.listed) for r in records])
        if not report.records:
            return report
        self._note(report, f"Calibrating status of {len(report.records)} versions...")

        self._registration_pass(package, report)
        if self._use_cli and self._cli_lister is not None:
            self._cli_pass(package, report)

        listed = sum(1 for r in report.records if r.listed)
        self._note(
            report,
            f"Status calibration completed: {report.corrections} correction(s), "
            f"Listed: {listed}, Unlisted: {len(report.records) - listed}",
        )
        return report

    def _apply(self, report: CalibrationReport, record: VersionRecord, listed: bool, source: str) -> None:
        if record.listed == listed:
            return
        logger.debug(
            "Status corrected",
            extra=extra_context(
                event="calibration",
                component="calibrator",
                action=source,
                target=record.version,
                outcome="listed" if listed else "unlisted",
            ),
        )
        record.listed = listed
        report.corrections += 1

    def _registration_pass(self, package: str, report: CalibrationReport) -> None:
        status, lookup_log = self._status_lookup(package)
        report.log.extend(lookup_log)
        if status is None:
            self._note(report, "Registration lookup unavailable, skipping registration calibration", logging.WARNING)
            return
        report.passes.append("registration")
        for record in report.records:
            if record.key in status:
                self._apply(report, record, status[record.key], "registration")

    def _cli_pass(self, package: str, report: CalibrationReport) -> None:
        cli_result = self._cli_lister(package)
        report.log.extend(cli_result.log)
        if not cli_result.ok or not cli_result.records:
            self._note(report, "NuGet CLI found no versions, skipping CLI calibration", logging.WARNING)
            return
        report.passes.append("cli")
        listed_keys = {r.key for r in cli_result.records}
        for record in report.records:
            self._apply(report, record, record.key in listed_keys, "cli")
