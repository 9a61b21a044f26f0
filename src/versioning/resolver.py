"""Resolve every published version of a NuGet package from one or more sources.

Each query channel is wrapped in a small strategy class sharing one contract,
``resolve(package) -> StrategyResult``. The resolver dispatches on a
SourceSelector, concatenates the strategy outputs in call order, keeps the
first record per version key, optionally calibrates listed flags, and sorts.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Union

from constants import Constants
from common.logging_utils import extra_context
from registry.nuget.client import fetch_flat_versions, fetch_registration_versions
from registry.nuget.cli import list_versions
from registry.nuget.scrape import fetch_web_versions
from .calibrator import StatusCalibrator
from .models import (
    ResolutionResult,
    SourceSelector,
    StrategyResult,
    VersionOrdering,
    VersionRecord,
    normalize_package_id,
)
from .ordering import deduplicate, parse_ordering, sort_records

logger = logging.getLogger(__name__)


class ResolutionError(RuntimeError):
    """Every source of a multi-source resolution failed."""

    def __init__(self, package: str, log: List[str]):
        super().__init__(f"All sources failed for package '{package}'")
        self.package = package
        self.log = log


class QueryStrategy:
    """Base contract for a query channel."""

    name = "base"

    def resolve(self, package: str) -> StrategyResult:
        raise NotImplementedError


class FlatListStrategy(QueryStrategy):
    name = "flatcontainer"

    def resolve(self, package: str) -> StrategyResult:
        return fetch_flat_versions(package)


class RegistrationStrategy(QueryStrategy):
    name = "registration"

    def resolve(self, package: str) -> StrategyResult:
        return fetch_registration_versions(package)


class CliListStrategy(QueryStrategy):
    name = "cli"

    def resolve(self, package: str) -> StrategyResult:
        return list_versions(package)


class WebScrapeStrategy(QueryStrategy):
    name = "web"

    def resolve(self, package: str) -> StrategyResult:
        return fetch_web_versions(package)


def default_strategies() -> Dict[SourceSelector, Sequence[QueryStrategy]]:
    """Selector -> strategies in call order. Order matters for Comprehensive."""
    flat = FlatListStrategy()
    registration = RegistrationStrategy()
    return {
        SourceSelector.PACKAGE_BASE_ADDRESS: (flat,),
        SourceSelector.REGISTRATION_API: (registration,),
        SourceSelector.CLI_TOOL: (CliListStrategy(),),
        SourceSelector.WEB_SCRAPE: (WebScrapeStrategy(),),
        SourceSelector.COMPREHENSIVE: (flat, registration),
    }


class VersionResolver:
    """Query, merge, calibrate and order package versions."""

    def __init__(
        self,
        strategies: Optional[Dict[SourceSelector, Sequence[QueryStrategy]]] = None,
        calibrator: Optional[StatusCalibrator] = None,
        ordering: Union[VersionOrdering, str, None] = None,
    ):
        self._strategies = strategies if strategies is not None else default_strategies()
        self._calibrator = calibrator
        self._ordering = ordering

    def _ordering_for(self, ordering: Union[VersionOrdering, str, None]) -> VersionOrdering:
        if ordering is not None:
            return parse_ordering(ordering)
        if self._ordering is not None:
            return parse_ordering(self._ordering)
        return parse_ordering(Constants.VERSION_ORDER)

    def resolve(
        self,
        package: str,
        selector: Union[SourceSelector, str, int, None] = SourceSelector.PACKAGE_BASE_ADDRESS,
        calibrate: bool = False,
        ordering: Union[VersionOrdering, str, None] = None,
    ) -> ResolutionResult:
        """Resolve all versions of a package.

        Args:
            package: Package identifier (case-insensitive)
            selector: Source selector; unrecognised values use the flat container
            calibrate: Correct listed flags against authoritative sources
            ordering: Override the configured ordering

        Returns:
            ResolutionResult with unique, descending records

        Raises:
            ValueError: Empty package identifier
            ResolutionError: Every source of a Comprehensive run failed
        """
        package_id = normalize_package_id(package)
        chosen = SourceSelector.parse(selector)
        strategies = self._strategies.get(chosen) or self._strategies[SourceSelector.PACKAGE_BASE_ADDRESS]
        result = ResolutionResult(package=package_id, selector=chosen, ordering=self._ordering_for(ordering))

        collected: List[VersionRecord] = []
        failures = 0
        for strategy in strategies:
            outcome = strategy.resolve(package_id)
            result.log.extend(outcome.log)
            collected.extend(outcome.records)
            if not outcome.ok:
                failures += 1
            logger.debug(
                "Strategy finished",
                extra=extra_context(
                    event="strategy",
                    component="resolver",
                    action=strategy.name,
                    target=package_id,
                    outcome="success" if outcome.ok else "failed",
                    count=len(outcome.records),
                ),
            )

        if chosen == SourceSelector.COMPREHENSIVE and failures == len(strategies):
            result.log.append("All sources failed")
            raise ResolutionError(package_id, result.log)
        result.ok = failures < len(strategies)

        records = deduplicate(collected)
        if len(strategies) > 1:
            result.log.append(f"Comprehensive search completed: {len(records)} unique versions")

        if calibrate:
            calibrator = self._calibrator or StatusCalibrator()
            report = calibrator.calibrate(package_id, records)
            records = report.records
            result.log.extend(report.log)
            result.calibrated = True

        result.records = sort_records(records, result.ordering)
        result.log.append(f"Found {len(result.records)} versions total")
        logger.info("Found %d versions total for %s", len(result.records), package_id)
        return result
