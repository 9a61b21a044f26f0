"""Tests for VersionResolver dispatch, merging and ordering."""

from unittest.mock import MagicMock, patch

import pytest

from versioning.calibrator import CalibrationReport
from versioning.models import SourceSelector, StrategyResult, VersionOrdering, VersionRecord
from versioning.resolver import QueryStrategy, ResolutionError, VersionResolver


class StubStrategy(QueryStrategy):
    """Strategy answering with a fixed result and counting calls."""

    def __init__(self, name, records=None, ok=True):
        self.name = name
        self._records = records or []
        self._ok = ok
        self.calls = []

    def resolve(self, package):
        self.calls.append(package)
        return StrategyResult(
            source=self.name,
            records=[VersionRecord(v, listed) for v, listed in self._records],
            log=[f"{self.name} ran"],
            ok=self._ok,
        )


def make_resolver(flat=None, registration=None, **kwargs):
    flat = flat or StubStrategy("flat")
    registration = registration or StubStrategy("registration")
    strategies = {
        SourceSelector.PACKAGE_BASE_ADDRESS: (flat,),
        SourceSelector.REGISTRATION_API: (registration,),
        SourceSelector.CLI_TOOL: (StubStrategy("cli"),),
        SourceSelector.WEB_SCRAPE: (StubStrategy("web"),),
        SourceSelector.COMPREHENSIVE: (flat, registration),
    }
    return VersionResolver(strategies=strategies, **kwargs)


class TestVersionResolver:
    """Test resolution across strategies."""

    def test_comprehensive_keeps_first_seen_record(self):
        """Flat container answers first, so its listed flag wins."""
        flat = StubStrategy("flat", [("2.0.0", True), ("1.0.0", True)])
        registration = StubStrategy("registration", [("1.0.0", False)])
        resolver = make_resolver(flat, registration)

        result = resolver.resolve("TestPackage", SourceSelector.COMPREHENSIVE)

        assert [(r.version, r.listed) for r in result] == [("2.0.0", True), ("1.0.0", True)]
        assert flat.calls == ["testpackage"]
        assert registration.calls == ["testpackage"]
        assert "flat ran" in result.log and "registration ran" in result.log

    def test_result_keys_are_unique(self):
        flat = StubStrategy("flat", [("1.0.0-Beta", True), ("1.0.0-beta", False), ("1.0.0", True)])
        resolver = make_resolver(flat)

        result = resolver.resolve("pkg")

        keys = [r.key for r in result]
        assert len(keys) == len(set(keys)) == 2

    def test_resolution_is_idempotent_over_duplicates(self):
        flat = StubStrategy("flat", [("1.0.0", True), ("2.0.0", True)])
        registration = StubStrategy("registration", [("2.0.0", True), ("1.0.0", True)])
        resolver = make_resolver(flat, registration)

        once = resolver.resolve("pkg", SourceSelector.COMPREHENSIVE)
        single = resolver.resolve("pkg", SourceSelector.PACKAGE_BASE_ADDRESS)

        assert once.versions() == single.versions()

    def test_comprehensive_raises_when_every_source_fails(self):
        resolver = make_resolver(StubStrategy("flat", ok=False), StubStrategy("registration", ok=False))

        with pytest.raises(ResolutionError) as exc_info:
            resolver.resolve("pkg", SourceSelector.COMPREHENSIVE)

        assert exc_info.value.package == "pkg"
        assert "All sources failed" in exc_info.value.log

    def test_comprehensive_tolerates_partial_failure(self):
        resolver = make_resolver(
            StubStrategy("flat", ok=False),
            StubStrategy("registration", [("1.0.0", False)]),
        )

        result = resolver.resolve("pkg", SourceSelector.COMPREHENSIVE)

        assert [(r.version, r.listed) for r in result] == [("1.0.0", False)]
        assert result.ok is True

    def test_single_source_failure_returns_empty(self):
        resolver = make_resolver(StubStrategy("flat", ok=False))

        result = resolver.resolve("pkg")

        assert len(result) == 0
        assert result.ok is False

    def test_unrecognised_selector_uses_flat_container(self):
        flat = StubStrategy("flat", [("1.0.0", True)])
        registration = StubStrategy("registration", [("9.0.0", True)])
        resolver = make_resolver(flat, registration)

        result = resolver.resolve("pkg", 42)

        assert result.selector is SourceSelector.PACKAGE_BASE_ADDRESS
        assert result.versions() == ["1.0.0"]
        assert registration.calls == []

    def test_empty_package_is_rejected(self):
        with pytest.raises(ValueError):
            make_resolver().resolve("  ")

    def test_default_ordering_is_ordinal(self):
        flat = StubStrategy("flat", [("10.0.0", True), ("2.0.0", True)])

        result = make_resolver(flat).resolve("pkg")

        assert result.ordering is VersionOrdering.ORDINAL
        assert result.versions() == ["2.0.0", "10.0.0"]

    def test_semver_ordering_is_opt_in(self):
        flat = StubStrategy("flat", [("2.0.0", True), ("10.0.0", True)])

        assert make_resolver(flat).resolve("pkg", ordering="semver").versions() == ["10.0.0", "2.0.0"]
        assert make_resolver(flat, ordering=VersionOrdering.SEMVER).resolve("pkg").versions() == ["10.0.0", "2.0.0"]

    def test_configured_ordering_applies(self, monkeypatch):
        from constants import Constants
        monkeypatch.setattr(Constants, "VERSION_ORDER", "semver")
        flat = StubStrategy("flat", [("2.0.0", True), ("10.0.0", True)])

        assert make_resolver(flat).resolve("pkg").versions() == ["10.0.0", "2.0.0"]

    def test_calibration_runs_only_when_requested(self):
        flat = StubStrategy("flat", [("1.0.0", True)])
        calibrator = MagicMock()
        calibrator.calibrate.return_value = CalibrationReport(
            records=[VersionRecord("1.0.0", False)], corrections=1, log=["calibrated"]
        )
        resolver = make_resolver(flat, calibrator=calibrator)

        plain = resolver.resolve("pkg")
        calibrated = resolver.resolve("pkg", calibrate=True)

        assert plain.calibrated is False
        assert [r.listed for r in plain] == [True]
        assert calibrated.calibrated is True
        assert [r.listed for r in calibrated] == [False]
        assert "calibrated" in calibrated.log
        calibrator.calibrate.assert_called_once()
        assert calibrator.calibrate.call_args[0][0] == "pkg"


class TestDefaultStrategies:
    """Test the wiring of built-in strategies to the query functions."""

    @patch('versioning.resolver.fetch_registration_versions')
    @patch('versioning.resolver.fetch_flat_versions')
    def test_comprehensive_calls_flat_then_registration(self, mock_flat, mock_registration):
        order = []
        mock_flat.side_effect = lambda p: order.append("flat") or StrategyResult("flatcontainer", [VersionRecord("1.0.0")])
        mock_registration.side_effect = lambda p: order.append("registration") or StrategyResult("registration")

        result = VersionResolver().resolve("pkg", "comprehensive")

        assert order == ["flat", "registration"]
        assert result.versions() == ["1.0.0"]

    @patch('versioning.resolver.fetch_web_versions')
    def test_web_selector(self, mock_web):
        mock_web.return_value = StrategyResult("web", [VersionRecord("3.0.0")])

        result = VersionResolver().resolve("pkg", SourceSelector.WEB_SCRAPE)

        assert result.versions() == ["3.0.0"]
        mock_web.assert_called_once_with("pkg")

    @patch('versioning.resolver.list_versions')
    def test_cli_selector(self, mock_list):
        mock_list.return_value = StrategyResult("cli", [VersionRecord("4.0.0")])

        result = VersionResolver().resolve("pkg", "cli")

        assert result.versions() == ["4.0.0"]
