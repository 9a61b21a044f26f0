"""Tests for the query action and its exports."""

import csv
import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from cli_query import export_csv, export_json, run_query
from constants import ExitCodes
from versioning.models import ResolutionResult, SourceSelector, VersionRecord
from versioning.resolver import ResolutionError


def make_result():
    return ResolutionResult(
        package="pkg",
        selector=SourceSelector.COMPREHENSIVE,
        records=[VersionRecord("2.0.0", True), VersionRecord("1.0.0", False)],
        log=["Found 2 versions total"],
    )


def make_args(**overrides):
    values = {
        "PACKAGE": "Pkg",
        "SOURCE": "comprehensive",
        "CALIBRATE": False,
        "ORDER": None,
        "OUTPUT": None,
        "OUTPUT_FORMAT": None,
        "QUIET": False,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_json_export(tmp_path):
    out = tmp_path / "out.json"
    export_json(make_result(), str(out))

    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["package"] == "pkg"
    assert data["source"] == "comprehensive"
    assert data["versions"] == [
        {"version": "2.0.0", "listed": True},
        {"version": "1.0.0", "listed": False},
    ]


def test_csv_export(tmp_path):
    out = tmp_path / "out.csv"
    export_csv(make_result(), str(out))

    rows = list(csv.reader(out.open("r", encoding="utf-8")))
    assert rows[0] == ["Package", "Version", "Status", "Source"]
    assert rows[1:] == [
        ["pkg", "2.0.0", "Listed", "comprehensive"],
        ["pkg", "1.0.0", "Unlisted", "comprehensive"],
    ]


def test_export_to_unwritable_path_exits(tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        export_json(make_result(), str(tmp_path / "missing" / "out.json"))
    assert exc_info.value.code == ExitCodes.FILE_ERROR.value


def test_run_query_prints_versions(capsys):
    resolver = MagicMock()
    resolver.resolve.return_value = make_result()

    run_query(make_args(CALIBRATE=True, ORDER="semver"), resolver=resolver)

    out = capsys.readouterr().out
    assert out.splitlines() == ["2.0.0\tListed", "1.0.0\tUnlisted"]
    resolver.resolve.assert_called_once_with(
        "Pkg", SourceSelector.COMPREHENSIVE, calibrate=True, ordering="semver"
    )


def test_run_query_quiet_prints_nothing(capsys):
    resolver = MagicMock()
    resolver.resolve.return_value = make_result()

    run_query(make_args(QUIET=True), resolver=resolver)

    assert capsys.readouterr().out == ""


def test_run_query_infers_csv_from_extension(tmp_path):
    resolver = MagicMock()
    resolver.resolve.return_value = make_result()
    out = tmp_path / "versions.csv"

    run_query(make_args(OUTPUT=str(out), QUIET=True), resolver=resolver)

    assert out.read_text(encoding="utf-8").startswith("Package,Version,Status,Source")


def test_run_query_exits_when_all_sources_fail():
    resolver = MagicMock()
    resolver.resolve.side_effect = ResolutionError("pkg", ["All sources failed"])

    with pytest.raises(SystemExit) as exc_info:
        run_query(make_args(), resolver=resolver)
    assert exc_info.value.code == ExitCodes.CONNECTION_ERROR.value
