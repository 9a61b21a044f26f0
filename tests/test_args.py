"""Tests for CLI argument parsing."""

import pytest

from args import parse_args
from constants import Constants
from versioning.models import SourceSelector, VersionOrdering


def test_parse_query_defaults():
    ns = parse_args(["query", "-p", "Newtonsoft.Json"])
    assert ns.action == "query"
    assert ns.PACKAGE == "Newtonsoft.Json"
    assert ns.SOURCE == "flatcontainer"
    assert ns.CALIBRATE is False
    assert ns.ORDER is None
    assert ns.LOG_LEVEL == "INFO"


def test_parse_query_options():
    ns = parse_args(
        [
            "query",
            "-p",
            "pkg",
            "-s",
            "Comprehensive",
            "--calibrate",
            "--order",
            "semver",
            "-o",
            "out.csv",
            "--loglevel",
            "debug",
        ]
    )
    assert ns.SOURCE == "comprehensive"
    assert ns.CALIBRATE is True
    assert ns.ORDER == "semver"
    assert ns.OUTPUT == "out.csv"
    assert ns.LOG_LEVEL == "DEBUG"


def test_parse_delist_versions():
    ns = parse_args(["delist", "-p", "pkg", "-k", "key", "-v", "1.0.0", "-v", "1.1.0", "--skip-unlisted"])
    assert ns.action == "delist"
    assert ns.VERSIONS == ["1.0.0", "1.1.0"]
    assert ns.API_KEY == "key"
    assert ns.SKIP_UNLISTED is True
    assert ns.ALL_LISTED is False


def test_parse_deprecate_reasons():
    ns = parse_args(
        [
            "deprecate",
            "-p",
            "pkg",
            "--all-listed",
            "--reason",
            "legacy",
            "--reason",
            "Critical-Bugs",
            "--alt-package",
            "New.Pkg",
        ]
    )
    assert ns.ALL_LISTED is True
    assert ns.REASONS == ["legacy", "critical-bugs"]
    assert ns.ALT_PACKAGE == "New.Pkg"


def test_targets_are_mutually_exclusive():
    with pytest.raises(SystemExit):
        parse_args(["delist", "-p", "pkg", "-v", "1.0.0", "--all-listed"])


def test_targets_are_required():
    with pytest.raises(SystemExit):
        parse_args(["delist", "-p", "pkg"])


def test_unknown_source_is_rejected():
    with pytest.raises(SystemExit):
        parse_args(["query", "-p", "pkg", "-s", "bogus"])


@pytest.mark.parametrize("selector", list(SourceSelector))
def test_every_selector_is_a_source_choice(selector):
    ns = parse_args(["query", "-p", "pkg", "-s", selector.value.upper()])
    assert SourceSelector.parse(ns.SOURCE) is selector


def test_source_and_order_choices_follow_enums():
    assert Constants.SUPPORTED_SOURCES == [s.value for s in SourceSelector]
    assert Constants.ORDERINGS == [o.value for o in VersionOrdering]
    assert Constants.SUPPORTED_SOURCES[0] == SourceSelector.PACKAGE_BASE_ADDRESS.value
