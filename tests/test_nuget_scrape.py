"""Tests for the nuget.org web scraping fallback."""

from unittest.mock import patch

from registry.nuget.scrape import extract_versions, fetch_web_versions

PAGE = """
<html><body>
<a href="/packages/Other.Package/9.9.9">9.9.9</a>
<table class="table borderless version-history">
  <tr><td><a href="/packages/TestPackage/2.0.0" title="2.0.0">2.0.0</a></td></tr>
  <tr><td><a href="/packages/TestPackage/1.0.0-beta.1">1.0.0-beta.1</a></td></tr>
  <tr><td><a href="/packages/TestPackage/1.0.0">1.0.0</a></td></tr>
  <tr><td><a href="/packages/TestPackage/1.0.0">again</a></td></tr>
  <tr><td><a href="/packages/TestPackage/latest">latest</a></td></tr>
</table>
<a href="/packages/TestPackage/0.1.0">outside table</a>
</body></html>
"""


class TestExtractVersions:
    """Test version link extraction."""

    def test_reads_version_table_only(self):
        assert extract_versions("testpackage", PAGE) == ["2.0.0", "1.0.0-beta.1", "1.0.0"]

    def test_falls_back_to_whole_page_without_table(self):
        page = '<div><a href="/packages/testpackage/3.1.0">3.1.0</a><a href="/packages/testpackage/">x</a></div>'

        assert extract_versions("testpackage", page) == ["3.1.0"]

    def test_single_quoted_attributes(self):
        page = "<table class='version-list'><tr><td><a href='/packages/Foo/1.2.0'>1.2.0</a></td></tr></table>"

        assert extract_versions("foo", page) == ["1.2.0"]

    def test_nested_table_inside_version_table(self):
        page = (
            '<table class="version-history"><tr><td>'
            '<table class="inner"><tr><td><a href="/packages/foo/2.0.0">2.0.0</a></td></tr></table>'
            '</td></tr><tr><td><a href="/packages/foo/1.0.0">1.0.0</a></td></tr></table>'
            '<a href="/packages/foo/0.1.0">elsewhere</a>'
        )

        assert extract_versions("foo", page) == ["2.0.0", "1.0.0"]

    def test_links_to_other_packages_are_ignored(self):
        page = '<a href="/packages/foo.bar/1.0.0">x</a><a href="https://www.nuget.org/packages/Foo/3.0.0?tab=deps">y</a>'

        assert extract_versions("foo", page) == ["3.0.0"]

    def test_changed_markup_yields_nothing(self):
        assert extract_versions("testpackage", "<html><p>No versions here</p></html>") == []


class TestFetchWebVersions:
    """Test the scraping strategy."""

    @patch('registry.nuget.scrape.get_text')
    def test_scraped_versions_are_listed(self, mock_get_text):
        mock_get_text.return_value = (200, PAGE)

        result = fetch_web_versions("TestPackage")

        assert result.ok is True
        assert all(r.listed for r in result.records)
        assert [r.version for r in result.records] == ["2.0.0", "1.0.0-beta.1", "1.0.0"]
        assert mock_get_text.call_args[0][0] == "https://www.nuget.org/packages/testpackage"

    @patch('registry.nuget.scrape.get_text')
    def test_fetch_failure_degrades_to_empty(self, mock_get_text):
        mock_get_text.return_value = (503, None)

        result = fetch_web_versions("TestPackage")

        assert result.ok is False
        assert result.records == []
        assert any("HTTP 503" in line for line in result.log)
