"""Last-resort version listing from the nuget.org package web page.

The page only shows listed versions and its markup changes without notice,
so this source is low-confidence: any failure yields an empty result.
"""
from __future__ import annotations

import logging
import re
import urllib.parse
from typing import List

from bs4 import BeautifulSoup

from constants import Constants
from common.http_client import get_text, describe_failure
from versioning.models import StrategyResult, VersionRecord, normalize_package_id

logger = logging.getLogger(__name__)

SOURCE_WEB = "web"

_TABLE_LINKS = "table[class*=version] a[href]"
_VERSION_FORMAT = re.compile(r'^\d+(\.[^\s/"<>]+)*$')


def _version_from_href(package_id: str, href: str) -> str:
    """Return the version segment of '/packages/<id>/<version>', or ''."""
    path = urllib.parse.urlsplit(href).path
    parts = [urllib.parse.unquote(p) for p in path.strip("/").split("/")]
    if len(parts) != 3 or parts[0].lower() != "packages" or parts[1].lower() != package_id.lower():
        return ""
    return parts[2].strip()


def extract_versions(package_id: str, page: str) -> List[str]:
    """Pull version tokens out of version-link anchors, in page order.

    Anchors inside the version table are used first; every anchor on the
    page is the fallback when the table yields nothing.
    """
    soup = BeautifulSoup(page, "html.parser")
    anchors = soup.select(_TABLE_LINKS) or soup.find_all("a", href=True)
    seen = set()
    versions = []
    for anchor in anchors:
        version = _version_from_href(package_id, anchor["href"])
        if not _VERSION_FORMAT.match(version) or version.lower() in seen:
            continue
        seen.add(version.lower())
        versions.append(version)
    return versions


def fetch_web_versions(package: str) -> StrategyResult:
    """List versions by scraping https://{web-host}/packages/{id}."""
    result = StrategyResult(source=SOURCE_WEB)
    result.log.append("Trying Web Scraping Strategy...")
    try:
        package_id = normalize_package_id(package)
        url = f"https://{Constants.NUGET_WEB_HOST}/packages/{urllib.parse.quote(package_id, safe='')}"
        status_code, page = get_text(url)
        if page is None:
            result.ok = False
            result.log.append(f"nuget.org web scraping failed: {describe_failure(status_code)}")
            logger.warning("Web scraping failed for %s: %s", package_id, describe_failure(status_code))
            return result
        versions = extract_versions(package_id, page)
    except ValueError as exc:
        result.ok = False
        result.log.append(f"nuget.org web scraping failed: {exc}")
        logger.warning("Web scraping failed: %s", exc)
        return result

    result.records = [VersionRecord(v, True) for v in versions]
    result.log.append(f"Found {len(versions)} listed versions via web scraping")
    logger.info("Found %d listed versions via web scraping", len(versions))
    return result
