"""NuGet V3 HTTP query strategies.

Three read-only ways of listing a package's versions:
- flat container (``PackageBaseAddress``): version strings only, listed versions only
- registration index (``RegistrationsBaseUrl``): paginated, carries the listed flag
- registration status lookup: the same page walk folded into a version -> listed map

None of these raise on network or parse errors; failures are recorded in the
returned log and treated as "no results from this source".
"""
from __future__ import annotations

import logging
import threading
import urllib.parse
from typing import Any, Dict, List, Optional, Set, Tuple

from constants import Constants
from common.http_client import get_json, describe_failure
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from versioning.models import StrategyResult, VersionRecord, normalize_package_id

logger = logging.getLogger(__name__)

SOURCE_FLAT = "flatcontainer"
SOURCE_REGISTRATION = "registration"


def _log_http_pre(url: str) -> None:
    """Debug-log outbound HTTP request for NuGet client."""
    if is_debug_enabled(logger):
        logger.debug(
            "HTTP request",
            extra=extra_context(
                event="http_request",
                component="client",
                action="GET",
                target=safe_url(url),
                package_manager="nuget",
            ),
        )


def _note(log: List[str], message: str, level: int = logging.INFO) -> None:
    """Append to a strategy log and mirror it to the module logger."""
    log.append(message)
    logger.log(level, message)


_SERVICE_INDEX_LOCK = threading.Lock()
_SERVICE_INDEX_CACHE: Dict[str, Dict[str, Any]] = {}


def fetch_service_index() -> Optional[Dict[str, Any]]:
    """Fetch and parse NuGet V3 service index, once per process and URL.

    A failed fetch is not cached, so the next call retries.

    Returns:
        Service index dictionary or None if unavailable
    """
    url = Constants.REGISTRY_URL_NUGET_V3
    cached = _SERVICE_INDEX_CACHE.get(url)
    if cached is not None:
        return cached
    with _SERVICE_INDEX_LOCK:
        if url in _SERVICE_INDEX_CACHE:
            return _SERVICE_INDEX_CACHE[url]
        _log_http_pre(url)
        status_code, _, data = get_json(url)
        if status_code == 200 and isinstance(data, dict):
            _SERVICE_INDEX_CACHE[url] = data
            return data
    return None


def reset_service_index() -> None:
    """Forget the cached service index."""
    with _SERVICE_INDEX_LOCK:
        _SERVICE_INDEX_CACHE.clear()


def discover_resource(type_prefix: str, default: str, service_index: Optional[Dict[str, Any]] = None) -> str:
    """Find a base URL in the service index by ``@type`` prefix.

    Args:
        type_prefix: Marker such as "RegistrationsBaseUrl"
        default: Base URL used when discovery is disabled or finds nothing
        service_index: Already fetched index, fetched on demand when omitted

    Returns:
        Base URL ending in "/"
    """
    base = None
    if Constants.DISCOVER_ENDPOINTS:
        index = service_index if service_index is not None else fetch_service_index()
        for resource in (index or {}).get("resources", []):
            if not isinstance(resource, dict):
                continue
            if str(resource.get("@type", "")).startswith(type_prefix) and resource.get("@id"):
                base = resource["@id"]
                break
    base = base or default
    return base if base.endswith("/") else base + "/"


def _package_url(base_url: str, package_id: str) -> str:
    encoded_id = urllib.parse.quote(package_id, safe="")
    return f"{base_url}{encoded_id}/index.json"


def fetch_flat_versions(package: str) -> StrategyResult:
    """List versions via the flat container ``index.json``.

    Every version is reported as listed: this endpoint never exposes
    unlisted versions.
    """
    package_id = normalize_package_id(package)
    result = StrategyResult(source=SOURCE_FLAT)
    _note(result.log, "Trying Package Base Address API...")
    base = discover_resource(Constants.NUGET_FLAT_TYPE_PREFIX, Constants.REGISTRY_URL_NUGET_FLAT)
    url = _package_url(base, package_id)
    _note(result.log, f"GET {safe_url(url)}", logging.DEBUG)
    _log_http_pre(url)

    status_code, _, data = get_json(url)
    versions = data.get("versions") if isinstance(data, dict) else None
    if status_code != 200 or not isinstance(versions, list):
        result.ok = False
        _note(result.log, f"Package Base Address API failed: {describe_failure(status_code)}", logging.WARNING)
        return result

    for version in versions:
        if isinstance(version, str) and version.strip():
            result.records.append(VersionRecord(version.strip(), True))
    _note(result.log, f"Found {len(result.records)} listed versions via Package Base Address API")
    return result


def _catalog_record(item: Dict[str, Any]) -> Optional[VersionRecord]:
    entry = item.get("catalogEntry")
    if not isinstance(entry, dict):
        return None
    version = entry.get("version")
    if not isinstance(version, str) or not version.strip():
        return None
    listed = entry.get("listed", True)
    return VersionRecord(version.strip(), listed if isinstance(listed, bool) else True)


def _walk_registration(package_id: str, log: List[str]) -> Optional[List[VersionRecord]]:
    """Collect catalog entries from the registration index and all its pages.

    Pages are either inlined (``items`` present) or referenced by ``@id``.
    Each URL is fetched at most once, which also terminates cyclic page links.

    Returns:
        Records in document order, or None when the index itself is unavailable.
    """
    base = discover_resource(Constants.NUGET_REGISTRATION_TYPE_PREFIX, Constants.REGISTRY_URL_NUGET_REGISTRATION)
    index_url = _package_url(base, package_id)
    visited: Set[str] = {index_url}
    _note(log, f"GET {safe_url(index_url)}", logging.DEBUG)
    _log_http_pre(index_url)

    status_code, _, index_doc = get_json(index_url)
    if status_code != 200 or not isinstance(index_doc, dict) or not isinstance(index_doc.get("items"), list):
        _note(log, f"Registration index unavailable: {describe_failure(status_code)}", logging.WARNING)
        return None

    records: List[VersionRecord] = []
    pending: List[str] = []

    def consume(items: List[Any]) -> None:
        for item in items:
            if not isinstance(item, dict):
                continue
            if "catalogEntry" in item:
                record = _catalog_record(item)
                if record is not None:
                    records.append(record)
            elif isinstance(item.get("items"), list):
                consume(item["items"])
            elif isinstance(item.get("@id"), str):
                page_url = item["@id"]
                if page_url not in visited:
                    visited.add(page_url)
                    pending.append(page_url)

    consume(index_doc["items"])
    while pending:
        page_url = pending.pop(0)
        _note(log, f"GET {safe_url(page_url)}", logging.DEBUG)
        _log_http_pre(page_url)
        page_status, _, page_doc = get_json(page_url)
        if page_status != 200 or not isinstance(page_doc, dict) or not isinstance(page_doc.get("items"), list):
            _note(log, f"Registration page {safe_url(page_url)} skipped: {describe_failure(page_status)}", logging.WARNING)
            continue
        consume(page_doc["items"])

    _note(log, f"Registration walk fetched {len(visited)} document(s)", logging.DEBUG)
    return records


def fetch_registration_versions(package: str) -> StrategyResult:
    """List versions and their listed flag via the registration index."""
    package_id = normalize_package_id(package)
    result = StrategyResult(source=SOURCE_REGISTRATION)
    _note(result.log, "Trying V3 Registration API...")
    records = _walk_registration(package_id, result.log)
    if records is None:
        result.ok = False
        _note(result.log, "V3 Registration API failed", logging.WARNING)
        return result
    result.records = records
    _note(result.log, f"Found {len(records)} versions via V3 Registration API")
    return result


def fetch_registration_status(package: str) -> Tuple[Optional[Dict[str, bool]], List[str]]:
    """Authoritative version -> listed map, keyed by lowercase version.

    Returns:
        Tuple of (status_map_or_none, log_lines)
    """
    package_id = normalize_package_id(package)
    log: List[str] = []
    records = _walk_registration(package_id, log)
    if records is None:
        return None, log
    status: Dict[str, bool] = {}
    for record in records:
        status[record.key] = record.listed
    return status, log
