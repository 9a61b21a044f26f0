"""Deduplication and ordering of version records.

Two orderings are available, both descending:

- ORDINAL (default): plain code-point comparison of the lowercase version
  token. "2.0.0" sorts above "10.0.0" because '2' > '1'. Kept as the default
  so output matches what existing operators of the tool already see.
- SEMVER: precedence by ``semantic_version.Version.coerce``; four-part NuGet
  versions are coerced, tokens that cannot be parsed sort last (ordinally
  among themselves).
"""

from typing import Iterable, List, Optional, Tuple, Union

import semantic_version

from .models import VersionOrdering, VersionRecord


def deduplicate(records: Iterable[VersionRecord]) -> List[VersionRecord]:
    """Keep the first record seen for each case-insensitive version key."""
    seen = set()
    unique = []
    for record in records:
        if record.key in seen:
            continue
        seen.add(record.key)
        unique.append(record)
    return unique


def _semver_key(record: VersionRecord) -> Tuple[int, semantic_version.Version, str]:
    try:
        parsed = semantic_version.Version.coerce(record.version)
    except ValueError:
        return 0, semantic_version.Version("0.0.0"), record.key
    return 1, parsed, record.key


def parse_ordering(value: Union[VersionOrdering, str, None]) -> VersionOrdering:
    """Map 'ordinal'/'semver' (or the enum) to a VersionOrdering, default ORDINAL."""
    if isinstance(value, VersionOrdering):
        return value
    if isinstance(value, str) and value.strip().lower() == VersionOrdering.SEMVER.value:
        return VersionOrdering.SEMVER
    return VersionOrdering.ORDINAL


def sort_records(
    records: Iterable[VersionRecord],
    ordering: Optional[VersionOrdering] = None,
) -> List[VersionRecord]:
    """Sort records descending by the chosen ordering."""
    if parse_ordering(ordering) == VersionOrdering.SEMVER:
        return sorted(records, key=_semver_key, reverse=True)
    return sorted(records, key=lambda r: r.key, reverse=True)
