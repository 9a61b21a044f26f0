"""Data models for version resolution and batch mutation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union


class SourceSelector(Enum):
    """Which query channel(s) a resolution uses."""
    PACKAGE_BASE_ADDRESS = "flatcontainer"
    REGISTRATION_API = "registration"
    CLI_TOOL = "cli"
    WEB_SCRAPE = "web"
    COMPREHENSIVE = "comprehensive"

    @classmethod
    def parse(cls, value: Union["SourceSelector", str, int, None]) -> "SourceSelector":
        """Map an enum, value, name or legacy index (0-4) to a selector.

        Unrecognised input falls back to PACKAGE_BASE_ADDRESS.
        """
        if isinstance(value, cls):
            return value
        members = list(cls)
        if isinstance(value, int) and not isinstance(value, bool):
            return members[value] if 0 <= value < len(members) else cls.PACKAGE_BASE_ADDRESS
        if isinstance(value, str):
            token = value.strip()
            if token.isdigit():
                return cls.parse(int(token))
            for member in members:
                if token.lower() == member.value or token.upper() == member.name:
                    return member
        return cls.PACKAGE_BASE_ADDRESS


class VersionOrdering(Enum):
    """How resolved versions are ordered (always descending)."""
    ORDINAL = "ordinal"
    SEMVER = "semver"


class MutationKind(Enum):
    """Batch operation applied to each target version."""
    DELIST = "delist"
    DEPRECATE = "deprecate"


class BatchState(Enum):
    """Lifecycle of one batch."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


def normalize_package_id(package: str) -> str:
    """Lowercase and strip a package identifier; reject empty input."""
    normalized = (package or "").strip().lower()
    if not normalized:
        raise ValueError("Package identifier must not be empty")
    return normalized


@dataclass
class VersionRecord:
    """One published version and whether it is listed."""
    version: str
    listed: bool = True

    @property
    def key(self) -> str:
        """Case-insensitive dedup key."""
        return self.version.lower()


@dataclass
class StrategyResult:
    """Output of one query strategy; ok is False when the source was unavailable."""
    source: str
    records: List[VersionRecord] = field(default_factory=list)
    log: List[str] = field(default_factory=list)
    ok: bool = True


@dataclass
class ResolutionResult:
    """Deduplicated, ordered versions of a package plus the log trail.

    ok is False when every queried source was unavailable.
    """
    package: str
    selector: SourceSelector
    records: List[VersionRecord] = field(default_factory=list)
    log: List[str] = field(default_factory=list)
    calibrated: bool = False
    ordering: VersionOrdering = VersionOrdering.ORDINAL
    ok: bool = True

    def __iter__(self) -> Iterator[VersionRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def versions(self) -> List[str]:
        return [r.version for r in self.records]

    @property
    def listed_count(self) -> int:
        return sum(1 for r in self.records if r.listed)

    @property
    def unlisted_count(self) -> int:
        return len(self.records) - self.listed_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package": self.package,
            "source": self.selector.value,
            "calibrated": self.calibrated,
            "ok": self.ok,
            "ordering": self.ordering.value,
            "versions": [{"version": r.version, "listed": r.listed} for r in self.records],
        }


_REASON_LABELS = {
    "critical-bugs": "Critical bugs",
    "legacy": "Legacy",
}


@dataclass
class DeprecationInfo:
    """Structured deprecation note attached to a deprecate request."""
    reasons: List[str] = field(default_factory=list)
    other: Optional[str] = None
    alternative_package: Optional[str] = None
    alternative_version: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.reasons and not (self.other or "").strip()

    def describe(self) -> str:
        """Render as 'Reasons: ...; Alternative package: X vY'."""
        labels = [_REASON_LABELS.get(r, r) for r in self.reasons]
        if self.other and self.other.strip():
            labels.append(f"Other: {self.other.strip()}")
        text = f"Reasons: {', '.join(labels)}" if labels else "Reasons: unspecified"
        if self.alternative_package:
            text += f"; Alternative package: {self.alternative_package}"
            if self.alternative_version:
                text += f" v{self.alternative_version}"
        return text


@dataclass
class MutationRequest:
    """Batch mutation input. The credential is never shown by repr()."""
    package: str
    credential: str = field(repr=False)
    targets: List[str] = field(default_factory=list)
    kind: MutationKind = MutationKind.DELIST
    reason: Optional[DeprecationInfo] = None


@dataclass
class ItemOutcome:
    """Result of mutating one version."""
    version: str
    succeeded: bool
    message: str = ""


@dataclass
class MutationOutcome:
    """Aggregate result of a batch."""
    per_item: List[ItemOutcome] = field(default_factory=list)
    success_count: int = 0
    total_count: int = 0
    cancelled: bool = False
    state: BatchState = BatchState.PENDING

    @property
    def all_succeeded(self) -> bool:
        return not self.cancelled and self.success_count == self.total_count
