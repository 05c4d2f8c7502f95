from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterator, Mapping, Tuple

ALL = "all"

CheckName = str
ActiveSet = FrozenSet[CheckName]


class Severity(str, Enum):
    """Severity levels for checks."""
    INFO = "INFO"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Status(str, Enum):
    """Status values for check results."""
    PASS = "PASS"
    FAIL = "FAIL"
    WARN = "WARN"
    SKIP = "SKIP"
    ERROR = "ERROR"


class Concern(str, Enum):
    """Bucket metadata facets that checks depend on."""
    ACL = "acl"
    ENCRYPTION = "encryption"
    LOGGING = "logging"
    VERSIONING = "versioning"
    PUBLIC_ACCESS_BLOCK = "public_access_block"
    WEBSITE = "website"
    POLICY = "policy"


class Action(str, Enum):
    ENABLE = "enable"
    DISABLE = "disable"


@dataclass(frozen=True)
class Directive:
    """One enable/disable instruction; ``target`` is a check name or ``all``."""
    action: Action
    target: str

    @classmethod
    def enable(cls, target: str) -> "Directive":
        return cls(Action.ENABLE, target.strip().lower())

    @classmethod
    def disable(cls, target: str) -> "Directive":
        return cls(Action.DISABLE, target.strip().lower())

    @property
    def is_all(self) -> bool:
        return self.target == ALL

    def __str__(self) -> str:
        return f"--{self.action.value}-check={self.target}"


@dataclass(frozen=True)
class CheckMeta:
    """Metadata describing a check.

    Attributes:
        name: Canonical check name used in directives and reports (e.g. 'acl')
        title: Human-readable check name
        concern: Metadata facet the check evaluates
        severity: Severity level if the check fails
        aliases: Alternative names accepted in directives
        tags: Set of tags for categorization
        description: Brief description of what the check verifies
        explanation: Why this check matters
        remediation: Default remediation advice
    """
    name: CheckName
    title: str
    concern: Concern
    severity: Severity
    aliases: Tuple[str, ...] = ()
    tags: FrozenSet[str] = frozenset()
    description: str = ""
    explanation: str | None = None
    remediation: str | None = None


@dataclass(frozen=True)
class Bucket:
    name: str
    region: str | None = None

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Verdict:
    """Outcome of one check against one bucket."""
    status: Status
    reason: str = ""
    detail: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        # Read-only copy; results never change once built
        object.__setattr__(self, "detail", MappingProxyType(dict(self.detail)))

    @classmethod
    def passed(cls, reason: str = "", **detail: Any) -> "Verdict":
        return cls(Status.PASS, reason, detail)

    @classmethod
    def failed(cls, reason: str, **detail: Any) -> "Verdict":
        return cls(Status.FAIL, reason, detail)

    @classmethod
    def warning(cls, reason: str, **detail: Any) -> "Verdict":
        return cls(Status.WARN, reason, detail)

    @classmethod
    def error(cls, cause: str, **detail: Any) -> "Verdict":
        return cls(Status.ERROR, cause, detail)

    @classmethod
    def skipped(cls, reason: str, **detail: Any) -> "Verdict":
        return cls(Status.SKIP, reason, detail)


@dataclass(frozen=True)
class CheckResult:
    """Result of executing a check against a bucket.

    Attributes:
        bucket: Bucket the check ran against
        check: Canonical check name
        verdict: Status, reason and optional structured detail
        duration_ms: Execution time in milliseconds, fetch included
    """
    bucket: Bucket
    check: CheckName
    verdict: Verdict
    duration_ms: int = field(default=0, compare=False)

    @property
    def status(self) -> Status:
        return self.verdict.status

    @property
    def reason(self) -> str:
        return self.verdict.reason

    @property
    def detail(self) -> Dict[str, Any] | None:
        return dict(self.verdict.detail) or None


@dataclass(frozen=True)
class BucketReport:
    bucket: Bucket
    results: Tuple[CheckResult, ...]

    def __post_init__(self) -> None:
        names = [result.check for result in self.results]
        duplicates = sorted(name for name, count in Counter(names).items() if count > 1)
        if duplicates:
            raise ValueError(f"Duplicate results for {self.bucket.name}: {', '.join(duplicates)}")

    @property
    def checks(self) -> Tuple[CheckName, ...]:
        return tuple(result.check for result in self.results)


@dataclass(frozen=True)
class AuditReport:
    """Terminal artifact of a run, ordered by bucket discovery order."""
    bucket_reports: Tuple[BucketReport, ...] = ()

    def results(self) -> Iterator[CheckResult]:
        for report in self.bucket_reports:
            yield from report.results

    def status_counts(self) -> Counter:
        return Counter(result.status for result in self.results())

    def has_findings(self) -> bool:
        """True when any result is FAIL or ERROR."""
        counts = self.status_counts()
        return bool(counts.get(Status.FAIL) or counts.get(Status.ERROR))
