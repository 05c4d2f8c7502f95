from __future__ import annotations
from enum import Enum
from typing import Iterable


class S3AuditError(Exception):
    """Base class for all s3audit errors."""


class ConfigurationError(S3AuditError):
    """Invalid run configuration; detected before any bucket is audited."""


class UnknownCheck(ConfigurationError):
    """A directive referenced a check name that is not in the registry."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names = tuple(names)
        label = "check" if len(self.names) == 1 else "checks"
        super().__init__(f"Unknown {label}: {', '.join(self.names)}")


class DiscoveryError(S3AuditError):
    """The bucket list for the account could not be retrieved."""


class FetchErrorKind(str, Enum):
    """Classification of a failed metadata fetch."""
    ACCESS_DENIED = "AccessDenied"
    NOT_FOUND = "NotFound"
    TRANSIENT = "Transient"
    OTHER = "Other"


class FetchError(S3AuditError):
    """A single metadata call for a single bucket failed.

    Attributes:
        kind: Failure classification
        concern: Metadata facet being fetched (e.g. 'policy')
        bucket: Name of the bucket the call was made for
        code: Provider error code when available
    """

    def __init__(
        self,
        kind: FetchErrorKind,
        message: str,
        *,
        concern: str = "",
        bucket: str = "",
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.concern = concern
        self.bucket = bucket
        self.code = code

    @property
    def cause(self) -> str:
        """Human readable cause used in ERROR verdicts."""
        prefix = f"{self.concern}: " if self.concern else ""
        return f"{prefix}{self.kind.value} ({self})"
