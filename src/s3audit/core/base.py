from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence, Union

from .errors import FetchError, FetchErrorKind
from .models import Bucket, CheckMeta, Verdict

Metadata = Union[Any, FetchError]
CheckFunction = Callable[[Bucket, Metadata], Verdict]


@dataclass(frozen=True)
class RegisteredCheck:
    """A check function tagged with its metadata.

    Check functions receive the bucket and the value fetched for
    ``meta.concern`` (or the FetchError raised while fetching it) and
    return a Verdict. They perform no I/O.
    """
    meta: CheckMeta
    evaluate: CheckFunction

    @property
    def name(self) -> str:
        return self.meta.name


class BucketSource(Protocol):
    def list_buckets(self) -> Sequence[Bucket]:
        """Return the account's buckets or raise DiscoveryError."""
        ...


class MetadataFetcher(Protocol):
    """One call per concern; each returns the concern value or raises FetchError."""

    def fetch_acl(self, bucket: Bucket) -> Any: ...
    def fetch_encryption(self, bucket: Bucket) -> Any: ...
    def fetch_logging(self, bucket: Bucket) -> Any: ...
    def fetch_versioning(self, bucket: Bucket) -> Any: ...
    def fetch_public_access_block(self, bucket: Bucket) -> Any: ...
    def fetch_website(self, bucket: Bucket) -> Any: ...
    def fetch_policy(self, bucket: Bucket) -> Any: ...


def verdict_for_fetch_error(error: FetchError) -> Verdict:
    """Translate a failed fetch into the verdict reported for the check.

    A bucket that disappeared mid-run is skipped; every other failure is
    reported as ERROR so it stays distinguishable from a compliance failure.
    """
    if error.kind is FetchErrorKind.NOT_FOUND:
        return Verdict.skipped(f"Bucket metadata not found: {error}", kind=error.kind.value)
    return Verdict.error(error.cause, kind=error.kind.value, code=error.code)
