from __future__ import annotations
import logging
import threading
import time
from concurrent.futures import Executor, ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, Iterable, Sequence

from .base import MetadataFetcher, RegisteredCheck
from .errors import FetchError, FetchErrorKind
from .models import ActiveSet, AuditReport, Bucket, BucketReport, CheckResult, Verdict
from .registry import CheckRegistry

logger = logging.getLogger(__name__)

# Buckets processed at the same time
_DEFAULT_WORKERS = 8
# Metadata calls in flight across all buckets
_DEFAULT_MAX_REQUESTS = 16


def _fetch(fetcher: MetadataFetcher, check: RegisteredCheck, bucket: Bucket, gate: threading.Semaphore) -> Any:
    """Fetch the concern a check needs, returning the FetchError instead of raising it."""
    concern = check.meta.concern.value
    method = getattr(fetcher, f"fetch_{concern}")
    with gate:
        try:
            return method(bucket)
        except FetchError as e:
            logger.debug("Fetching %s for %s failed: %s", concern, bucket.name, e)
            return e
        except Exception as e:
            logger.debug("Fetching %s for %s raised", concern, bucket.name, exc_info=True)
            return FetchError(FetchErrorKind.OTHER, str(e) or type(e).__name__, concern=concern, bucket=bucket.name)


def _run_one(check: RegisteredCheck, bucket: Bucket, fetcher: MetadataFetcher, gate: threading.Semaphore) -> CheckResult:
    """Execute a single check against a single bucket.

    Fetches the check's metadata, evaluates it and measures execution
    time. Exceptions are converted to ERROR verdicts.
    """
    start_time = time.perf_counter()
    metadata = _fetch(fetcher, check, bucket, gate)
    try:
        verdict = check.evaluate(bucket, metadata)
        if not isinstance(verdict, Verdict):
            raise TypeError(f"check returned {type(verdict).__name__}, expected Verdict")
    except Exception as e:
        logger.warning("Check %s failed on %s: %s", check.name, bucket.name, e)
        verdict = Verdict.error(f"Check raised {type(e).__name__}: {e}")
    duration_ms = int((time.perf_counter() - start_time) * 1000)
    logger.debug("%s/%s -> %s", bucket.name, check.name, verdict.status.value)
    return CheckResult(bucket=bucket, check=check.name, verdict=verdict, duration_ms=duration_ms)


def _audit_bucket(
    bucket: Bucket,
    checks: Sequence[RegisteredCheck],
    fetcher: MetadataFetcher,
    gate: threading.Semaphore,
    check_pool: Executor,
) -> BucketReport:
    """Dispatch every check for one bucket and join them in declaration order."""
    futures = [check_pool.submit(_run_one, check, bucket, fetcher, gate) for check in checks]
    return BucketReport(bucket=bucket, results=tuple(future.result() for future in futures))


def aggregate(reports: Iterable[BucketReport], buckets: Sequence[Bucket]) -> AuditReport:
    """Assemble bucket reports into an AuditReport in discovery order.

    Args:
        reports: Bucket reports in any order
        buckets: Buckets in the order they were discovered

    Returns:
        AuditReport with exactly one report per bucket

    Raises:
        ValueError: If a bucket has no report or a report has no bucket
    """
    by_name: Dict[str, BucketReport] = {report.bucket.name: report for report in reports}
    missing = [bucket.name for bucket in buckets if bucket.name not in by_name]
    if missing:
        raise ValueError(f"Missing reports for: {', '.join(missing)}")
    extra = set(by_name) - {bucket.name for bucket in buckets}
    if extra:
        raise ValueError(f"Reports for undiscovered buckets: {', '.join(sorted(extra))}")
    return AuditReport(bucket_reports=tuple(by_name[bucket.name] for bucket in buckets))


def run(
    buckets: Sequence[Bucket],
    active: ActiveSet,
    fetcher: MetadataFetcher,
    *,
    registry: CheckRegistry,
    workers: int = _DEFAULT_WORKERS,
    max_requests: int = _DEFAULT_MAX_REQUESTS,
    on_progress: Callable[[int, int], None] | None = None,
) -> AuditReport:
    """Run every active check against every bucket.

    Buckets are processed by a pool of ``workers`` threads; each bucket fans
    its checks out concurrently and joins them. At most ``max_requests``
    fetcher calls are in flight at any time.

    Args:
        buckets: Buckets in discovery order
        active: Canonical names of the checks to run
        fetcher: Metadata fetcher shared by all workers
        registry: Registry providing the checks and their order
        workers: Number of buckets audited concurrently
        max_requests: Upper bound on concurrent fetcher calls
        on_progress: Optional callback(completed, total) per finished bucket

    Returns:
        AuditReport with one BucketReport per bucket
    """
    if workers < 1 or max_requests < 1:
        raise ValueError("workers and max_requests must be positive")
    checks = registry.ordered(active)
    buckets = list(buckets)
    total = len(buckets)
    if not buckets:
        return AuditReport()

    gate = threading.BoundedSemaphore(max_requests)
    reports: list[BucketReport] = []
    completed = 0
    with ThreadPoolExecutor(max_workers=max(1, workers * len(checks)), thread_name_prefix="s3audit-check") as check_pool, \
            ThreadPoolExecutor(max_workers=workers, thread_name_prefix="s3audit-bucket") as bucket_pool:
        futures = {
            bucket_pool.submit(_audit_bucket, bucket, checks, fetcher, gate, check_pool): bucket
            for bucket in buckets
        }
        for future in as_completed(futures):
            reports.append(future.result())
            completed += 1
            if on_progress:
                on_progress(completed, total)
    logger.info("Audited %d bucket(s) with %d check(s)", total, len(checks))
    return aggregate(reports, buckets)
