from __future__ import annotations
from typing import Any, Mapping

from s3audit.core.base import verdict_for_fetch_error
from s3audit.core.errors import FetchError
from s3audit.core.models import Bucket, CheckMeta, Concern, Severity, Verdict
from s3audit.core.registry import register_check

META = CheckMeta(
    name="logging",
    title="Server access logging",
    concern=Concern.LOGGING,
    severity=Severity.MEDIUM,
    tags=frozenset({"logging", "audit"}),
    description="Check that server access logging is enabled.",
    explanation="Access logs are the only record of who read or changed objects and are needed for incident response.",
    remediation="Enable server access logging to a dedicated log bucket.",
)


@register_check(META)
def access_logging(bucket: Bucket, logging_enabled: Mapping[str, Any] | None | FetchError) -> Verdict:
    if isinstance(logging_enabled, FetchError):
        return verdict_for_fetch_error(logging_enabled)
    if not logging_enabled:
        return Verdict.warning("Logging is not enabled")
    target = logging_enabled.get("TargetBucket", "")
    prefix = logging_enabled.get("TargetPrefix", "")
    return Verdict.passed(f"Logging to {target}", target_bucket=target, target_prefix=prefix)


__all__ = ["access_logging", "META"]
