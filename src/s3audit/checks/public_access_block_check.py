from __future__ import annotations
from typing import Any, Mapping

from s3audit.core.base import verdict_for_fetch_error
from s3audit.core.errors import FetchError
from s3audit.core.models import Bucket, CheckMeta, Concern, Severity, Verdict
from s3audit.core.registry import register_check

FLAGS = ("BlockPublicAcls", "IgnorePublicAcls", "BlockPublicPolicy", "RestrictPublicBuckets")

META = CheckMeta(
    name="public-access-blocks",
    title="Public access block",
    concern=Concern.PUBLIC_ACCESS_BLOCK,
    severity=Severity.HIGH,
    tags=frozenset({"security", "access-control"}),
    description="Ensure all four public access block settings are enabled on the bucket.",
    explanation="Public access blocks override ACLs and policies that would otherwise make the bucket or its objects public.",
    remediation="Enable BlockPublicAcls, IgnorePublicAcls, BlockPublicPolicy and RestrictPublicBuckets.",
)


@register_check(META)
def public_access_block(bucket: Bucket, config: Mapping[str, Any] | None | FetchError) -> Verdict:
    """Fail unless every block flag is set to true."""
    if isinstance(config, FetchError):
        return verdict_for_fetch_error(config)
    if not config:
        return Verdict.failed("No public access block configuration", **{flag: False for flag in FLAGS})

    flags = {flag: bool(config.get(flag, False)) for flag in FLAGS}
    disabled = [flag for flag, value in flags.items() if not value]
    if disabled:
        return Verdict.failed(f"{', '.join(disabled)} set to false", **flags)
    return Verdict.passed("All public access blocks are enabled", **flags)


__all__ = ["public_access_block", "FLAGS", "META"]
