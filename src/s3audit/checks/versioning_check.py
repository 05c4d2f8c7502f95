from __future__ import annotations
from typing import Any, Mapping

from s3audit.core.base import verdict_for_fetch_error
from s3audit.core.errors import FetchError
from s3audit.core.models import Bucket, CheckMeta, Concern, Severity, Verdict
from s3audit.core.registry import register_check

VERSIONING_META = CheckMeta(
    name="versioning",
    title="Object versioning",
    concern=Concern.VERSIONING,
    severity=Severity.MEDIUM,
    tags=frozenset({"resilience"}),
    description="Check that object versioning is enabled.",
    explanation="Versioning keeps previous object versions so accidental overwrites and deletions can be recovered.",
    remediation="Enable versioning on the bucket and add a lifecycle rule expiring noncurrent versions.",
)

MFA_DELETE_META = CheckMeta(
    name="mfa-delete",
    title="MFA delete",
    concern=Concern.VERSIONING,
    severity=Severity.LOW,
    aliases=("mfa",),
    tags=frozenset({"resilience", "security"}),
    description="Check that MFA delete is enabled on the bucket.",
    explanation="MFA delete requires a second factor to permanently delete versions or change the versioning state.",
    remediation="Enable MFA delete with the root account's MFA device via 'put-bucket-versioning'.",
)


@register_check(VERSIONING_META)
def object_versioning(bucket: Bucket, versioning: Mapping[str, Any] | FetchError) -> Verdict:
    if isinstance(versioning, FetchError):
        return verdict_for_fetch_error(versioning)
    status = (versioning or {}).get("Status")
    if status == "Enabled":
        return Verdict.passed("Object Versioning is enabled")
    if status == "Suspended":
        return Verdict.warning("Object Versioning is suspended", status=status)
    return Verdict.warning("Object Versioning is not enabled")


@register_check(MFA_DELETE_META)
def mfa_delete(bucket: Bucket, versioning: Mapping[str, Any] | FetchError) -> Verdict:
    if isinstance(versioning, FetchError):
        return verdict_for_fetch_error(versioning)
    if (versioning or {}).get("MFADelete") == "Enabled":
        return Verdict.passed("MFA Delete is enabled")
    return Verdict.warning("MFA Delete is not enabled")


__all__ = ["object_versioning", "mfa_delete", "VERSIONING_META", "MFA_DELETE_META"]
