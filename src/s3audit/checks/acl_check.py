from __future__ import annotations
from typing import Any, Mapping

from s3audit.core.base import verdict_for_fetch_error
from s3audit.core.errors import FetchError
from s3audit.core.models import Bucket, CheckMeta, Concern, Severity, Verdict
from s3audit.core.registry import register_check

# Grantee URIs that indicate public access
PUBLIC_URIS = {
    "http://acs.amazonaws.com/groups/global/AllUsers": "Everyone",
    "http://acs.amazonaws.com/groups/global/AuthenticatedUsers": "Any authenticated AWS user",
}

META = CheckMeta(
    name="acl",
    title="Bucket ACL",
    concern=Concern.ACL,
    severity=Severity.CRITICAL,
    tags=frozenset({"security", "access-control"}),
    description="Ensure the bucket ACL grants nothing to 'Everyone' or 'Any authenticated AWS user'.",
    explanation="ACL grants to the global AllUsers or AuthenticatedUsers groups expose the bucket to anyone on the internet.",
    remediation="Remove the public grants from the bucket ACL, or disable ACLs entirely with 'BucketOwnerEnforced' object ownership.",
)


@register_check(META)
def bucket_acl(bucket: Bucket, acl: Mapping[str, Any] | FetchError) -> Verdict:
    """Fail when any grant targets a global public group."""
    if isinstance(acl, FetchError):
        return verdict_for_fetch_error(acl)

    public: list[dict[str, str]] = []
    for grant in (acl or {}).get("Grants") or []:
        uri = (grant.get("Grantee") or {}).get("URI") or ""
        if uri in PUBLIC_URIS:
            public.append({"grantee": PUBLIC_URIS[uri], "permission": str(grant.get("Permission", ""))})

    if public:
        labels = ", ".join(f"{entry['grantee']} ({entry['permission']})" for entry in public)
        return Verdict.failed(f"Bucket allows public access via ACL: {labels}", grants=public)
    return Verdict.passed("Bucket ACL doesn't allow access to 'Everyone' or 'Any authenticated AWS user'")


__all__ = ["bucket_acl", "META"]
