from __future__ import annotations
from typing import Any, Mapping

from s3audit.core.base import verdict_for_fetch_error
from s3audit.core.errors import FetchError
from s3audit.core.models import Bucket, CheckMeta, Concern, Severity, Verdict
from s3audit.core.registry import register_check

META = CheckMeta(
    name="website",
    title="Static website hosting",
    concern=Concern.WEBSITE,
    severity=Severity.MEDIUM,
    tags=frozenset({"security", "exposure"}),
    description="Warn when static website hosting is enabled.",
    explanation="A website endpoint serves content anonymously over plain HTTP and implies the objects are public.",
    remediation="Disable static website hosting and serve the content through CloudFront with origin access control.",
)


@register_check(META)
def static_website(bucket: Bucket, website: Mapping[str, Any] | None | FetchError) -> Verdict:
    if isinstance(website, FetchError):
        return verdict_for_fetch_error(website)
    if not website:
        return Verdict.passed("Static website hosting is disabled")
    detail: dict[str, Any] = {}
    index = (website.get("IndexDocument") or {}).get("Suffix")
    if index:
        detail["index_document"] = index
    redirect = (website.get("RedirectAllRequestsTo") or {}).get("HostName")
    if redirect:
        detail["redirect_host"] = redirect
    return Verdict.warning("Static website hosting is enabled", **detail)


__all__ = ["static_website", "META"]
