from __future__ import annotations
import json
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Mapping

from s3audit.core.base import verdict_for_fetch_error
from s3audit.core.errors import FetchError
from s3audit.core.models import Bucket, CheckMeta, Concern, Severity, Verdict
from s3audit.core.registry import register_check

WILDCARD = "*"
CLOUDFRONT_OAI = "arn:aws:iam::cloudfront:user/CloudFront Origin Access Identity "
CLOUDFRONT_SERVICE = "cloudfront.amazonaws.com"

POLICY_META = CheckMeta(
    name="policy",
    title="Bucket policy wildcards",
    concern=Concern.POLICY,
    severity=Severity.CRITICAL,
    tags=frozenset({"security", "access-control"}),
    description="Ensure bucket policy Allow statements do not use wildcard principals or actions.",
    explanation="An Allow statement with Principal '*' grants the listed actions to anyone, including anonymous users.",
    remediation="Replace wildcard principals with explicit account or role ARNs and scope actions to what is needed.",
)

CLOUDFRONT_META = CheckMeta(
    name="cloudfront",
    title="CloudFront distributions",
    concern=Concern.POLICY,
    severity=Severity.INFO,
    tags=frozenset({"exposure"}),
    description="Report CloudFront distributions granted access by the bucket policy.",
    explanation="Buckets behind CloudFront serve their content publicly through the distribution.",
    remediation="Confirm every distribution with access to the bucket is expected to publish its content.",
)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


@dataclass
class PolicySummary:
    """Wildcards and CloudFront grants found in the Allow statements of a policy."""
    wildcard_principals: int = 0
    conditional_wildcard_principals: int = 0
    wildcard_actions: int = 0
    cloudfront_distributions: int = 0
    statements: int = 0
    sids: List[str] = field(default_factory=list)

    @property
    def wildcards(self) -> int:
        return self.wildcard_principals + self.conditional_wildcard_principals + self.wildcard_actions


def iter_allow_statements(document: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
    """Yield Allow statements; Deny statements may use wildcards freely."""
    for statement in _as_list(document.get("Statement")):
        if isinstance(statement, Mapping) and statement.get("Effect") == "Allow":
            yield statement


def principals(statement: Mapping[str, Any]) -> List[str]:
    """Return the principal entries of a statement as strings.

    Handles ``"Principal": "*"`` as well as ``{"AWS": ...}`` and
    ``{"Service": ...}`` mappings holding a string or a list.
    """
    principal = statement.get("Principal")
    if isinstance(principal, str):
        return [principal]
    if isinstance(principal, Mapping):
        found: List[str] = []
        for key in ("AWS", "Service"):
            found.extend(str(entry) for entry in _as_list(principal.get(key)))
        return found
    return []


def actions(statement: Mapping[str, Any]) -> List[str]:
    return [str(action) for action in _as_list(statement.get("Action"))]


def summarize(document: Mapping[str, Any]) -> PolicySummary:
    summary = PolicySummary()
    for statement in iter_allow_statements(document):
        summary.statements += 1
        names = principals(statement)
        if WILDCARD in names:
            if statement.get("Condition"):
                summary.conditional_wildcard_principals += 1
            else:
                summary.wildcard_principals += 1
            if statement.get("Sid"):
                summary.sids.append(str(statement["Sid"]))
        # Wildcards may appear anywhere in the name, e.g. "s3:*" or "s3:Get*"
        summary.wildcard_actions += sum(1 for action in actions(statement) if WILDCARD in action)
        summary.cloudfront_distributions += sum(
            1 for name in names if name.startswith(CLOUDFRONT_OAI) or name == CLOUDFRONT_SERVICE
        )
    return summary


def _load(policy: str | Mapping[str, Any]) -> Mapping[str, Any]:
    document = json.loads(policy) if isinstance(policy, str) else policy
    if not isinstance(document, Mapping):
        raise ValueError("policy document is not a JSON object")
    return document


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


@register_check(POLICY_META)
def policy_wildcards(bucket: Bucket, policy: str | Mapping[str, Any] | None | FetchError) -> Verdict:
    """Fail on public Principal '*' grants; warn on other wildcards."""
    if isinstance(policy, FetchError):
        return verdict_for_fetch_error(policy)
    if not policy:
        return Verdict.passed("No bucket policy set")
    try:
        summary = summarize(_load(policy))
    except ValueError as e:
        return Verdict.error(f"Bucket policy could not be parsed: {e}")

    detail = {
        "wildcard_principals": summary.wildcard_principals,
        "conditional_wildcard_principals": summary.conditional_wildcard_principals,
        "wildcard_actions": summary.wildcard_actions,
    }
    if summary.wildcard_principals:
        return Verdict.failed(
            f"Bucket policy grants access to any principal in {_plural(summary.wildcard_principals, 'statement')}",
            sids=summary.sids,
            **detail,
        )
    if summary.wildcards:
        entities = "entity" if summary.wildcards == 1 else "entities"
        return Verdict.warning(f"Bucket policy has {summary.wildcards} wildcard {entities}", **detail)
    return Verdict.passed("Bucket policy doesn't allow a wildcard entity", **detail)


@register_check(CLOUDFRONT_META)
def cloudfront_distributions(bucket: Bucket, policy: str | Mapping[str, Any] | None | FetchError) -> Verdict:
    if isinstance(policy, FetchError):
        return verdict_for_fetch_error(policy)
    if not policy:
        return Verdict.skipped("No bucket policy set")
    try:
        summary = summarize(_load(policy))
    except ValueError as e:
        return Verdict.error(f"Bucket policy could not be parsed: {e}")
    count = summary.cloudfront_distributions
    if count:
        return Verdict.warning(
            f"Bucket is associated with {_plural(count, 'CloudFront distribution')}",
            distributions=count,
        )
    return Verdict.passed("Bucket is not associated with any CloudFront distributions")


__all__ = [
    "policy_wildcards",
    "cloudfront_distributions",
    "summarize",
    "principals",
    "actions",
    "PolicySummary",
    "POLICY_META",
    "CLOUDFRONT_META",
]
