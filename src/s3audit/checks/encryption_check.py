from __future__ import annotations
from typing import Any, Mapping

from s3audit.core.base import verdict_for_fetch_error
from s3audit.core.errors import FetchError
from s3audit.core.models import Bucket, CheckMeta, Concern, Severity, Verdict
from s3audit.core.registry import register_check

_ALGORITHMS = {
    "AES256": "the default AES256 algorithm",
    "aws:kms": "KMS",
    "aws:kms:dsse": "dual-layer KMS",
}

META = CheckMeta(
    name="encryption",
    title="Default server-side encryption",
    concern=Concern.ENCRYPTION,
    severity=Severity.HIGH,
    aliases=("server-side-encryption", "sse"),
    tags=frozenset({"security", "encryption"}),
    description="Ensure a default server-side encryption rule is configured.",
    explanation="Without default encryption, objects uploaded without explicit encryption headers are stored unencrypted.",
    remediation="Configure default encryption with SSE-S3 (AES256) or, preferably, SSE-KMS.",
)


def sse_algorithm(config: Mapping[str, Any] | None) -> str | None:
    """Return the algorithm of the first default-encryption rule, if any."""
    rules = (config or {}).get("Rules") or []
    if not rules:
        return None
    default = rules[0].get("ApplyServerSideEncryptionByDefault") or {}
    return default.get("SSEAlgorithm") or None


@register_check(META)
def default_encryption(bucket: Bucket, config: Mapping[str, Any] | None | FetchError) -> Verdict:
    if isinstance(config, FetchError):
        return verdict_for_fetch_error(config)

    algorithm = sse_algorithm(config)
    if algorithm is None:
        return Verdict.failed("Server side encryption is not enabled")
    if algorithm in _ALGORITHMS:
        return Verdict.passed(f"Server side encryption enabled using {_ALGORITHMS[algorithm]}", algorithm=algorithm)
    return Verdict.warning(f"Server side encryption using unknown algorithm: {algorithm}", algorithm=algorithm)


__all__ = ["default_encryption", "sse_algorithm", "META"]
