from __future__ import annotations

import pytest

from s3audit.core.models import AuditReport, Bucket, BucketReport, CheckResult, Status, Verdict


def test_verdict_detail_is_read_only() -> None:
    verdict = Verdict.failed("public", grants=["Everyone"])

    with pytest.raises(TypeError):
        verdict.detail["grants"] = []
    assert verdict.detail["grants"] == ["Everyone"]


def test_verdict_detail_is_copied_from_caller() -> None:
    detail = {"algorithm": "AES256"}
    verdict = Verdict(Status.PASS, "ok", detail)

    detail["algorithm"] = "none"

    assert verdict.detail == {"algorithm": "AES256"}


def test_result_detail_changes_do_not_reach_the_report() -> None:
    bucket = Bucket("b1")
    result = CheckResult(bucket=bucket, check="logging", verdict=Verdict.passed("Logging to logs", target_bucket="logs"))
    report = AuditReport(bucket_reports=(BucketReport(bucket=bucket, results=(result,)),))

    result.detail["target_bucket"] = "elsewhere"

    assert next(report.results()).detail == {"target_bucket": "logs"}
    assert Verdict.passed().detail == {}
    assert result.status is Status.PASS
