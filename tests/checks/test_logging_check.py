from __future__ import annotations

from s3audit.checks.logging_check import access_logging
from s3audit.core.errors import FetchError, FetchErrorKind
from s3audit.core.models import Bucket, Status

BUCKET = Bucket("b1")


def test_logging_pass_reports_target():
    res = access_logging(BUCKET, {"TargetBucket": "logs", "TargetPrefix": "b1/"})
    assert res.status is Status.PASS
    assert res.reason == "Logging to logs"
    assert res.detail == {"target_bucket": "logs", "target_prefix": "b1/"}


def test_logging_warns_when_disabled():
    res = access_logging(BUCKET, None)
    assert res.status is Status.WARN
    assert res.reason == "Logging is not enabled"


def test_logging_transient_failure_is_error():
    err = FetchError(FetchErrorKind.TRANSIENT, "slow down", concern="logging", code="SlowDown")
    res = access_logging(BUCKET, err)
    assert res.status is Status.ERROR
    assert res.detail == {"kind": "Transient", "code": "SlowDown"}
