from __future__ import annotations

import pytest

from s3audit.checks.encryption_check import default_encryption, sse_algorithm
from s3audit.core.errors import FetchError, FetchErrorKind
from s3audit.core.models import Bucket, Status

BUCKET = Bucket("b1")


def _config(algorithm: str) -> dict:
    return {"Rules": [{"ApplyServerSideEncryptionByDefault": {"SSEAlgorithm": algorithm}}]}


@pytest.mark.parametrize("algorithm,label", [("AES256", "AES256"), ("aws:kms", "KMS"), ("aws:kms:dsse", "dual-layer KMS")])
def test_encryption_pass(algorithm: str, label: str):
    res = default_encryption(BUCKET, _config(algorithm))
    assert res.status is Status.PASS
    assert label in res.reason
    assert res.detail == {"algorithm": algorithm}


@pytest.mark.parametrize("config", [None, {}, {"Rules": []}])
def test_encryption_fail_when_not_configured(config):
    res = default_encryption(BUCKET, config)
    assert res.status is Status.FAIL
    assert res.reason == "Server side encryption is not enabled"


def test_encryption_warns_on_unknown_algorithm():
    res = default_encryption(BUCKET, _config("rot13"))
    assert res.status is Status.WARN
    assert "rot13" in res.reason


def test_encryption_missing_bucket_is_skipped():
    err = FetchError(FetchErrorKind.NOT_FOUND, "gone", concern="encryption", bucket="b1", code="NoSuchBucket")
    res = default_encryption(BUCKET, err)
    assert res.status is Status.SKIP
    assert res.detail == {"kind": "NotFound"}


def test_sse_algorithm_reads_first_rule():
    assert sse_algorithm(_config("aws:kms")) == "aws:kms"
    assert sse_algorithm(None) is None
