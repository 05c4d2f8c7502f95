from __future__ import annotations

import pytest

from s3audit.checks.versioning_check import mfa_delete, object_versioning
from s3audit.core.models import Bucket, Status

BUCKET = Bucket("b1")


@pytest.mark.parametrize(
    "versioning,expected",
    [
        ({"Status": "Enabled"}, Status.PASS),
        ({"Status": "Suspended"}, Status.WARN),
        ({}, Status.WARN),
    ],
)
def test_object_versioning(versioning: dict, expected: Status):
    assert object_versioning(BUCKET, versioning).status is expected


def test_versioning_suspended_is_distinguished():
    res = object_versioning(BUCKET, {"Status": "Suspended"})
    assert "suspended" in res.reason
    assert res.detail == {"status": "Suspended"}


@pytest.mark.parametrize(
    "versioning,expected",
    [
        ({"Status": "Enabled", "MFADelete": "Enabled"}, Status.PASS),
        ({"Status": "Enabled", "MFADelete": "Disabled"}, Status.WARN),
        ({}, Status.WARN),
    ],
)
def test_mfa_delete(versioning: dict, expected: Status):
    assert mfa_delete(BUCKET, versioning).status is expected
