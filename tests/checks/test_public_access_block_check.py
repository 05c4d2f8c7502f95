from __future__ import annotations

from s3audit.checks.public_access_block_check import FLAGS, public_access_block
from s3audit.core.models import Bucket, Status

BUCKET = Bucket("b1")


def test_pab_pass_when_all_flags_set():
    res = public_access_block(BUCKET, {flag: True for flag in FLAGS})
    assert res.status is Status.PASS
    assert res.reason == "All public access blocks are enabled"


def test_pab_fail_names_disabled_flags():
    config = {flag: True for flag in FLAGS}
    config["BlockPublicPolicy"] = False
    del config["RestrictPublicBuckets"]
    res = public_access_block(BUCKET, config)
    assert res.status is Status.FAIL
    assert res.reason == "BlockPublicPolicy, RestrictPublicBuckets set to false"
    assert res.detail["BlockPublicAcls"] is True
    assert res.detail["BlockPublicPolicy"] is False


def test_pab_fail_without_configuration():
    res = public_access_block(BUCKET, None)
    assert res.status is Status.FAIL
    assert res.reason == "No public access block configuration"
