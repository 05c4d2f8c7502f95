from __future__ import annotations
import json

import pytest
from typer.testing import CliRunner

from s3audit.cli import app, cfg, directives_from_args
from s3audit.core.errors import DiscoveryError
from s3audit.core.models import Bucket, Directive

QUIET = ["--no-progress", "--no-show-duration"]
AES = {"Rules": [{"ApplyServerSideEncryptionByDefault": {"SSEAlgorithm": "AES256"}}]}


class FakeAccount:
    """Two compliant buckets; ``unencrypted`` names buckets without default encryption."""

    unencrypted: set = set()
    created: list = []

    def __init__(self, session=None, **kwargs) -> None:
        FakeAccount.created.append(kwargs)

    def list_buckets(self):
        return [Bucket("b1"), Bucket("b2")]

    def fetch_acl(self, bucket):
        return {"Owner": {}, "Grants": []}

    def fetch_encryption(self, bucket):
        return None if bucket.name in self.unencrypted else AES

    def fetch_logging(self, bucket):
        return {"TargetBucket": "logs", "TargetPrefix": bucket.name}

    def fetch_versioning(self, bucket):
        return {"Status": "Enabled", "MFADelete": "Enabled"}

    def fetch_public_access_block(self, bucket):
        return {"BlockPublicAcls": True, "IgnorePublicAcls": True, "BlockPublicPolicy": True, "RestrictPublicBuckets": True}

    def fetch_website(self, bucket):
        return None

    def fetch_policy(self, bucket):
        return None


@pytest.fixture(autouse=True)
def fake_account(monkeypatch):
    FakeAccount.unencrypted = set()
    FakeAccount.created = []
    monkeypatch.setattr("s3audit.cli.S3Account", FakeAccount)
    monkeypatch.setattr(cfg, "load_project_config", lambda *_args, **_kwargs: {})
    monkeypatch.delenv("NO_COLOR", raising=False)
    return FakeAccount


def _json_run(*args: str):
    result = CliRunner().invoke(app, ["run", "-f", "json", *QUIET, *args])
    return result, json.loads(result.stdout) if result.stdout.strip() else None


def test_clean_account_exits_zero():
    result, data = _json_run()

    assert result.exit_code == 0
    assert [bucket["name"] for bucket in data["buckets"]] == ["b1", "b2"]
    checks = [r["check"] for r in data["buckets"][0]["results"]]
    assert checks == [
        "acl",
        "encryption",
        "logging",
        "versioning",
        "mfa-delete",
        "public-access-blocks",
        "website",
        "policy",
        "cloudfront",
    ]
    assert "FAIL" not in data["summary"]


def test_failures_exit_one(fake_account):
    fake_account.unencrypted = {"b2"}

    result, data = _json_run()

    assert result.exit_code == 1
    encryption = [r for r in data["buckets"][1]["results"] if r["check"] == "encryption"]
    assert encryption[0]["status"] == "FAIL"


def test_warnings_alone_do_not_fail(monkeypatch):
    monkeypatch.setattr(FakeAccount, "fetch_logging", lambda self, bucket: None)

    result, data = _json_run()

    assert result.exit_code == 0
    assert data["summary"]["WARN"] == 2


def test_directives_apply_in_command_line_order():
    result, data = _json_run("--disable-check", "all", "--enable-check=acl")
    assert result.exit_code == 0
    assert [r["check"] for r in data["buckets"][0]["results"]] == ["acl"]

    result, data = _json_run("--enable-check", "acl", "--disable-check=all")
    assert result.exit_code == 0
    assert data["buckets"][0]["results"] == []


def test_comma_separated_directives_and_aliases():
    result, data = _json_run("--disable-check=all", "--enable-check=SSE,mfa")
    assert result.exit_code == 0
    assert [r["check"] for r in data["buckets"][0]["results"]] == ["encryption", "mfa-delete"]


def test_config_directives_apply_before_cli(monkeypatch):
    monkeypatch.setattr(
        cfg,
        "load_project_config",
        lambda *_args, **_kwargs: {"checks": {"disable": ["all"], "enable": ["acl"]}},
    )

    result, data = _json_run("--enable-check", "logging")

    assert [r["check"] for r in data["buckets"][0]["results"]] == ["acl", "logging"]


def test_unknown_check_exits_two_before_discovery():
    result = CliRunner().invoke(app, ["run", *QUIET, "--disable-check=all", "--enable-check=nope"])

    assert result.exit_code == 2
    assert "Unknown check: nope" in result.output
    assert "Known checks" in result.output
    assert FakeAccount.created == []


def test_discovery_error_exits_two(monkeypatch):
    def fail(self):
        raise DiscoveryError("Unable to list buckets: AccessDenied")

    monkeypatch.setattr(FakeAccount, "list_buckets", fail)

    result = CliRunner().invoke(app, ["run", *QUIET])

    assert result.exit_code == 2
    assert "Unable to list buckets" in result.output


def test_cli_options_reach_the_account():
    result = CliRunner().invoke(
        app,
        ["run", "-f", "csv", *QUIET, "--profile", "audit", "--region", "eu-west-1", "--endpoint-url", "http://localhost:9000"],
    )

    assert result.exit_code == 0
    assert FakeAccount.created == [{"profile": "audit", "region": "eu-west-1", "endpoint_url": "http://localhost:9000"}]


def test_csv_output():
    result = CliRunner().invoke(app, ["run", "-f", "csv", *QUIET, "--disable-check=all", "--enable-check=acl"])

    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert lines[0] == "bucket,check,verdict,detail"
    assert lines[1].startswith("b1,acl,PASS,")
    assert len(lines) == 3


def test_output_file(tmp_path):
    target = tmp_path / "report.json"

    result = CliRunner().invoke(app, ["run", "-f", "json", *QUIET, "-o", str(target)])

    assert result.exit_code == 0
    assert json.loads(target.read_text())["summary"]["PASS"] == 16


def test_no_color_env_disables_ansi():
    result = CliRunner().invoke(app, ["run", *QUIET], env={"NO_COLOR": "1"})

    assert result.exit_code == 0
    assert "S3 Audit Report" in result.stdout
    assert "\x1b[" not in result.output


def test_unknown_format_is_rejected():
    result = CliRunner().invoke(app, ["run", "-f", "xml", *QUIET])
    assert result.exit_code == 2


def test_list_checks_does_not_contact_aws(monkeypatch):
    def forbidden(*_args, **_kwargs):  # pragma: no cover - should not run
        raise AssertionError("S3 must not be contacted when listing checks")

    monkeypatch.setattr("s3audit.cli.S3Account", forbidden)

    result = CliRunner().invoke(app, ["run", "--list-checks", "--no-color", "--disable-check=all", "--enable-check=website"])

    assert result.exit_code == 0
    assert "website" in result.stdout
    assert "public-access-blocks" not in result.stdout


def test_checks_command_json():
    result = CliRunner().invoke(app, ["checks", "-f", "json"])

    assert result.exit_code == 0
    entries = json.loads(result.stdout)
    assert len(entries) == 9
    encryption = next(entry for entry in entries if entry["name"] == "encryption")
    assert encryption["aliases"] == ["server-side-encryption", "sse"]
    assert encryption["remediation"]


def test_directives_from_args_keeps_interleaving():
    args = ["--disable-check", "all", "-f", "csv", "--enable-check=acl,logging", "--disable-check", "logging"]
    assert directives_from_args(args) == [
        Directive.disable("all"),
        Directive.enable("acl"),
        Directive.enable("logging"),
        Directive.disable("logging"),
    ]


@pytest.mark.parametrize(
    "args,env",
    [
        (["--set", "runner=5"], {}),
        ([], {"S3AUDIT__checks": "acl"}),
    ],
)
def test_malformed_config_section_exits_two(args, env):
    result = CliRunner().invoke(app, ["run", "-f", "json", *QUIET, *args], env=env)

    assert result.exit_code == 2
    assert "must be a mapping" in result.output
    assert FakeAccount.created == []
