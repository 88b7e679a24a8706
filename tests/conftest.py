"""
Pytest configuration and shared fixtures.
AWS calls are served by moto (in-process mocks); Terraform, the AWS CLI and
Helm are replaced by a recording fake runner.
"""
import json
import textwrap
from pathlib import Path

import pytest

from dcinstall.settings import Settings, TerraformVariables

REGION = "us-east-1"

CONFLUENCE_TFVARS = """\
# Environment settings
environment_name = "dcapt-test"
region           = "us-east-1"
products         = ["confluence"]

confluence_license     = "AAABLicenseKey"
confluence_version_tag = "7.19.2"
"""


@pytest.fixture(autouse=True)
def aws_env(monkeypatch):
    """Set fake AWS credentials so boto3 doesn't error in tests."""
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "test")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "test")
    for name in (
        "jira_license",
        "confluence_license",
        "bitbucket_license",
        "bamboo_license",
        "bamboo_admin_username",
        "bamboo_admin_password",
    ):
        monkeypatch.delenv(f"TF_VAR_{name}", raising=False)


@pytest.fixture
def tf_vars():
    return TerraformVariables()


@pytest.fixture
def write_tfvars(tmp_path):
    """Write a tfvars file into the temporary Terraform root."""

    def _write(content: str, name: str = "config.tfvars") -> Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(content))
        return path

    return _write


@pytest.fixture
def settings(tmp_path):
    return Settings(root_path=tmp_path, state_bucket_wait_seconds=0)


class FakeRunner:
    """Records commands and answers them from a table of canned results."""

    def __init__(self, outputs=None, failures=()):
        self.commands = []
        self.outputs = outputs or {}
        self.failures = set(failures)

    def __call__(self, command, cwd=None, echo=True):
        self.commands.append(list(command))
        line = " ".join(command)
        for needle in self.failures:
            if needle in line:
                return 1, "Error: something went wrong\n"
        if "output" in command and "-json" in command:
            return 0, json.dumps(self.outputs)
        return 0, ""

    def ran(self, *parts):
        return [c for c in self.commands if all(p in c for p in parts)]


@pytest.fixture
def fake_runner():
    return FakeRunner()
