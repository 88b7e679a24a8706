"""Unit tests for the command line entry point."""
import pytest
from typer.testing import CliRunner

from dcinstall import cli
from dcinstall.settings import get_settings

from conftest import CONFLUENCE_TFVARS

runner = CliRunner()


@pytest.fixture(autouse=True)
def root(tmp_path, monkeypatch):
    monkeypatch.setenv("DC_INSTALL_ROOT_PATH", str(tmp_path))
    monkeypatch.setattr(cli.workspace.shutil, "which", lambda tool: f"/usr/bin/{tool}")
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


def test_help_lists_options_and_exits_with_2():
    result = runner.invoke(cli.app, ["-h"])

    assert result.exit_code == 2
    for flag in ("-c", "-f", "-d", "-p", "-l"):
        assert flag in result.output


def test_missing_config_file_is_a_usage_error(tmp_path):
    result = runner.invoke(cli.app, ["-c", str(tmp_path / "missing.tfvars")])

    assert result.exit_code == 2


def test_missing_default_config_is_a_usage_error():
    result = runner.invoke(cli.app, [])

    assert result.exit_code == 2


def test_unknown_argument_is_a_usage_error(write_tfvars):
    path = write_tfvars(CONFLUENCE_TFVARS)

    result = runner.invoke(cli.app, ["-c", str(path), "extra"])

    assert result.exit_code == 2


def test_invalid_configuration_exits_with_1(write_tfvars):
    path = write_tfvars(CONFLUENCE_TFVARS.replace('"dcapt-test"', '"<ENVIRONMENT_NAME>"'))

    result = runner.invoke(cli.app, ["-c", str(path), "-f"])

    assert result.exit_code == 1


def test_missing_prerequisite_exits_with_1(write_tfvars, monkeypatch):
    monkeypatch.setattr(cli.workspace.shutil, "which", lambda tool: None)
    path = write_tfvars(CONFLUENCE_TFVARS)

    result = runner.invoke(cli.app, ["-c", str(path), "-f"])

    assert result.exit_code == 1
