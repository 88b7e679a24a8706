"""Unit tests for configuration file verification."""
from unittest.mock import MagicMock

import pytest

from dcinstall.config_reader import ConfigReader, load_install_config
from dcinstall.errors import ConfigurationError
from dcinstall.pipeline import Installer, InstallOptions
from dcinstall.services.validation import find_placeholders, verify_configuration
from dcinstall.settings import TerraformVariables

from conftest import CONFLUENCE_TFVARS


def _verify(path, env):
    reader = ConfigReader(path)
    config = load_install_config(reader, env)
    verify_configuration(reader, config, env)
    return config


def test_valid_configuration_passes(write_tfvars, tf_vars):
    config = _verify(write_tfvars(CONFLUENCE_TFVARS), tf_vars)

    assert config.environment_name == "dcapt-test"


def test_placeholder_is_rejected(write_tfvars, tf_vars):
    path = write_tfvars(CONFLUENCE_TFVARS.replace('"dcapt-test"', '"<ENVIRONMENT_NAME>"'))

    with pytest.raises(ConfigurationError) as exc_info:
        _verify(path, tf_vars)

    assert "<ENVIRONMENT_NAME>" in str(exc_info.value)


def test_placeholder_rejected_before_any_cloud_call(write_tfvars, settings, tf_vars):
    path = write_tfvars(
        CONFLUENCE_TFVARS + 'confluence_shared_home_snapshot_id = "<SNAPSHOT_ID>"\n'
    )
    aws = MagicMock()
    installer = Installer(InstallOptions(config_file=path), settings, env=tf_vars, aws=aws)

    with pytest.raises(ConfigurationError):
        installer.validate()

    aws.ec2.describe_snapshots.assert_not_called()


def test_commented_placeholder_is_ignored(write_tfvars):
    path = write_tfvars(CONFLUENCE_TFVARS + '# region = "<REGION>"\n')

    assert find_placeholders(path) == []


def test_environment_name_longer_than_24_characters_fails(write_tfvars, tf_vars):
    long_name = "a" * 25
    path = write_tfvars(CONFLUENCE_TFVARS.replace("dcapt-test", long_name))

    with pytest.raises(ConfigurationError) as exc_info:
        _verify(path, tf_vars)

    assert "too long (25 characters)" in str(exc_info.value)


def test_environment_name_of_24_characters_passes(write_tfvars, tf_vars):
    path = write_tfvars(CONFLUENCE_TFVARS.replace("dcapt-test", "a" * 24))

    _verify(path, tf_vars)


def test_missing_snapshot_catalog_file_fails(write_tfvars, tf_vars, tmp_path):
    missing = tmp_path / "missing.json"
    path = write_tfvars(CONFLUENCE_TFVARS + f'snapshots_json_file_path = "{missing}"\n')

    with pytest.raises(ConfigurationError) as exc_info:
        _verify(path, tf_vars)

    assert "Snapshots json file not found" in str(exc_info.value)


def test_all_issues_are_reported_together(write_tfvars, tf_vars):
    path = write_tfvars(
        """\
        environment_name = "this-environment-name-is-far-too-long"
        region = "<REGION>"
        products = ["bamboo"]
        """
    )

    with pytest.raises(ConfigurationError) as exc_info:
        _verify(path, tf_vars)

    # name length, placeholder, bamboo license and bamboo password
    assert len(exc_info.value.issues) == 4


def test_bamboo_credentials_may_come_from_environment(write_tfvars):
    path = write_tfvars(
        """\
        environment_name = "dcapt-test"
        region = "us-east-1"
        products = ["bamboo"]
        """
    )
    env = TerraformVariables(bamboo_license="license", bamboo_admin_password="secret")

    _verify(path, env)


def test_unknown_product_is_reported_with_other_issues(write_tfvars, tf_vars):
    path = write_tfvars(
        """\
        environment_name = "this-environment-name-is-far-too-long"
        region = "us-east-1"
        products = ["<PRODUCT>"]
        """
    )

    with pytest.raises(ConfigurationError) as exc_info:
        _verify(path, tf_vars)

    issues = exc_info.value.issues
    assert any("Unknown product '<PRODUCT>'" in issue for issue in issues)
    assert any("too long" in issue for issue in issues)
