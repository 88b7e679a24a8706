"""
Unit tests for the pre-flight license and snapshot compatibility checks.

EBS snapshots are created in moto so the description lookup goes through
the real boto3 client.
"""
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

from dcinstall.errors import PreflightError
from dcinstall.models import (
    CatalogDataset,
    CatalogProduct,
    CatalogVersion,
    InstallConfig,
    ProductConfig,
    SnapshotCatalog,
    SnapshotType,
    version_matches,
)
from dcinstall.services.preflight import (
    SnapshotChecker,
    check_licenses,
    ebs_snapshot_version,
    rds_snapshot_version,
    run_preflight_checks,
)

REGION = "us-east-1"
RDS_SNAPSHOT = "arn:aws:rds:us-east-1:123456789012:snapshot:dcapt-confluence-7-19-2"


def _config(**product_fields) -> InstallConfig:
    fields = {"name": "confluence", "license": "AAAB", "version_tag": "7.19.2"}
    fields.update(product_fields)
    return InstallConfig(
        environment_name="dcapt-test",
        region=REGION,
        products=[ProductConfig(**fields)],
    )


def _snapshot(description: str) -> str:
    ec2 = boto3.client("ec2", region_name=REGION)
    volume = ec2.create_volume(AvailabilityZone=f"{REGION}a", Size=10)
    snapshot = ec2.create_snapshot(VolumeId=volume["VolumeId"], Description=description)
    return snapshot["SnapshotId"]


# =============================================================================
# LICENSES
# =============================================================================


def test_license_present_passes():
    check_licenses(_config())


def test_empty_license_fails():
    with pytest.raises(PreflightError) as exc_info:
        check_licenses(_config(license=None))

    assert "confluence_license" in str(exc_info.value)


def test_placeholder_license_fails():
    with pytest.raises(PreflightError) as exc_info:
        check_licenses(_config(license="confluence-license"))

    assert "placeholder is unchanged" in str(exc_info.value)


def test_license_check_can_be_skipped():
    run_preflight_checks(_config(license=None), MagicMock(), check_license=False)


# =============================================================================
# VERSION PARSING
# =============================================================================


def test_ebs_snapshot_version_from_description():
    assert ebs_snapshot_version("dcapt-confluence-7-19-2") == "7.19.2"
    assert ebs_snapshot_version('"dcapt-bitbucket-8-9-4"') == "8.9.4"


def test_rds_snapshot_version_from_id():
    assert rds_snapshot_version(RDS_SNAPSHOT) == "7.19.2"
    assert rds_snapshot_version("dcapt-jira-9-4-8") == "9.4.8"


def test_version_matches_on_component_boundaries():
    assert version_matches("7.19.2", "7.19")
    assert not version_matches("7.19.2", "7.1")
    assert not version_matches("17.19.2", "7.19")
    assert not version_matches("7.19.2", "")


# =============================================================================
# SNAPSHOTS
# =============================================================================


def test_no_snapshot_configured_makes_no_cloud_call():
    ec2 = MagicMock()

    run_preflight_checks(_config(), ec2)

    ec2.describe_snapshots.assert_not_called()


@mock_aws
def test_compatible_ebs_snapshot_passes():
    snapshot_id = _snapshot("dcapt-confluence-7-19-2")
    ec2 = boto3.client("ec2", region_name=REGION)

    checker = SnapshotChecker(ec2, REGION)
    version = checker.check_ebs(_config().products[0], snapshot_id)

    assert version == "7.19.2"


@mock_aws
def test_ebs_snapshot_with_other_minor_version_fails():
    snapshot_id = _snapshot("dcapt-confluence-7-13-7")
    ec2 = boto3.client("ec2", region_name=REGION)

    with pytest.raises(PreflightError) as exc_info:
        run_preflight_checks(_config(shared_home_snapshot_id=snapshot_id), ec2)

    message = str(exc_info.value)
    assert "7.13.7" in message
    assert "7.19.2" in message


@mock_aws
def test_ebs_snapshot_without_marker_fails():
    snapshot_id = _snapshot("confluence-7-19-2 backup")
    ec2 = boto3.client("ec2", region_name=REGION)

    with pytest.raises(PreflightError) as exc_info:
        run_preflight_checks(_config(shared_home_snapshot_id=snapshot_id), ec2)

    assert "DCAPT" in str(exc_info.value)


@mock_aws
def test_ebs_snapshot_without_description_fails():
    snapshot_id = _snapshot("")
    ec2 = boto3.client("ec2", region_name=REGION)

    with pytest.raises(PreflightError):
        run_preflight_checks(_config(shared_home_snapshot_id=snapshot_id), ec2)


@mock_aws
def test_unknown_ebs_snapshot_fails():
    ec2 = boto3.client("ec2", region_name=REGION)

    with pytest.raises(PreflightError):
        run_preflight_checks(
            _config(shared_home_snapshot_id="snap-0123456789abcdef0"), ec2
        )


def test_compatible_rds_snapshot_passes():
    ec2 = MagicMock()

    run_preflight_checks(_config(db_snapshot_id=RDS_SNAPSHOT), ec2)

    ec2.describe_snapshots.assert_not_called()


def test_incompatible_rds_snapshot_fails():
    with pytest.raises(PreflightError) as exc_info:
        run_preflight_checks(_config(version_tag="8.5.1", db_snapshot_id=RDS_SNAPSHOT), MagicMock())

    message = str(exc_info.value)
    assert "7.19.2" in message
    assert "8.5.1" in message


def test_snapshots_without_version_tag_are_not_compared(caplog):
    ec2 = MagicMock()

    run_preflight_checks(
        _config(
            version_tag=None,
            shared_home_snapshot_id="snap-1",
            db_snapshot_id=RDS_SNAPSHOT,
        ),
        ec2,
    )

    ec2.describe_snapshots.assert_not_called()
    assert "confluence_version_tag" in caplog.text


def test_snapshot_checks_can_be_skipped():
    ec2 = MagicMock()

    run_preflight_checks(
        _config(shared_home_snapshot_id="snap-1"), ec2, check_snapshots=False
    )

    ec2.describe_snapshots.assert_not_called()


def test_catalog_snapshot_takes_precedence():
    catalog = SnapshotCatalog(
        {
            "confluence": CatalogProduct(
                versions=[
                    CatalogVersion(
                        version="7.19.2",
                        data=[
                            CatalogDataset(
                                size="large",
                                type=SnapshotType.RDS,
                                snapshots=[{REGION: RDS_SNAPSHOT}],
                            )
                        ],
                    )
                ]
            )
        }
    )
    checker = SnapshotChecker(MagicMock(), REGION, catalog)
    product = _config(db_snapshot_id="dcapt-confluence-6-0-0").products[0]

    assert checker.resolve(product, SnapshotType.RDS) == RDS_SNAPSHOT
    assert checker.resolve(product, SnapshotType.EBS) is None
