"""Pre-flight checks run before any infrastructure is touched.

Covers:
- Product license presence (and that the template placeholder was replaced)
- Compatibility of shared home (EBS) and database (RDS) snapshots with the
  requested product version
"""

import logging
from typing import Optional

from botocore.exceptions import ClientError

from dcinstall.errors import PreflightError
from dcinstall.models import (
    InstallConfig,
    ProductConfig,
    SnapshotCatalog,
    SnapshotType,
    version_matches,
)

logger = logging.getLogger(__name__)

# Every snapshot published for performance testing carries this marker
SNAPSHOT_MARKER = "dcapt"


def check_licenses(config: InstallConfig) -> None:
    """Fail on the first product whose license is missing or still the placeholder."""
    for product in config.products:
        logger.info("Checking %s license", product.name.value)
        variable = product.license_variable
        if not product.license:
            raise PreflightError(
                f"License is undefined or malformed. Please check '{variable}' value in "
                f"the config file. If it is a multi line string, remove all new lines "
                f"to convert it to a one-liner."
            )
        if product.license.strip() == product.license_placeholder:
            raise PreflightError(
                f"License placeholder is unchanged. Please check '{variable}' value in "
                f"the config file. Generate a new license at https://my.atlassian.com/"
            )


def ebs_snapshot_version(description: str) -> str:
    """Version encoded in a description like ``dcapt-confluence-7-19-2``."""
    normalized = description.replace("-", ".").replace('"', "")
    return ".".join(normalized.split(".")[2:])


def rds_snapshot_version(snapshot_id: str) -> str:
    """Version encoded in an id like ``arn:...:snapshot:dcapt-confluence-7-19-2``."""
    marker = f"{SNAPSHOT_MARKER}-"
    if marker in snapshot_id:
        snapshot_id = snapshot_id.rsplit(marker, 1)[1]
    normalized = snapshot_id.replace("-", ".")
    return ".".join(normalized.split(".")[1:])


class SnapshotChecker:
    """Verifies configured snapshots against the product versions being installed."""

    def __init__(self, ec2_client, region: str, catalog: Optional[SnapshotCatalog] = None):
        self.ec2 = ec2_client
        self.region = region
        self.catalog = catalog

    def resolve(
        self, product: ProductConfig, snapshot_type: SnapshotType
    ) -> Optional[str]:
        """Snapshot id from the catalog, falling back to the one set in the config."""
        if self.catalog is not None and product.version_tag:
            snapshot_id = self.catalog.lookup(
                product.name.value,
                product.version_tag,
                product.dataset_size,
                snapshot_type,
                self.region,
            )
            if snapshot_id:
                return snapshot_id
        if snapshot_type == SnapshotType.EBS:
            return product.shared_home_snapshot_id
        return product.db_snapshot_id

    def describe(self, snapshot_id: str) -> Optional[str]:
        try:
            response = self.ec2.describe_snapshots(SnapshotIds=[snapshot_id])
        except ClientError as e:
            raise PreflightError(
                f"Failed to describe EBS snapshot '{snapshot_id}' in {self.region}: {e}"
            ) from e
        snapshots = response.get("Snapshots", [])
        if not snapshots:
            return None
        return snapshots[0].get("Description") or None

    def check_ebs(self, product: ProductConfig, snapshot_id: str) -> str:
        variable = f"{product.name.value}_shared_home_snapshot_id"
        logger.info(
            "Checking EBS snapshot %s compatibility with %s version %s",
            snapshot_id, product.name.value, product.version_tag,
        )
        description = self.describe(snapshot_id)
        if not description:
            raise PreflightError(
                f"Failed to get the description of EBS snapshot '{snapshot_id}'. "
                f"Please check if correct '{variable}' variable is defined in the config file."
            )
        if SNAPSHOT_MARKER not in description:
            raise PreflightError(
                f"Failed to identify EBS snapshot '{snapshot_id}' defined in '{variable}' "
                f"as the one created for '{SNAPSHOT_MARKER.upper()}'. "
                f"Snapshot description: '{description}'"
            )
        snapshot_version = ebs_snapshot_version(description)
        if not version_matches(snapshot_version, product.major_minor_version):
            raise PreflightError(
                f"EBS snapshot {snapshot_id} version {snapshot_version} defined by "
                f"'{variable}' is not compatible with {product.name.value} version "
                f"{product.version_tag}. Make sure you set '{variable}' to a snapshot ID "
                f"compatible with {product.name.value} version {product.version_tag}."
            )
        logger.info(
            "EBS snapshot %s version %s is compatible with %s version %s",
            snapshot_id, snapshot_version, product.name.value, product.version_tag,
        )
        return snapshot_version

    def check_rds(self, product: ProductConfig, snapshot_id: str) -> str:
        variable = f"{product.name.value}_db_snapshot_id"
        logger.info(
            "Checking RDS snapshot %s compatibility with %s version %s",
            snapshot_id, product.name.value, product.version_tag,
        )
        snapshot_version = rds_snapshot_version(snapshot_id)
        if not version_matches(snapshot_version, product.major_minor_version):
            raise PreflightError(
                f"RDS snapshot '{snapshot_id}' defined by '{variable}' variable is created "
                f"for {product.name.value} version {snapshot_version} while the requested "
                f"{product.name.value} version is: {product.version_tag}"
            )
        logger.info(
            "RDS snapshot '%s' is compatible with %s version %s",
            snapshot_id, product.name.value, product.version_tag,
        )
        return snapshot_version

    def check_product(self, product: ProductConfig) -> None:
        logger.info("Starting pre-flight checks for %s", product.name.value)
        logger.info("Dataset size is %s", product.dataset_size)

        ebs_snapshot_id = self.resolve(product, SnapshotType.EBS)
        rds_snapshot_id = self.resolve(product, SnapshotType.RDS)
        if not product.major_minor_version:
            if ebs_snapshot_id or rds_snapshot_id:
                logger.warning(
                    "'%s_version_tag' is not set in the config file. Skipping snapshot "
                    "compatibility checks for %s.",
                    product.name.value, product.name.value,
                )
            return

        if ebs_snapshot_id:
            self.check_ebs(product, ebs_snapshot_id)
        if rds_snapshot_id:
            self.check_rds(product, rds_snapshot_id)


def run_preflight_checks(
    config: InstallConfig,
    ec2_client,
    catalog: Optional[SnapshotCatalog] = None,
    check_license: bool = True,
    check_snapshots: bool = True,
) -> None:
    """Run license and snapshot checks for every configured product."""
    if check_license:
        check_licenses(config)
    if not check_snapshots:
        return
    checker = SnapshotChecker(ec2_client, config.region, catalog)
    for product in config.products:
        checker.check_product(product)
