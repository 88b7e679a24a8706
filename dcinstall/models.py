"""Pydantic models for the installer configuration and Terraform/AWS data."""

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, RootModel

MAX_ENVIRONMENT_NAME_LENGTH = 24
DEFAULT_DATASET_SIZE = "large"


# =============================================================================
# ENUMS
# =============================================================================


class Product(str, Enum):
    """Atlassian Data Center products the Terraform root can deploy."""

    JIRA = "jira"
    CONFLUENCE = "confluence"
    BITBUCKET = "bitbucket"
    BAMBOO = "bamboo"


class SnapshotType(str, Enum):
    """Kind of dataset snapshot listed in the snapshot catalog."""

    EBS = "ebs"
    RDS = "rds"


class ResumeOutcome(str, Enum):
    """Result of trying to resume a Bamboo server after a dataset import."""

    SKIPPED = "skipped"
    ALREADY_RUNNING = "already_running"
    RESUMED = "resumed"
    AUTHENTICATION_FAILED = "authentication_failed"
    UNEXPECTED_STATE = "unexpected_state"


# =============================================================================
# CONFIGURATION MODELS
# =============================================================================


class ProductConfig(BaseModel):
    """Per-product settings picked out of the tfvars file."""

    name: Product
    license: Optional[str] = None
    version_tag: Optional[str] = None
    shared_home_snapshot_id: Optional[str] = None
    db_snapshot_id: Optional[str] = None
    dataset_size: str = Field(default=DEFAULT_DATASET_SIZE)

    @property
    def license_variable(self) -> str:
        return f"{self.name.value}_license"

    @property
    def license_placeholder(self) -> str:
        return f"{self.name.value}-license"

    @property
    def major_minor_version(self) -> str:
        return major_minor(self.version_tag or "")


class InstallConfig(BaseModel):
    """Typed view of the tfvars file used to drive the installation."""

    environment_name: str = ""
    region: str = ""
    products: list[ProductConfig] = Field(default_factory=list)
    snapshots_json_file_path: Optional[str] = None
    logging_bucket: Optional[str] = None
    dataset_url: Optional[str] = None
    bamboo_admin_username: Optional[str] = None
    bamboo_admin_password: Optional[str] = None
    # names listed in `products` that are not supported
    unknown_products: list[str] = Field(default_factory=list)

    def product(self, name: Product | str) -> Optional[ProductConfig]:
        for product in self.products:
            if product.name == Product(name):
                return product
        return None

    def has_product(self, name: Product | str) -> bool:
        return self.product(name) is not None

    @property
    def product_names(self) -> list[str]:
        return [p.name.value for p in self.products]


# =============================================================================
# SNAPSHOT CATALOG
# =============================================================================


class CatalogDataset(BaseModel):
    """A dataset of one size and storage type, snapshotted in several regions."""

    size: str
    type: SnapshotType
    snapshots: list[dict[str, str]] = Field(default_factory=list)

    def snapshot_for(self, region: str) -> Optional[str]:
        for entry in self.snapshots:
            if region in entry:
                return entry[region]
        return None


class CatalogVersion(BaseModel):
    version: str
    data: list[CatalogDataset] = Field(default_factory=list)


class CatalogProduct(BaseModel):
    versions: list[CatalogVersion] = Field(default_factory=list)


class SnapshotCatalog(RootModel[dict[str, CatalogProduct]]):
    """Published snapshot ids keyed by product, version, dataset and region."""

    def lookup(
        self,
        product: str,
        version: str,
        size: str,
        snapshot_type: SnapshotType,
        region: str,
    ) -> Optional[str]:
        entry = self.root.get(product)
        if entry is None:
            return None
        for catalog_version in entry.versions:
            if catalog_version.version != version:
                continue
            for dataset in catalog_version.data:
                if dataset.size == size and dataset.type == snapshot_type:
                    snapshot_id = dataset.snapshot_for(region)
                    if snapshot_id:
                        return snapshot_id
        return None


# =============================================================================
# TERRAFORM MODELS
# =============================================================================


class StateBackend(BaseModel):
    """Remote S3 backend holding the Terraform state of one environment."""

    bucket: str
    key: str
    region: str
    lock_table: str

    @classmethod
    def for_environment(
        cls, environment_name: str, region: str, account_id: str
    ) -> "StateBackend":
        return cls(
            bucket=f"atlassian-data-center-{region}-{account_id}-tf-state",
            key=f"{environment_name}/terraform.tfstate",
            region=region,
            lock_table=f"atlassian_data_center_{region}_{account_id}_tf_lock".replace(
                "-", "_"
            ),
        )


class TerraformOutput(BaseModel):
    """A single entry of ``terraform output -json``."""

    sensitive: bool = False
    type: Any = None
    value: Any = None


class TerraformOutputs(RootModel[dict[str, TerraformOutput]]):
    """All outputs of the root module."""

    def get(self, name: str) -> Any:
        output = self.root.get(name)
        return output.value if output else None

    def find(self, key: str) -> Any:
        """Return the first value stored under ``key``, searching nested maps."""
        if key in self.root:
            return self.root[key].value
        for output in self.root.values():
            found = _find_nested(output.value, key)
            if found is not None:
                return found
        return None


def _find_nested(value: Any, key: str) -> Any:
    if isinstance(value, dict):
        if key in value:
            return value[key]
        for item in value.values():
            found = _find_nested(item, key)
            if found is not None:
                return found
    elif isinstance(value, list):
        for item in value:
            found = _find_nested(item, key)
            if found is not None:
                return found
    return None


def major_minor(version: str) -> str:
    """Return the first two dot-separated components of a version string."""
    return ".".join(version.split(".")[:2])


def version_matches(snapshot_version: str, major_minor_version: str) -> bool:
    """True when ``major_minor_version`` occurs in ``snapshot_version`` as whole components."""
    if not major_minor_version:
        return False
    pattern = rf"(?<![\d]){re.escape(major_minor_version)}(?![\d])"
    return re.search(pattern, snapshot_version) is not None
