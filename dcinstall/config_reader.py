"""Reader for the tfvars configuration file."""

import json
from pathlib import Path
from typing import Any, Optional

import hcl2

from dcinstall.errors import ConfigurationError
from dcinstall.models import (
    DEFAULT_DATASET_SIZE,
    InstallConfig,
    Product,
    ProductConfig,
    SnapshotCatalog,
)
from dcinstall.settings import TerraformVariables

COMMENT_CHAR = "#"


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return json.dumps([_to_text(item) for item in value])
    if isinstance(value, dict):
        return json.dumps(value)
    return _unquote(str(value))


def split_list(text: Optional[str]) -> list[str]:
    """Split the bracketed text of a list value into its items."""
    if not text:
        return []
    text = text.strip()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1]
    return [_unquote(item) for item in text.split(",") if item.strip()]


def uncommented_lines(path: Path) -> list[str]:
    """Lines of ``path`` with everything after a comment marker removed."""
    lines = []
    with open(path) as f:
        for line in f:
            content = line.split(COMMENT_CHAR, 1)[0].rstrip()
            if content.strip():
                lines.append(content)
    return lines


class ConfigReader:
    """Parse an HCL variables file once and look values up by name."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._values: Optional[dict[str, Any]] = None

    @property
    def raw(self) -> dict[str, Any]:
        if self._values is None:
            try:
                with open(self.path) as f:
                    self._values = hcl2.load(f)
            except OSError as e:
                raise ConfigurationError([f"Unable to read '{self.path}': {e}"]) from e
            except Exception as e:
                raise ConfigurationError(
                    [f"Configuration file '{self.path}' is not valid HCL: {e}"]
                ) from e
        return self._values

    def get(self, key: str) -> Optional[str]:
        """Return the value of ``key`` as text, or None if it is not assigned.

        List values come back as their bracketed text; see ``split_list``.
        """
        text = _to_text(self.raw.get(key))
        return text if text else None

    def get_list(self, key: str) -> list[str]:
        value = self.raw.get(key)
        if isinstance(value, (list, tuple)):
            return [t for t in (_to_text(item) for item in value) if t]
        return split_list(_to_text(value))


def get_variable(key: str, file: Path | str) -> Optional[str]:
    """Return the value assigned to ``key`` in ``file``, or None if absent."""
    return ConfigReader(Path(file)).get(key)


def load_install_config(
    reader: ConfigReader,
    env: Optional[TerraformVariables] = None,
) -> InstallConfig:
    """Build the typed configuration used by every installer stage."""
    env = env or TerraformVariables()

    unknown = []
    products = []
    for name in reader.get_list("products"):
        try:
            product = Product(name.lower())
        except ValueError:
            unknown.append(name)
            continue
        prefix = product.value
        products.append(
            ProductConfig(
                name=product,
                license=reader.get(f"{prefix}_license") or env.license_for(prefix),
                version_tag=reader.get(f"{prefix}_version_tag"),
                shared_home_snapshot_id=reader.get(f"{prefix}_shared_home_snapshot_id"),
                db_snapshot_id=reader.get(f"{prefix}_db_snapshot_id"),
                dataset_size=reader.get(f"{prefix}_dataset_size") or DEFAULT_DATASET_SIZE,
            )
        )

    return InstallConfig(
        environment_name=reader.get("environment_name") or "",
        region=reader.get("region") or "",
        products=products,
        snapshots_json_file_path=reader.get("snapshots_json_file_path"),
        logging_bucket=reader.get("logging_bucket"),
        dataset_url=reader.get("dataset_url"),
        bamboo_admin_username=(
            reader.get("bamboo_admin_username") or env.bamboo_admin_username
        ),
        bamboo_admin_password=(
            reader.get("bamboo_admin_password") or env.bamboo_admin_password
        ),
        unknown_products=unknown,
    )


def load_snapshot_catalog(path: Path | str) -> SnapshotCatalog:
    """Load the published snapshot catalog JSON document."""
    try:
        with open(path) as f:
            return SnapshotCatalog.model_validate(json.load(f))
    except (OSError, ValueError) as e:
        raise ConfigurationError([f"Unable to load snapshots json file '{path}': {e}"]) from e
