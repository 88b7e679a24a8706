"""Configuration file verification.

All problems are collected before reporting so the operator can fix the
file in one pass. Nothing here talks to AWS.
"""

import logging
import os
from pathlib import Path

from dcinstall.config_reader import ConfigReader, uncommented_lines
from dcinstall.errors import ConfigurationError
from dcinstall.models import MAX_ENVIRONMENT_NAME_LENGTH, InstallConfig, Product
from dcinstall.settings import TerraformVariables

logger = logging.getLogger(__name__)


def find_placeholders(path: Path) -> list[str]:
    """Uncommented lines still holding ``<...>`` template values."""
    return [line for line in uncommented_lines(path) if "<" in line or ">" in line]


def verify_configuration(
    reader: ConfigReader,
    config: InstallConfig,
    env: TerraformVariables | None = None,
) -> None:
    """Raise ConfigurationError listing every issue found in the config file."""
    env = env or TerraformVariables()
    file_name = reader.path.name
    issues: list[str] = []
    logger.info("Verifying the config file.")

    for unknown in config.unknown_products:
        issues.append(
            f"Unknown product '{unknown}' in 'products'. Supported products are: "
            + ", ".join(p.value for p in Product)
        )

    name = config.environment_name
    if len(name) > MAX_ENVIRONMENT_NAME_LENGTH:
        issues.append(
            f"The environment name '{name}' is too long ({len(name)} characters). "
            f"Please make sure your environment name is at most "
            f"{MAX_ENVIRONMENT_NAME_LENGTH} characters."
        )

    catalog_path = config.snapshots_json_file_path
    if catalog_path and not os.path.exists(catalog_path):
        issues.append(
            f"Snapshots json file not found at {catalog_path}. Please make sure "
            f"'snapshots_json_file_path' in {file_name} points to an existing valid json file."
        )

    placeholders = find_placeholders(reader.path)
    if placeholders:
        issues.append(
            f"Configuration file '{file_name}' is not valid. Please complete the "
            f"following values using a text editor and re-run the installer: "
            + " | ".join(line.strip() for line in placeholders)
        )

    if config.has_product(Product.BAMBOO):
        if not reader.get("bamboo_license") and not env.bamboo_license:
            issues.append(
                "License is missing. Please provide Bamboo license in config file, "
                "or export it to the environment variable 'TF_VAR_bamboo_license'."
            )
        if not reader.get("bamboo_admin_password") and not env.bamboo_admin_password:
            issues.append(
                "Admin password is missing. Please provide Bamboo admin password in "
                "config file, or export it to the environment variable "
                "'TF_VAR_bamboo_admin_password'."
            )

    if issues:
        for issue in issues:
            logger.error(issue)
        logger.error("There was a problem with the configuration file. Execution is aborted.")
        raise ConfigurationError(issues)
