"""Kubernetes access configuration for the new EKS cluster."""

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from botocore.exceptions import BotoCoreError, ClientError

from dcinstall.services.process import Runner, run_command

logger = logging.getLogger(__name__)

EKS_PREFIX = "atlas-"
EKS_SUFFIX = "-cluster"
MAX_CLUSTER_NAME_LENGTH = 38

# aws-iam-authenticator 0.5.5+ only speaks v1beta1
OLD_AUTH_API_VERSION = "client.authentication.k8s.io/v1alpha1"
AUTH_API_VERSION = "client.authentication.k8s.io/v1beta1"


def cluster_name(environment_name: str) -> str:
    return f"{EKS_PREFIX}{environment_name}{EKS_SUFFIX}"[:MAX_CLUSTER_NAME_LENGTH]


def context_file(root: Path, cluster: str) -> Path:
    return Path(root) / f"kubeconfig_{cluster}"


def cluster_exists(eks_client, cluster: str) -> bool:
    try:
        eks_client.describe_cluster(name=cluster)
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") == "ResourceNotFoundException":
            return False
        raise
    return True


def _patch(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _patch(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_patch(v) for v in value]
    if value == OLD_AUTH_API_VERSION:
        return AUTH_API_VERSION
    return value


def patch_auth_api_version(path: Path) -> None:
    """Rewrite exec credential plugins to the v1beta1 authentication API."""
    with open(path) as f:
        kubeconfig = yaml.safe_load(f) or {}
    with open(path, "w") as f:
        yaml.safe_dump(_patch(kubeconfig), f, default_flow_style=False, sort_keys=False)


def export_kube_context(
    root: Path,
    environment_name: str,
    region: str,
    eks_client,
    update_default_context: bool = True,
    runner: Runner = run_command,
) -> Optional[Path]:
    """Write ``kubeconfig_<cluster>`` next to the Terraform root.

    Returns the file path, or None when the cluster or file is missing.
    """
    cluster = cluster_name(environment_name)
    path = context_file(root, cluster)

    try:
        found = cluster_exists(eks_client, cluster)
    except (BotoCoreError, ClientError) as e:
        logger.error("Unable to describe EKS cluster %s: %s", cluster, e)
        return None
    if not found:
        logger.error("EKS cluster %s could not be found in region %s.", cluster, region)
        return None

    update = ["aws", "eks", "update-kubeconfig", "--name", cluster, "--region", region]
    runner([*update, "--kubeconfig", str(path)], None, True)
    if not path.is_file():
        logger.error("Kubernetes context file '%s' could not be found.", path)
        return None

    logger.info("EKS Cluster %s in region %s is ready to use.", cluster, region)
    logger.info("Kubernetes config file could be found at '%s'", path)
    if update_default_context:
        returncode, _ = runner(update, None, True)
        if returncode != 0:
            logger.warning("Unable to update the default Kubernetes context for %s.", cluster)

    patch_auth_api_version(path)
    return path
