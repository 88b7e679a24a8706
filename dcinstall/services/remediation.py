"""Post-apply fix-ups that Terraform cannot express.

Both steps are best-effort: the infrastructure is already provisioned when
they run, so failures are reported with manual instructions instead of
aborting the installation.
"""

import logging
from typing import Callable, Optional

import httpx
from botocore.exceptions import BotoCoreError, ClientError

from dcinstall.bamboo_client import AUTHENTICATION_FAILED, RUNNING, BambooClient
from dcinstall.models import InstallConfig, Product, ResumeOutcome, TerraformOutputs

logger = logging.getLogger(__name__)

SSH_TCP_PORT = 7999

# (prompt text, hide input) -> answer
Prompt = Callable[[str, bool], str]


def _collect_credentials(
    config: InstallConfig, prompt: Optional[Prompt]
) -> tuple[Optional[str], Optional[str]]:
    username = config.bamboo_admin_username
    password = config.bamboo_admin_password
    if not username and prompt:
        username = prompt("Please enter the bamboo administrator username", False)
    if username and not password and prompt:
        password = prompt(f"Please enter password of the Bamboo '{username}' user", True)
    return username or None, password or None


def resume_bamboo_server(
    config: InstallConfig,
    outputs: TerraformOutputs,
    prompt: Optional[Prompt] = None,
    timeout: float = 30.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> ResumeOutcome:
    """Resume Bamboo after a dataset import left it paused.

    The admin credentials must match the ones stored in the imported dataset.
    """
    if not config.dataset_url or not config.has_product(Product.BAMBOO):
        return ResumeOutcome.SKIPPED

    logger.info("Resuming Bamboo server.")
    outcome = ResumeOutcome.UNEXPECTED_STATE
    username, password = _collect_credentials(config, prompt)
    bamboo_url = outputs.find(Product.BAMBOO.value)

    if not username:
        outcome = ResumeOutcome.SKIPPED
    elif isinstance(bamboo_url, str):
        client = BambooClient(bamboo_url, username, password, timeout, transport)
        try:
            status = client.get_status()
            if RUNNING in status:
                logger.info("Bamboo server is already %s, skip resuming.", status)
                return ResumeOutcome.ALREADY_RUNNING

            result = client.resume()
            if RUNNING in result:
                outcome = ResumeOutcome.RESUMED
                logger.info("Bamboo server was resumed and it is running successfully.")
            elif AUTHENTICATION_FAILED in result:
                outcome = ResumeOutcome.AUTHENTICATION_FAILED
                logger.error(
                    "The provided admin username and password is not matched with "
                    "the credential stored in the dataset."
                )
            else:
                logger.error("Unexpected state when resuming Bamboo server, state: %s", result)
        except httpx.HTTPError as e:
            logger.error("Unable to reach Bamboo at %s: %s", bamboo_url, e)
    else:
        logger.error("Bamboo URL could not be found in the terraform outputs.")

    if outcome != ResumeOutcome.RESUMED:
        logger.warning("We were not able to login into the Bamboo software to resume the server.")
        logger.warning("Please login into the Bamboo and 'RESUME' the server before start using the product.")
    return outcome


def load_balancer_name(hostname: str) -> str:
    """Classic ELB name from its DNS name, e.g. ``a1b2-123.us-east-1.elb.amazonaws.com``."""
    return hostname.split("-", 1)[0]


def _listener(elb_client, name: str, port: int) -> Optional[dict]:
    response = elb_client.describe_load_balancers(LoadBalancerNames=[name])
    for description in response.get("LoadBalancerDescriptions", []):
        for listener_description in description.get("ListenerDescriptions", []):
            listener = listener_description.get("Listener", {})
            if listener.get("LoadBalancerPort") == port:
                return listener
    return None


def enable_ssh_tcp_listener(
    config: InstallConfig,
    outputs: TerraformOutputs,
    elb_client,
    port: int = SSH_TCP_PORT,
) -> bool:
    """Switch the Bitbucket SSH listener from HTTP to TCP.

    The listener is deleted and recreated on the original instance port
    because ELB cannot change a listener protocol in place.
    """
    if not config.has_product(Product.BITBUCKET):
        return False

    hostname = outputs.find("load_balancer_hostname")
    if not isinstance(hostname, str) or not hostname:
        logger.error(
            "Load balancer hostname could not be found in the terraform outputs. "
            "You may want to update listener port %s to TCP manually via the AWS Console.",
            port,
        )
        return False

    name = load_balancer_name(hostname)
    logger.info(
        "Enabling SSH connectivity for Bitbucket. Updating load balancer [%s] listener "
        "protocol from HTTP to TCP on port %s...",
        hostname, port,
    )
    try:
        listener = _listener(elb_client, name, port)
        if listener is None:
            logger.error("Load balancer [%s] has no listener on port %s.", hostname, port)
            return False
        logger.info("Current listener: %s", listener)

        elb_client.delete_load_balancer_listeners(
            LoadBalancerName=name, LoadBalancerPorts=[port]
        )
        elb_client.create_load_balancer_listeners(
            LoadBalancerName=name,
            Listeners=[
                {
                    "Protocol": "TCP",
                    "LoadBalancerPort": port,
                    "InstanceProtocol": "TCP",
                    "InstancePort": listener["InstancePort"],
                }
            ],
        )
        logger.info("Load balancer listener protocol updated for %s.", hostname)
        logger.info("Updated listener: %s", _listener(elb_client, name, port))
    except (BotoCoreError, ClientError) as e:
        logger.error(
            "There was an issue updating the load balancer [%s] listener protocol from "
            "HTTP to TCP on port %s. You may want to do this manually via the AWS Console. %s",
            hostname, port, e,
        )
        return False
    return True
