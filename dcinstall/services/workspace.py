"""Local workspace housekeeping around a Terraform run."""

import logging
import shutil
from pathlib import Path

from dcinstall.errors import PrerequisiteError
from dcinstall.services.process import Runner, run_command
from dcinstall.services.state_backend import BACKEND_FILE, TFSTATE_LOCALS_FILE, TFSTATE_MODULE
from dcinstall.services.terraform_client import OUTPUTS_FILE

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("aws", "helm", "terraform")


def check_prerequisites(tools: tuple[str, ...] = REQUIRED_TOOLS) -> None:
    for tool in tools:
        if shutil.which(tool) is None:
            raise PrerequisiteError(
                f"The required dependency [{tool}] could not be found. "
                f"Please make sure that it is installed before continuing."
            )


def cleanup(root: Path) -> list[Path]:
    """Remove local Terraform artifacts so the next init starts from scratch.

    The remote state is left untouched.
    """
    root = Path(root)
    targets = [
        root / BACKEND_FILE,
        root / OUTPUTS_FILE,
        root / TFSTATE_MODULE / TFSTATE_LOCALS_FILE,
    ]
    targets.extend(root.rglob(".terraform"))
    targets.extend(root.rglob(".terraform.lock.hcl"))

    removed = []
    for target in targets:
        if target.is_dir():
            shutil.rmtree(target)
        elif target.exists():
            target.unlink()
        else:
            continue
        logger.info("Removed %s", target)
        removed.append(target)
    return removed


def list_releases(namespace: str, runner: Runner = run_command) -> None:
    returncode, _ = runner(["helm", "list", "--namespace", namespace], None, True)
    if returncode != 0:
        logger.warning("Unable to list Helm releases in namespace '%s'.", namespace)
