"""Terraform state backend bootstrap.

The S3 bucket and DynamoDB lock table holding the state are themselves
created by Terraform, from the nested ``modules/tfstate`` module with a
local state. This only happens once per account and region.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from botocore.exceptions import ClientError

from dcinstall.errors import StateBackendError
from dcinstall.models import StateBackend
from dcinstall.services.terraform_client import TerraformClient

logger = logging.getLogger(__name__)

BACKEND_FILE = "terraform-backend.tf"
TFSTATE_MODULE = Path("modules") / "tfstate"
TFSTATE_LOCALS_FILE = "tfstate-locals.tf"

_MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}

BACKEND_TEMPLATE = """\
# This file is generated by the installer, do not edit it manually.
terraform {{
  backend "s3" {{
    region         = "{region}"
    bucket         = "{bucket}"
    key            = "{key}"
    dynamodb_table = "{lock_table}"
  }}
}}
"""

LOCALS_TEMPLATE = """\
# This file is generated by the installer, do not edit it manually.
locals {{
  region              = "{region}"
  bucket_name         = "{bucket}"
  dynamodb_name       = "{lock_table}"
  logging_bucket_name = "{logging_bucket}"
}}
"""


def write_backend_files(
    root: Path, backend: StateBackend, logging_bucket: Optional[str] = None
) -> tuple[Path, Path]:
    """Generate the root backend block and the tfstate module locals."""
    root = Path(root)
    values = backend.model_dump()
    values["logging_bucket"] = logging_bucket or ""

    backend_file = root / BACKEND_FILE
    backend_file.write_text(BACKEND_TEMPLATE.format(**values))

    locals_file = root / TFSTATE_MODULE / TFSTATE_LOCALS_FILE
    locals_file.parent.mkdir(parents=True, exist_ok=True)
    locals_file.write_text(LOCALS_TEMPLATE.format(**values))

    logger.info("Terraform state backend/variable files are created.")
    return backend_file, locals_file


def bucket_exists(s3_client, bucket: str) -> bool:
    try:
        s3_client.head_bucket(Bucket=bucket)
    except ClientError as e:
        code = str(e.response.get("Error", {}).get("Code", ""))
        if code in _MISSING_BUCKET_CODES:
            return False
        raise StateBackendError(f"Unable to check S3 bucket '{bucket}': {e}") from e
    return True


def ensure_state_backend(
    backend: StateBackend,
    s3_client,
    terraform: TerraformClient,
    var_file: Path,
    logging_bucket: Optional[str] = None,
    wait_seconds: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Create the state bucket unless it already exists.

    Returns True if the bucket was created by this call.
    """
    logger.info("Checking the terraform state.")
    if bucket_exists(s3_client, backend.bucket):
        logger.info("S3 bucket '%s' already exists.", backend.bucket)
        return False

    if logging_bucket and not bucket_exists(s3_client, logging_bucket):
        raise StateBackendError(
            f"The logging bucket '{logging_bucket}' does not exist. "
            f"Please create the bucket first."
        )

    logger.info("Creating '%s' bucket for storing the terraform state...", backend.bucket)
    if not terraform.is_initialized:
        terraform.init()
    terraform.apply(var_file)
    # S3 is eventually consistent; give the new bucket time to become visible
    sleep(wait_seconds)
    return True
