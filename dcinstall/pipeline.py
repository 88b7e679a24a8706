"""Installation pipeline for Atlassian Data Center infrastructure.

Stages run in order and stop on the first fatal error:

1. Configuration reading and verification
2. Pre-flight license and snapshot checks
3. Terraform state backend bootstrap
4. Terraform apply of the full infrastructure
5. Best-effort post-apply fix-ups (Bamboo resume, kube context, SSH listener)
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from dcinstall.aws import AwsClients
from dcinstall.config_reader import ConfigReader, load_install_config, load_snapshot_catalog
from dcinstall.errors import StateBackendError
from dcinstall.models import InstallConfig, ResumeOutcome, StateBackend, TerraformOutputs
from dcinstall.services import kube_context, remediation, workspace
from dcinstall.services.preflight import run_preflight_checks
from dcinstall.services.process import Runner, run_command
from dcinstall.services.state_backend import (
    TFSTATE_MODULE,
    ensure_state_backend,
    write_backend_files,
)
from dcinstall.services.terraform_client import TerraformClient, needs_state_migration
from dcinstall.services.validation import verify_configuration
from dcinstall.settings import Settings, TerraformVariables

logger = logging.getLogger(__name__)


@dataclass
class InstallOptions:
    """Command line switches."""

    config_file: Path
    force: bool = False
    skip_pre_flight: bool = False
    skip_license_check: bool = False


@dataclass
class InstallContext:
    """State handed from one stage to the next."""

    options: InstallOptions
    settings: Settings
    reader: ConfigReader
    config: InstallConfig
    log_file: Optional[Path] = None
    backend: Optional[StateBackend] = None
    outputs: TerraformOutputs = field(default_factory=lambda: TerraformOutputs({}))
    resume_outcome: ResumeOutcome = ResumeOutcome.SKIPPED
    listener_updated: bool = False
    kubeconfig: Optional[Path] = None

    @property
    def root(self) -> Path:
        return self.settings.root_path.resolve()

    @property
    def var_file(self) -> Path:
        return self.options.config_file.resolve()


class Installer:
    """Runs every installation stage against one configuration file."""

    def __init__(
        self,
        options: InstallOptions,
        settings: Settings,
        env: Optional[TerraformVariables] = None,
        aws: Optional[AwsClients] = None,
        runner: Runner = run_command,
        prompt: Optional[remediation.Prompt] = None,
        sleep: Optional[Callable[[float], None]] = None,
        log_file: Optional[Path] = None,
    ):
        self.env = env or TerraformVariables()
        reader = ConfigReader(options.config_file)
        self.context = InstallContext(
            options=options,
            settings=settings,
            reader=reader,
            config=load_install_config(reader, self.env),
            log_file=log_file,
        )
        self.aws = aws or AwsClients(self.context.config.region)
        self.runner = runner
        self.prompt = prompt
        self.sleep = sleep or time.sleep

    def terraform(self, working_dir: Path) -> TerraformClient:
        return TerraformClient(working_dir, self.context.log_file, self.runner)

    def verify(self) -> None:
        ctx = self.context
        logger.info("Terraform will use '%s' to install the infrastructure.", ctx.var_file)
        verify_configuration(ctx.reader, ctx.config, self.env)

    def pre_flight(self) -> None:
        ctx = self.context
        options = ctx.options
        catalog = None
        if ctx.config.snapshots_json_file_path and not options.skip_pre_flight:
            catalog = load_snapshot_catalog(ctx.config.snapshots_json_file_path)
        run_preflight_checks(
            ctx.config,
            self.aws.ec2,
            catalog=catalog,
            check_license=not options.skip_license_check,
            check_snapshots=not options.skip_pre_flight,
        )

    def bootstrap_state(self) -> None:
        ctx = self.context
        logger.info(
            "'%s' infrastructure deployment is started using '%s'.",
            ctx.config.environment_name, ctx.var_file.name,
        )
        ctx.backend = StateBackend.for_environment(
            ctx.config.environment_name, ctx.config.region, self.aws.account_id()
        )
        write_backend_files(ctx.root, ctx.backend, ctx.config.logging_bucket)
        ensure_state_backend(
            ctx.backend,
            self.aws.s3,
            self.terraform(ctx.root / TFSTATE_MODULE),
            ctx.var_file,
            logging_bucket=ctx.config.logging_bucket,
            wait_seconds=ctx.settings.state_bucket_wait_seconds,
            sleep=self.sleep,
        )

    def apply(self) -> None:
        ctx = self.context
        if ctx.backend is None:
            raise StateBackendError("Terraform state backend is not bootstrapped.")
        logger.info("Starting to analyze the infrastructure...")
        terraform = self.terraform(ctx.root)
        migrate_state = needs_state_migration(ctx.root, ctx.backend)
        if migrate_state:
            logger.info("Migrating the terraform state to S3 bucket...")
        terraform.init(migrate_state=migrate_state)
        terraform.apply(ctx.var_file)
        ctx.outputs = terraform.save_outputs()

    def post_apply(self) -> None:
        ctx = self.context
        ctx.resume_outcome = remediation.resume_bamboo_server(
            ctx.config,
            ctx.outputs,
            prompt=self.prompt,
            timeout=ctx.settings.http_timeout,
        )
        ctx.kubeconfig = kube_context.export_kube_context(
            ctx.root,
            ctx.config.environment_name,
            ctx.config.region,
            self.aws.eks,
            update_default_context=not ctx.options.force,
            runner=self.runner,
        )
        ctx.listener_updated = remediation.enable_ssh_tcp_listener(
            ctx.config, ctx.outputs, self.aws.elb
        )
        workspace.list_releases(ctx.settings.helm_namespace, runner=self.runner)

    def validate(self) -> None:
        """Everything that must pass before cloud resources are created."""
        self.verify()
        self.pre_flight()

    def provision(self) -> InstallContext:
        """Create or update the infrastructure; assumes ``validate`` passed."""
        self.bootstrap_state()
        self.apply()
        self.post_apply()
        return self.context

    def run(self) -> InstallContext:
        self.validate()
        return self.provision()
