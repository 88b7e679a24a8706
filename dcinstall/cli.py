"""Command line entry point: ``dcinstall [-c <config_file>] [-f] [-d] [-p] [-l] [-h]``."""

import logging
from pathlib import Path
from typing import Optional

import typer
from botocore.exceptions import BotoCoreError, ClientError

from dcinstall.errors import InstallerError
from dcinstall.log import configure_logging
from dcinstall.pipeline import Installer, InstallOptions
from dcinstall.services import workspace
from dcinstall.settings import get_settings

logger = logging.getLogger("dcinstall.cli")

DEFAULT_CONFIG_FILE = "config.tfvars"

HELP = """\
Provision the infrastructure for Atlassian Data Center products in AWS.

The infrastructure is generated by Terraform and its state is kept in an S3
bucket, which is created on the first run if it does not exist yet.
Complete the configuration file before running the installer.
"""

app = typer.Typer(
    help=HELP,
    add_completion=False,
    context_settings={"help_option_names": []},
)


def _show_help(ctx: typer.Context, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    typer.echo(ctx.get_help())
    raise typer.Exit(code=2)


def _prompt(text: str, hidden: bool) -> str:
    return typer.prompt(text, default="", show_default=False, hide_input=hidden)


@app.command()
def install(
    config_file: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help=f"Terraform configuration file. Defaults to '{DEFAULT_CONFIG_FILE}'.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    force: bool = typer.Option(False, "-f", "--force", help="Auto-approve terraform apply."),
    cleanup: bool = typer.Option(
        False, "-d", "--cleanup", help="Remove local terraform artifacts before installing."
    ),
    skip_pre_flight: bool = typer.Option(
        False,
        "-p",
        "--skip-pre-flight",
        help="Skip compatibility checks of EBS and RDS snapshots.",
    ),
    skip_license_check: bool = typer.Option(
        False, "-l", "--skip-license-check", help="Skip product license check."
    ),
    show_help: bool = typer.Option(
        False,
        "-h",
        "--help",
        help="Show this message and exit.",
        callback=_show_help,
        is_eager=True,
        expose_value=False,
    ),
) -> None:
    """Install or update the infrastructure described by the config file."""
    settings = get_settings()
    root = settings.root_path
    if config_file is None:
        config_file = root / DEFAULT_CONFIG_FILE
        if not config_file.is_file():
            raise typer.BadParameter(
                f"Terraform configuration file '{config_file}' not found!",
                param_hint="'-c' / '--config'",
            )

    log_file = configure_logging(settings.log_path, settings.log_level)

    try:
        if cleanup:
            workspace.cleanup(root)
        workspace.check_prerequisites()

        installer = Installer(
            InstallOptions(
                config_file=config_file,
                force=force,
                skip_pre_flight=skip_pre_flight,
                skip_license_check=skip_license_check,
            ),
            settings,
            prompt=None if force else _prompt,
            log_file=log_file,
        )
        installer.validate()

        if not force:
            typer.confirm(
                f"Deploy '{installer.context.config.environment_name}' to "
                f"{installer.context.config.region}?",
                abort=True,
            )
        installer.provision()
    except InstallerError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)
    except (BotoCoreError, ClientError) as e:
        logger.error("AWS request failed: %s", e)
        raise typer.Exit(code=1)

    logger.info("Installation finished. The log file is at '%s'.", log_file)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
