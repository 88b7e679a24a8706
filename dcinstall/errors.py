"""Installer exceptions.

Every fatal failure is an ``InstallerError``; the CLI maps them to exit code 1.
"""

from typing import Sequence


class InstallerError(Exception):
    """Base class for errors that abort the installation."""


class PrerequisiteError(InstallerError):
    """A required command line tool is not installed."""


class ConfigurationError(InstallerError):
    """The configuration file is invalid.

    Carries every issue found so they can all be reported at once.
    """

    def __init__(self, issues: Sequence[str]):
        self.issues = list(issues)
        super().__init__("; ".join(self.issues) or "Invalid configuration")


class PreflightError(InstallerError):
    """A product license or snapshot failed its pre-flight check."""


class StateBackendError(InstallerError):
    """The Terraform state backend could not be prepared."""


class TerraformError(InstallerError):
    """A Terraform command exited with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int):
        self.command = list(command)
        self.returncode = returncode
        super().__init__(
            f"'{' '.join(self.command)}' failed with exit code {returncode}"
        )
