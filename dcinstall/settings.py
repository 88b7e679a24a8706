"""Installer settings loaded from environment variables or .env file."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Installer settings.

    These are loaded from environment variables prefixed with ``DC_INSTALL_``
    or a .env file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="DC_INSTALL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Terraform root holding the resource definitions and modules/tfstate
    root_path: Path = Path(".")
    log_dir: str = "logs"
    log_level: str = "INFO"

    http_timeout: float = 30.0
    state_bucket_wait_seconds: float = 5.0
    helm_namespace: str = "atlassian"

    @property
    def log_path(self) -> Path:
        return self.root_path / self.log_dir


class TerraformVariables(BaseSettings):
    """Terraform variables exported as ``TF_VAR_*`` instead of kept in the config file."""

    model_config = SettingsConfigDict(
        env_prefix="TF_VAR_",
        case_sensitive=False,
        extra="ignore",
    )

    jira_license: Optional[str] = None
    confluence_license: Optional[str] = None
    bitbucket_license: Optional[str] = None
    bamboo_license: Optional[str] = None
    bamboo_admin_username: Optional[str] = None
    bamboo_admin_password: Optional[str] = None

    def license_for(self, product: str) -> Optional[str]:
        return getattr(self, f"{product}_license", None)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
