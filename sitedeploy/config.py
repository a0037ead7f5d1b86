"""Application configuration using pydantic-settings."""

import os
from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file and override existing env vars
load_dotenv(override=True)


def _default_hosts_file() -> str:
    if os.name == "nt":
        system_root = os.environ.get("SystemRoot", r"C:\Windows")
        return os.path.join(system_root, "System32", "drivers", "etc", "hosts")
    return "/etc/hosts"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"

    # Hosting engine
    hosting_engine: Literal["iis", "memory"] = "iis"
    appcmd_path: str = r"C:\Windows\System32\inetsrv\appcmd.exe"
    sites_root: str = r"C:\inetpub\wwwroot"
    hosts_file_path: str = Field(default_factory=_default_hosts_file)
    loopback_address: str = "127.0.0.1"

    # File synchronization
    site_stop_settle_seconds: float = 2.0
    default_exclude_patterns: list[str] = Field(default_factory=list)

    # Policies
    require_certificate_binding: bool = False  # fail site creation if the cert can't be attached
    allow_success_rollback: bool = False
    rollback_command_template: str = "sitedeploy rollback --id {deployment_id}"
    default_requested_by: str = "system"

    # Collaborators
    health_check_timeout_seconds: float = 30.0
    cloud_metadata_timeout_seconds: float = 2.0

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"
    log_directory: str = "logs"
    log_file_name: str | None = None

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
