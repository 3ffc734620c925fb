"""
Accord Settings - Configuration management using Pydantic Settings.

Loads configuration from environment variables and .env files.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Find project root (where .env file is located)
PROJECT_ROOT = Path(__file__).parent.parent


class AccordSettings(BaseSettings):
    """
    Accord configuration settings.

    Settings are loaded from:
    1. Environment variables (highest priority)
    2. .env file in project root
    3. Default values (lowest priority)
    """

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="ACCORD_",  # All Accord env vars must start with ACCORD_
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR) (env: ACCORD_LOG_LEVEL)",
    )

    # Account defaults
    default_shell: str = Field(
        default="/bin/bash",
        description="Login shell for accounts that declare none (env: ACCORD_DEFAULT_SHELL)",
    )

    default_group: str = Field(
        default="users",
        description="Primary group for accounts without a dedicated group and no gid (env: ACCORD_DEFAULT_GROUP)",
    )

    home_root: str = Field(
        default="/home",
        description="Parent directory of derived home directories (env: ACCORD_HOME_ROOT)",
    )

    default_home_perms: str = Field(
        default="750",
        description="Home directory mode when none is declared (env: ACCORD_DEFAULT_HOME_PERMS)",
    )

    # PyInfra Configuration
    output_dir: str = Field(
        default=".accord/pyinfra",
        description="Directory for generated pyinfra deploy files (env: ACCORD_OUTPUT_DIR)",
    )

    pyinfra_command: str = Field(
        default="pyinfra",
        description="pyinfra executable used to converge nodes (env: ACCORD_PYINFRA_COMMAND)",
    )

    inventory: str = Field(
        default="@local",
        description="pyinfra inventory target (env: ACCORD_INVENTORY)",
    )

    apply_timeout: int = Field(
        default=300,
        description="Seconds allowed for a single node to converge (env: ACCORD_APPLY_TIMEOUT)",
    )

    @field_validator("home_root")
    @classmethod
    def validate_home_root(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"home_root must be an absolute path, got {v!r}")
        return v


# Global settings instance
_settings: AccordSettings | None = None


def get_settings() -> AccordSettings:
    """
    Get the global settings instance.

    Creates the settings instance on first call, then returns cached instance.

    Returns:
        AccordSettings instance
    """
    global _settings
    if _settings is None:
        _settings = AccordSettings()
    return _settings


def reload_settings() -> AccordSettings:
    """
    Reload settings from environment/files.

    Useful for testing or when .env file changes.

    Returns:
        Fresh AccordSettings instance
    """
    global _settings
    _settings = AccordSettings()
    return _settings
