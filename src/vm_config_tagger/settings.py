# src/vm_config_tagger/settings.py
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_VCCONFIG_PATH = "/var/openfaas/secrets/vcconfig"


class Settings(BaseSettings):
    """
    Process-level settings for the tagging function.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    vCenter credentials are NOT settings: they live in the vcconfig secret
    and are re-read on every invocation (see vm_config_tagger.vcconfig).

    Usage:
        from vm_config_tagger.settings import get_settings
        settings = get_settings()
        path = settings.vcconfig_path
    """

    # Application Settings
    app_name: str = Field(
        default="vm-config-tagger",
        description="Application name"
    )

    # vcconfig secret location
    vcconfig_path: str = Field(
        default=DEFAULT_VCCONFIG_PATH,
        alias="VCCONFIG_PATH",
        description="Path of the TOML secret holding vCenter connection parameters"
    )

    # Verbose diagnostics toggle, only the literal "true" enables it
    write_debug: str = Field(
        default="false",
        alias="write_debug",
        description="Set to 'true' to log diagnostic detail"
    )

    # vSphere REST calls
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        alias="REQUEST_TIMEOUT",
        description="Timeout in seconds for vSphere REST requests"
    )

    # Lambda behind API Gateway
    api_gateway_base_path: str = Field(
        default="/",
        alias="API_GATEWAY_BASE_PATH",
        description="Path prefix API Gateway puts in front of the function routes"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level"
    )

    @property
    def debug(self) -> bool:
        """True when verbose diagnostic logging is enabled."""
        return self.write_debug == "true"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is a standard logging level name."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        level = v.upper()
        if level not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return level

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()


def debug() -> bool:
    """Determines verbose logging."""
    return get_settings().debug
