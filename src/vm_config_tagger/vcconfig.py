"""
vCenter connection parameters.

The parameters are stored as a TOML secret mounted into the function
container, e.g.::

    [vcenter]
    server = "vcenter.example.com"
    user = "administrator@vsphere.local"
    password = "secret"
    insecure = true

The secret is loaded on every invocation so rotated credentials take effect
without a restart.
"""
import logging
import tomllib
from pathlib import Path
from typing import Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from vm_config_tagger.errors import ConfigLoadError, ConfigValidationError

logger = logging.getLogger(__name__)


class VCenterConfig(BaseModel):
    """The `[vcenter]` table of the secret."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    server: str = ""
    user: str = ""
    password: str = Field(default="", repr=False)
    insecure: bool = False


class VCConfig(BaseModel):
    """Parsed vcconfig secret."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    vcenter: VCenterConfig = Field(default_factory=VCenterConfig)


def load_vc_config(path: Union[str, Path]) -> VCConfig:
    """Load and validate the vcconfig secret.

    Raises:
        ConfigLoadError: file missing, unreadable or not valid TOML
        ConfigValidationError: server, user or password missing
    """
    try:
        with open(path, "rb") as f:
            document = tomllib.load(f)
    except OSError as e:
        raise ConfigLoadError(f"loading vcconfig.toml: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigLoadError(f"loading vcconfig.toml: {e}") from e

    # Table names are matched case-insensitively ([VCenter] and [vcenter] both work)
    normalized = {str(k).lower(): v for k, v in document.items()}
    section = normalized.get("vcenter")
    if isinstance(section, dict):
        normalized["vcenter"] = {str(k).lower(): v for k, v in section.items()}

    try:
        cfg = VCConfig.model_validate(normalized)
    except pydantic.ValidationError as e:
        raise ConfigLoadError(f"unmarshalling vcconfig.toml: {e}") from e

    validate_config(cfg)
    return cfg


def validate_config(cfg: VCConfig) -> None:
    """Ensure the bare minimum of information is in the config file."""
    required_fields = {
        "vcenter server": cfg.vcenter.server,
        "vcenter user": cfg.vcenter.user,
        "vcenter password": cfg.vcenter.password,
    }

    missing = [name for name, value in required_fields.items() if not value]
    if missing:
        raise ConfigValidationError(
            "required field(s) missing in config: " + ", ".join(missing)
        )
