"""Logging setup shared by the HTTP app, the Lambda entry point and the CLI."""
import logging
from typing import Optional

from vm_config_tagger.settings import Settings, get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging; write_debug=true forces DEBUG."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level)

    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)

    # urllib3 and mangum are chatty at DEBUG
    if not settings.debug:
        for name in ("urllib3", "mangum"):
            logging.getLogger(name).setLevel(logging.WARNING)
