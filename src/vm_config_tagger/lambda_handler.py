"""
AWS Lambda entry point.

API Gateway proxy events are translated by Mangum into ASGI requests for the
same FastAPI app `serve` runs, so `POST {base path}/` with the alarm cloud
event body reaches the tagging handler.
"""
import logging
from functools import lru_cache
from typing import Optional

from fastapi import FastAPI
from mangum import Mangum

from vm_config_tagger.main import create_app
from vm_config_tagger.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_handler(settings: Optional[Settings] = None, app: Optional[FastAPI] = None) -> Mangum:
    """Wrap the tagger app for Lambda.

    Lifespan is off: a Lambda sandbox is frozen rather than shut down, the
    vSphere session is logged out by the SIGTERM handler instead.
    """
    settings = settings or get_settings()
    app = app or create_app(settings)
    logger.debug(f"Lambda handler with API Gateway base path {settings.api_gateway_base_path}")
    return Mangum(app, lifespan="off", api_gateway_base_path=settings.api_gateway_base_path)


@lru_cache()
def get_lambda_handler() -> Mangum:
    """Build the handler once per sandbox, on the first event."""
    return create_handler()


def lambda_handler(event, context):
    return get_lambda_handler()(event, context)
