# cli.py
import asyncio
import logging
import sys

import click
import uvicorn

from vm_config_tagger.errors import TaggerError
from vm_config_tagger.schemas import ResourceCategory
from vm_config_tagger.settings import get_settings
from vm_config_tagger.tiers import next_cpu_tier, next_memory_tier
from vm_config_tagger.vcconfig import load_vc_config

# Configure logging
logger = logging.getLogger(__name__)


@click.group()
def cli():
    """VM config tagger: CPU/memory tier tagging for vCenter alarms"""
    pass


@cli.command()
@click.option('--host', default='0.0.0.0', help='API host address')
@click.option('--port', default=8080, type=int, help='API port')
def serve(host: str, port: int):
    """Serve the function over HTTP (POST / with the alarm cloud event)"""
    from vm_config_tagger.main import create_app

    app = create_app()

    config = uvicorn.Config(app=app, host=host, port=port)
    server = uvicorn.Server(config)
    asyncio.run(server.serve())


@cli.command()
@click.argument('payload', type=click.File('rb'))
def invoke(payload):
    """Run one invocation with a cloud event read from PAYLOAD ('-' for stdin)"""
    from vm_config_tagger.handler import get_handler
    from vm_config_tagger.logging_config import configure_logging
    from vm_config_tagger.vsphere.connection import get_connection_manager

    configure_logging()
    try:
        result = get_handler().handle(payload.read())
    finally:
        get_connection_manager().shutdown()

    click.echo(result.message)
    if result.is_error:
        sys.exit(1)


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    print(f"  App Name: {settings.app_name}")
    print(f"  vcconfig Path: {settings.vcconfig_path}")
    print(f"  Debug: {settings.debug}")
    print(f"  Log Level: {settings.log_level}")
    print(f"  Request Timeout: {settings.request_timeout}s")

    try:
        cfg = load_vc_config(settings.vcconfig_path)
    except TaggerError as e:
        print(f"  vCenter: unavailable ({e})")
        return
    print(f"  vCenter Server: {cfg.vcenter.server}")
    print(f"  vCenter User: {cfg.vcenter.user}")
    print(f"  vCenter Insecure: {cfg.vcenter.insecure}")


@cli.command()
@click.option('--resource',
              type=click.Choice([ResourceCategory.CPU.value, ResourceCategory.MEMORY.value]),
              required=True,
              help='Resource the tier is computed for')
@click.argument('current', type=float)
def next_tier(resource: str, current: float):
    """Print the tier tag name the policy selects for CURRENT (vCPUs or MB)"""
    try:
        if resource == ResourceCategory.CPU.value:
            tier = next_cpu_tier(int(current))
        else:
            tier = next_memory_tier(current)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='CURRENT')

    category = ResourceCategory(resource).tag_category
    click.echo(f"{category}: {tier}")


if __name__ == "__main__":
    cli()
