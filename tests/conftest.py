import pytest

from vm_config_tagger.settings import get_settings
from tests.fixtures.vsphere_fixtures import (  # noqa: F401
    client_factory,
    connection_manager,
    fake_client,
    vc_config,
)


@pytest.fixture(autouse=True)
def quiet_settings(monkeypatch):
    """Start every test in quiet mode with a fresh settings cache."""
    monkeypatch.delenv("write_debug", raising=False)
    monkeypatch.delenv("WRITE_DEBUG", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
