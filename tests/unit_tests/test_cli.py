from unittest import mock

from click.testing import CliRunner

from vm_config_tagger.cli import cli
from vm_config_tagger.schemas import FunctionResponse, Outcome
from tests.consts import TEST_VCCONFIG
from tests.fixtures.events import make_event


def test_next_tier_cpu():
    result = CliRunner().invoke(cli, ["next-tier", "--resource", "cpu", "2"])

    assert result.exit_code == 0
    assert result.output.strip() == "config.hardware.numCPU: 3"


def test_next_tier_memory():
    result = CliRunner().invoke(cli, ["next-tier", "--resource", "memory", "4096"])

    assert result.exit_code == 0
    assert result.output.strip() == "config.hardware.memoryMB: 8192"


def test_next_tier_rejects_zero_memory():
    result = CliRunner().invoke(cli, ["next-tier", "--resource", "memory", "0"])

    assert result.exit_code != 0
    assert "memory size must be positive" in result.output


def test_show_config(monkeypatch, tmp_path):
    secret = tmp_path / "vcconfig"
    secret.write_text(TEST_VCCONFIG)
    monkeypatch.setenv("VCCONFIG_PATH", str(secret))

    result = CliRunner().invoke(cli, ["show-config"])

    assert result.exit_code == 0
    assert "vCenter Server: vcenter.example.com" in result.output
    assert "VMware1!" not in result.output


def test_show_config_missing_secret(monkeypatch, tmp_path):
    monkeypatch.setenv("VCCONFIG_PATH", str(tmp_path / "missing"))

    result = CliRunner().invoke(cli, ["show-config"])

    assert result.exit_code == 0
    assert "vCenter: unavailable" in result.output


def test_invoke_runs_handler_and_shuts_down(tmp_path):
    payload = tmp_path / "event.json"
    payload.write_bytes(make_event("VM CPU Usage", "green"))

    handler = mock.Mock()
    handler.handle.return_value = FunctionResponse(
        message="Alert not for CPU/Memory in red, nothing to do.", outcome=Outcome.NOT_ACTIONABLE
    )
    manager = mock.Mock()

    with mock.patch("vm_config_tagger.handler.get_handler", return_value=handler), \
            mock.patch("vm_config_tagger.vsphere.connection.get_connection_manager", return_value=manager), \
            mock.patch("vm_config_tagger.logging_config.configure_logging"):
        result = CliRunner().invoke(cli, ["invoke", str(payload)])

    assert result.exit_code == 0
    assert "nothing to do" in result.output
    handler.handle.assert_called_once_with(payload.read_bytes())
    manager.shutdown.assert_called_once_with()


def test_invoke_error_exit_code(tmp_path):
    payload = tmp_path / "event.json"
    payload.write_bytes(b"garbage")

    handler = mock.Mock()
    handler.handle.return_value = FunctionResponse(
        message="parsing cloud event data: unmarshalling json", status_code=500, outcome=Outcome.FAILED
    )

    with mock.patch("vm_config_tagger.handler.get_handler", return_value=handler), \
            mock.patch("vm_config_tagger.vsphere.connection.get_connection_manager"), \
            mock.patch("vm_config_tagger.logging_config.configure_logging"):
        result = CliRunner().invoke(cli, ["invoke", str(payload)])

    assert result.exit_code == 1
    assert "parsing cloud event data" in result.output
