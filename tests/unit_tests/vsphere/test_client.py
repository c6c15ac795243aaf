from types import SimpleNamespace
from unittest import mock

import pytest
from pyVmomi import vim, vmodl

from vm_config_tagger.errors import (
    ConfigUnavailableError,
    HardwareFetchError,
    TaggingAPIError,
    VCenterConnectionError,
    VCenterLogoutError,
)
from vm_config_tagger.schemas import ObjectReference, VMHardwareSnapshot
from vm_config_tagger.vsphere.client import HARDWARE_PROPERTIES, VSphereClient

VM = ObjectReference(type="VirtualMachine", value="vm-42")


def object_content(**properties):
    return SimpleNamespace(
        propSet=[SimpleNamespace(name=name, val=val) for name, val in properties.items()]
    )


@pytest.fixture
def service_instance():
    return mock.MagicMock(name="ServiceInstance")


@pytest.fixture
def tagging():
    return mock.MagicMock(name="TaggingClient")


@pytest.fixture
def client(service_instance, tagging):
    return VSphereClient(service_instance, tagging)


class TestConnect:

    @mock.patch("vm_config_tagger.vsphere.client.TaggingClient")
    @mock.patch("vm_config_tagger.vsphere.client.SmartConnect")
    def test_logs_in_to_soap_then_rest(self, smart_connect, tagging_cls, vc_config):
        client = VSphereClient.connect(vc_config.vcenter, timeout=12.0)

        smart_connect.assert_called_once_with(
            host="vcenter.example.com",
            user="administrator@vsphere.local",
            pwd="VMware1!",
            disableSslCertValidation=True,
        )
        tagging_cls.assert_called_once_with("vcenter.example.com", verify=False, timeout=12.0)
        tagging_cls.return_value.login.assert_called_once_with("administrator@vsphere.local", "VMware1!")
        assert client.service_instance is smart_connect.return_value
        assert client.tagging is tagging_cls.return_value

    @mock.patch("vm_config_tagger.vsphere.client.TaggingClient")
    @mock.patch("vm_config_tagger.vsphere.client.SmartConnect")
    def test_soap_login_failure(self, smart_connect, tagging_cls, vc_config):
        smart_connect.side_effect = vim.fault.InvalidLogin()

        with pytest.raises(VCenterConnectionError, match="govmomi"):
            VSphereClient.connect(vc_config.vcenter)

        tagging_cls.assert_not_called()

    @mock.patch("vm_config_tagger.vsphere.client.SmartConnect")
    def test_unreachable_server(self, smart_connect, vc_config):
        smart_connect.side_effect = ConnectionRefusedError("connection refused")

        with pytest.raises(VCenterConnectionError, match="connection refused"):
            VSphereClient.connect(vc_config.vcenter)

    @mock.patch("vm_config_tagger.vsphere.client.Disconnect")
    @mock.patch("vm_config_tagger.vsphere.client.TaggingClient")
    @mock.patch("vm_config_tagger.vsphere.client.SmartConnect")
    def test_rest_login_failure_disconnects_soap(self, smart_connect, tagging_cls, disconnect, vc_config):
        tagging_cls.return_value.login.side_effect = TaggingAPIError("POST /session failed: 401", 401)

        with pytest.raises(VCenterConnectionError, match="rest api"):
            VSphereClient.connect(vc_config.vcenter)

        disconnect.assert_called_once_with(smart_connect.return_value)


class TestFetchHardware:

    def test_returns_snapshot(self, client, service_instance):
        collector = service_instance.content.propertyCollector
        collector.RetrieveContents.return_value = [object_content(**{
            "config.hardware.numCPU": 2,
            "config.hardware.memoryMB": 4096,
        })]

        snapshot = client.fetch_hardware(VM)

        assert snapshot == VMHardwareSnapshot(num_cpu=2, memory_mb=4096)
        (filter_specs,), _ = collector.RetrieveContents.call_args
        assert len(filter_specs) == 1
        assert len(filter_specs[0].objectSet) == 1
        assert filter_specs[0].objectSet[0].obj._moId == "vm-42"
        assert list(filter_specs[0].propSet[0].pathSet) == HARDWARE_PROPERTIES

    def test_no_config_properties(self, client, service_instance):
        service_instance.content.propertyCollector.RetrieveContents.return_value = [object_content()]

        with pytest.raises(ConfigUnavailableError, match="no config info in vm vm-42"):
            client.fetch_hardware(VM)

    def test_no_object_content(self, client, service_instance):
        service_instance.content.propertyCollector.RetrieveContents.return_value = []

        with pytest.raises(ConfigUnavailableError):
            client.fetch_hardware(VM)

    def test_zero_memory_is_unavailable(self, client, service_instance):
        service_instance.content.propertyCollector.RetrieveContents.return_value = [object_content(**{
            "config.hardware.numCPU": 1,
            "config.hardware.memoryMB": 0,
        })]

        with pytest.raises(ConfigUnavailableError):
            client.fetch_hardware(VM)

    def test_deleted_vm(self, client, service_instance):
        service_instance.content.propertyCollector.RetrieveContents.side_effect = (
            vmodl.fault.ManagedObjectNotFound()
        )

        with pytest.raises(ConfigUnavailableError, match="object not found"):
            client.fetch_hardware(VM)

    def test_other_fault(self, client, service_instance):
        service_instance.content.propertyCollector.RetrieveContents.side_effect = (
            vim.fault.NoPermission()
        )

        with pytest.raises(HardwareFetchError) as exc_info:
            client.fetch_hardware(VM)

        assert not isinstance(exc_info.value, ConfigUnavailableError)


class TestLogout:

    @mock.patch("vm_config_tagger.vsphere.client.Disconnect")
    def test_logs_out_of_both(self, disconnect, client, service_instance, tagging):
        client.logout()

        disconnect.assert_called_once_with(service_instance)
        tagging.logout.assert_called_once_with()

    @mock.patch("vm_config_tagger.vsphere.client.Disconnect")
    def test_rest_logout_attempted_after_soap_failure(self, disconnect, client, tagging):
        disconnect.side_effect = OSError("connection reset")
        tagging.logout.side_effect = TaggingAPIError("DELETE /session failed: 401", 401)

        with pytest.raises(VCenterLogoutError) as exc_info:
            client.logout()

        tagging.logout.assert_called_once_with()
        assert "govmomi api logout failed" in str(exc_info.value)
        assert "rest api logout failed" in str(exc_info.value)
