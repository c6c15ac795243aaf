"""vSphere client: one SOAP session (pyvmomi) plus one REST tagging session."""
import logging
from typing import Any

from pyVim.connect import Disconnect, SmartConnect
from pyVmomi import vim, vmodl

from vm_config_tagger.errors import (
    ConfigUnavailableError,
    HardwareFetchError,
    TaggingAPIError,
    VCenterConnectionError,
    VCenterLogoutError,
)
from vm_config_tagger.schemas import ObjectReference, VMHardwareSnapshot
from vm_config_tagger.vcconfig import VCenterConfig
from vm_config_tagger.vsphere.tagging import TaggingClient

logger = logging.getLogger(__name__)

HARDWARE_PROPERTIES = ["config.hardware.numCPU", "config.hardware.memoryMB"]


class VSphereClient:
    """Authenticated connection to vCenter.

    `service_instance` is used for inventory reads (property collector) and
    `tagging` for tag operations through the REST API.
    """

    def __init__(self, service_instance: Any, tagging: TaggingClient):
        self.service_instance = service_instance
        self.tagging = tagging

    @classmethod
    def connect(cls, cfg: VCenterConfig, timeout: float = 30.0) -> "VSphereClient":
        """Log in to the SOAP API, then to the REST API.

        Either both logins succeed or nothing stays logged in.

        Raises:
            VCenterConnectionError: either login failed
        """
        try:
            service_instance = SmartConnect(
                host=cfg.server,
                user=cfg.user,
                pwd=cfg.password,
                disableSslCertValidation=cfg.insecure,
            )
        except (vmodl.MethodFault, OSError) as e:
            raise VCenterConnectionError(f"connecting to govmomi api failed: {e}") from e

        tagging = TaggingClient(cfg.server, verify=not cfg.insecure, timeout=timeout)
        try:
            tagging.login(cfg.user, cfg.password)
        except TaggingAPIError as e:
            try:
                Disconnect(service_instance)
            except (vmodl.MethodFault, OSError) as logout_err:
                logger.warning(f"Could not log out of SOAP session after REST login failure: {logout_err}")
            raise VCenterConnectionError(f"log in to rest api failed: {e}") from e

        logger.info(f"Connected to vSphere at {cfg.server}")
        return cls(service_instance, tagging)

    def fetch_hardware(self, obj_ref: ObjectReference) -> VMHardwareSnapshot:
        """Retrieve the current CPU count and memory size of a VM.

        Raises:
            ConfigUnavailableError: the VM is gone or carries no config
            HardwareFetchError: the property retrieval itself failed
        """
        properties = self._retrieve_properties(obj_ref, HARDWARE_PROPERTIES)
        logger.debug(f"Properties of {obj_ref}: {properties}")

        num_cpu = properties.get("config.hardware.numCPU")
        memory_mb = properties.get("config.hardware.memoryMB")
        if num_cpu is None or memory_mb is None or memory_mb <= 0:
            raise ConfigUnavailableError(f"no config info in vm {obj_ref.value}")

        return VMHardwareSnapshot(num_cpu=int(num_cpu), memory_mb=int(memory_mb))

    def _retrieve_properties(self, obj_ref: ObjectReference, path_set: list) -> dict:
        """Collect `path_set` for exactly one managed object."""
        managed_object = vim.VirtualMachine(obj_ref.value, self.service_instance._stub)

        obj_spec = vmodl.query.PropertyCollector.ObjectSpec(obj=managed_object, skip=False)
        prop_spec = vmodl.query.PropertyCollector.PropertySpec(
            type=vim.VirtualMachine, pathSet=path_set, all=False
        )
        filter_spec = vmodl.query.PropertyCollector.FilterSpec(
            objectSet=[obj_spec], propSet=[prop_spec]
        )

        collector = self.service_instance.content.propertyCollector
        try:
            contents = collector.RetrieveContents([filter_spec])
        except vmodl.fault.ManagedObjectNotFound as e:
            raise ConfigUnavailableError(f"no config info in vm {obj_ref.value}: object not found") from e
        except (vmodl.MethodFault, OSError) as e:
            raise HardwareFetchError(f"retrieving properties of {obj_ref}: {e}") from e

        properties = {}
        for content in contents or []:
            for prop in content.propSet or []:
                properties[prop.name] = prop.val
        return properties

    def logout(self) -> None:
        """Log out of the SOAP and the REST session.

        Both logouts are attempted even if the first one fails.

        Raises:
            VCenterLogoutError: one or both logouts failed
        """
        errors = []
        try:
            Disconnect(self.service_instance)
        except (vmodl.MethodFault, OSError) as e:
            errors.append(f"govmomi api logout failed: {e}")

        try:
            self.tagging.logout()
        except TaggingAPIError as e:
            errors.append(f"rest api logout failed: {e}")

        if errors:
            raise VCenterLogoutError("; ".join(errors))

