###########################################
# --- Event, inventory and tag schemas --- #
###########################################

from enum import Enum
from typing import Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
)

CPU_ALARM_NAME = "VM CPU Usage"
MEMORY_ALARM_NAME = "VM Memory Usage"
ALARM_LEVEL_RED = "red"

CPU_TAG_CATEGORY = "config.hardware.numCPU"
MEMORY_TAG_CATEGORY = "config.hardware.memoryMB"


class ResourceCategory(str, Enum):
    """Resource an alarm refers to"""
    CPU = "cpu"
    MEMORY = "memory"
    UNCLASSIFIED = "unclassified"

    @property
    def tag_category(self) -> Optional[str]:
        """Name of the vSphere tag category holding the tiers for this resource."""
        return {
            ResourceCategory.CPU: CPU_TAG_CATEGORY,
            ResourceCategory.MEMORY: MEMORY_TAG_CATEGORY,
        }.get(self)


class Outcome(str, Enum):
    """Terminal states of a single invocation"""
    NOT_ACTIONABLE = "not_actionable"
    NO_MATCHING_TAG = "no_matching_tag"
    ALREADY_TAGGED = "already_tagged"
    TAGGED = "tagged"
    FAILED = "failed"


class ObjectReference(BaseModel):
    """vSphere managed object reference, e.g. VirtualMachine:vm-42."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = Field(
        default="",
        validation_alias=AliasChoices("Type", "type"),
        json_schema_extra={"example": "VirtualMachine"},
    )
    value: str = Field(
        default="",
        validation_alias=AliasChoices("Value", "value"),
        json_schema_extra={"example": "vm-42"},
    )

    def __str__(self) -> str:
        return f"{self.type}:{self.value}"


# Wire shape of the vCenter AlarmStatusChangedEvent carried in the cloud event.
# Unknown fields (Key, CreatedTime, From, ...) are ignored.

class VmEventArgument(BaseModel):
    vm: Optional[ObjectReference] = Field(
        default=None, validation_alias=AliasChoices("Vm", "vm")
    )
    name: str = Field(default="", validation_alias=AliasChoices("Name", "name"))


class AlarmEventArgument(BaseModel):
    name: str = Field(default="", validation_alias=AliasChoices("Name", "name"))


class AlarmStatusChangedEvent(BaseModel):
    vm: Optional[VmEventArgument] = Field(
        default=None, validation_alias=AliasChoices("Vm", "vm")
    )
    alarm: Optional[AlarmEventArgument] = Field(
        default=None,
        validation_alias=AliasChoices("Alarm", "alarm"),
    )
    to: str = Field(default="", validation_alias=AliasChoices("To", "to"))


class CloudEvent(BaseModel):
    """Inbound function payload: `{"Data": AlarmStatusChangedEvent}`."""
    data: Optional[AlarmStatusChangedEvent] = Field(
        default=None,
        validation_alias=AliasChoices("Data", "data"),
    )


class AlarmNotification(BaseModel):
    """Validated alarm notification for a single VM."""
    model_config = ConfigDict(frozen=True)

    vm: ObjectReference
    alarm_name: str = Field(min_length=1)
    to: str = Field(min_length=1, description="New alarm level, e.g. red or green")


class VMHardwareSnapshot(BaseModel):
    """Current hardware configuration of a VM relevant to tiering."""
    model_config = ConfigDict(frozen=True)

    num_cpu: int = Field(ge=0)
    memory_mb: int = Field(gt=0)


class Tag(BaseModel):
    """A tag as returned by the vSphere tagging API."""
    id: str
    name: str
    category_id: str
    description: str = ""


class TagSelection(BaseModel):
    """The tag picked for a VM and the category it belongs to."""
    model_config = ConfigDict(frozen=True)

    category_id: str
    tag_id: str
    tag_name: str


class FunctionResponse(BaseModel):
    """Result of one function invocation."""
    message: str
    status_code: int = 200
    outcome: Outcome

    @property
    def body(self) -> bytes:
        return self.message.encode("utf-8")

    @property
    def is_error(self) -> bool:
        return self.status_code >= 500
