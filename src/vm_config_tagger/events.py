"""Alarm notification parsing and classification."""
import json
import logging
from typing import Union

import pydantic

from vm_config_tagger.errors import IncompleteEventError, MalformedPayloadError
from vm_config_tagger.schemas import (
    ALARM_LEVEL_RED,
    CPU_ALARM_NAME,
    MEMORY_ALARM_NAME,
    AlarmNotification,
    AlarmStatusChangedEvent,
    CloudEvent,
    ResourceCategory,
)

logger = logging.getLogger(__name__)

ALARM_CATEGORIES = {
    CPU_ALARM_NAME: ResourceCategory.CPU,
    MEMORY_ALARM_NAME: ResourceCategory.MEMORY,
}


def parse_event(raw: Union[bytes, str]) -> AlarmNotification:
    """Parse and sanity-check an inbound alarm cloud event.

    Args:
        raw: Request body as received by the function

    Returns:
        The validated notification

    Raises:
        MalformedPayloadError: body is not JSON or does not have the event shape
        IncompleteEventError: VM reference, alarm name or new level is empty
    """
    try:
        document = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedPayloadError(f"unmarshalling json: {e}") from e

    if not isinstance(document, dict):
        raise MalformedPayloadError("unmarshalling json: payload is not an object")

    try:
        event = CloudEvent.model_validate(document)
    except pydantic.ValidationError as e:
        raise MalformedPayloadError(f"unmarshalling json: {e}") from e

    # null members read as empty
    data = event.data or AlarmStatusChangedEvent()
    if data.vm is None or data.vm.vm is None or not data.vm.vm.value:
        raise IncompleteEventError("empty VM managed object reference")

    alarm_name = data.alarm.name if data.alarm is not None else ""
    if not alarm_name or not data.to:
        raise IncompleteEventError("insufficient alarm information")

    return AlarmNotification(vm=data.vm.vm, alarm_name=alarm_name, to=data.to)


def classify(notification: AlarmNotification) -> ResourceCategory:
    """Map the alarm name to the resource it is about."""
    return ALARM_CATEGORIES.get(notification.alarm_name, ResourceCategory.UNCLASSIFIED)


def is_actionable(notification: AlarmNotification) -> bool:
    """True only for a CPU or memory usage alarm that just turned red."""
    return (
        notification.to == ALARM_LEVEL_RED
        and classify(notification) is not ResourceCategory.UNCLASSIFIED
    )
