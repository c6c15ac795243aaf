"""
Alarm tagging pipeline.

An invocation walks a fixed list of steps over a shared `InvocationContext`:

    parse event -> actionability -> load vcconfig -> ensure session
    -> fetch hardware -> compute tier -> resolve tag -> apply tag

Each step either fills in the context and returns None (continue), returns a
terminal `FunctionResponse` (stop with a 200 outcome), or raises a
`TaggerError`, which is rendered as a 500 prefixed with the step's stage
description. The reachable outcomes are the members of `Outcome`.
"""
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, List, Optional, Union

from vm_config_tagger.errors import TaggerError, TierPolicyError
from vm_config_tagger.events import classify, is_actionable, parse_event
from vm_config_tagger.schemas import (
    AlarmNotification,
    FunctionResponse,
    Outcome,
    ResourceCategory,
    TagSelection,
    VMHardwareSnapshot,
)
from vm_config_tagger.settings import debug, get_settings
from vm_config_tagger.tiers import next_tier
from vm_config_tagger.vcconfig import VCConfig, load_vc_config
from vm_config_tagger.vsphere.client import VSphereClient
from vm_config_tagger.vsphere.connection import ConnectionManager, get_connection_manager
from vm_config_tagger.vsphere.tags import apply_tag, is_attached, resolve_tag

logger = logging.getLogger(__name__)

NOT_ACTIONABLE_MESSAGE = "Alert not for CPU/Memory in red, nothing to do."

ConfigLoader = Callable[[], VCConfig]


@dataclass
class InvocationContext:
    """State accumulated by the steps of one invocation."""
    body: Union[bytes, str]
    notification: Optional[AlarmNotification] = None
    category: ResourceCategory = ResourceCategory.UNCLASSIFIED
    vc_config: Optional[VCConfig] = None
    client: Optional[VSphereClient] = None
    snapshot: Optional[VMHardwareSnapshot] = None
    tier_name: Optional[str] = None
    selection: Optional[TagSelection] = None


StepResult = Optional[FunctionResponse]


@dataclass(frozen=True)
class Step:
    name: str
    stage: str
    run: Callable[[InvocationContext], StepResult]


def default_config_loader() -> VCConfig:
    """Load the vcconfig secret from the configured path."""
    return load_vc_config(get_settings().vcconfig_path)


class AlarmTagHandler:
    """Tags the VM of a red CPU/memory alarm with its next tier."""

    def __init__(self, connection_manager: Optional[ConnectionManager] = None,
                 config_loader: Optional[ConfigLoader] = None):
        self.connection_manager = connection_manager or get_connection_manager()
        self.config_loader = config_loader or default_config_loader
        self.steps: List[Step] = [
            Step("parse_event", "parsing cloud event data", self._parse_event),
            Step("check_actionable", "classifying alarm", self._check_actionable),
            Step("load_config", "loading of vcconfig", self._load_config),
            Step("connect", "connecting to vSphere", self._connect),
            Step("fetch_hardware", "retrieving VM configuration", self._fetch_hardware),
            Step("compute_tier", "computing tier", self._compute_tier),
            Step("resolve_tag", "resolving tag", self._resolve_tag),
            Step("apply_tag", "tagging managed reference object", self._apply_tag),
        ]

    def handle(self, body: Union[bytes, str]) -> FunctionResponse:
        """Handle a function invocation."""
        ctx = InvocationContext(body=body)
        for step in self.steps:
            try:
                result = step.run(ctx)
            except TaggerError as e:
                return self._error_response(step.stage, e)
            if result is not None:
                return result

        raise RuntimeError("tagging pipeline finished without an outcome")

    # --- steps ---

    def _parse_event(self, ctx: InvocationContext) -> StepResult:
        ctx.notification = parse_event(ctx.body)
        ctx.category = classify(ctx.notification)
        return None

    def _check_actionable(self, ctx: InvocationContext) -> StepResult:
        if is_actionable(ctx.notification):
            return None
        logger.info(NOT_ACTIONABLE_MESSAGE)
        return self._ok(NOT_ACTIONABLE_MESSAGE, Outcome.NOT_ACTIONABLE)

    def _load_config(self, ctx: InvocationContext) -> StepResult:
        # Loaded every time so the most recent secret is used
        ctx.vc_config = self.config_loader()
        return None

    def _connect(self, ctx: InvocationContext) -> StepResult:
        ctx.client = self.connection_manager.ensure_session(ctx.vc_config.vcenter)
        return None

    def _fetch_hardware(self, ctx: InvocationContext) -> StepResult:
        vm = ctx.notification.vm
        logger.debug(f"vm moRef is {vm}")
        ctx.snapshot = ctx.client.fetch_hardware(vm)
        logger.debug(f"{vm.value} hardware: {ctx.snapshot}")
        return None

    def _compute_tier(self, ctx: InvocationContext) -> StepResult:
        try:
            ctx.tier_name = next_tier(ctx.category, ctx.snapshot)
        except ValueError as e:
            raise TierPolicyError(str(e)) from e
        return None

    def _resolve_tag(self, ctx: InvocationContext) -> StepResult:
        ctx.selection = resolve_tag(ctx.client, ctx.category, ctx.tier_name)
        if ctx.selection is not None:
            return None

        message = (
            f"No tag named {ctx.tier_name} in category {ctx.category.tag_category}, "
            f"{ctx.notification.vm.value} was not tagged."
        )
        logger.warning(message)
        return self._ok(message, Outcome.NO_MATCHING_TAG)

    def _apply_tag(self, ctx: InvocationContext) -> StepResult:
        vm = ctx.notification.vm
        selection = ctx.selection

        # Tags of the same category attached earlier are left in place.
        if is_attached(ctx.client, vm, selection.tag_id):
            message = f"{vm.value} is already tagged with {selection.tag_id}, {selection.category_id}"
            logger.info(message)
            return self._ok(message, Outcome.ALREADY_TAGGED)

        apply_tag(ctx.client, vm, selection)
        message = f"{vm.value} was tagged with {selection.tag_id}, {selection.category_id}"
        logger.info(message)
        return self._ok(message, Outcome.TAGGED)

    # --- responses ---

    @staticmethod
    def _ok(message: str, outcome: Outcome) -> FunctionResponse:
        return FunctionResponse(message=message, status_code=200, outcome=outcome)

    @staticmethod
    def _error_response(stage: str, error: TaggerError) -> FunctionResponse:
        message = f"{stage}: {error}"
        if debug():
            logger.error(message)
        return FunctionResponse(message=message, status_code=500, outcome=Outcome.FAILED)


@lru_cache()
def get_handler() -> AlarmTagHandler:
    """Get the process-wide handler bound to the shared connection manager."""
    return AlarmTagHandler()


def handle(body: Union[bytes, str]) -> FunctionResponse:
    """Handle a function invocation with the default handler."""
    return get_handler().handle(body)
