"""Reason-gated confirmation for adverse actions (reject, block, ...)."""

import enum
import logging
from typing import Any, Dict, Optional

from venue_admin.list_controller import ListController
from venue_admin.models import ActionRequest, ActionType, ApiResponse, ErrorKind
from venue_admin.resources import validate_action

logger = logging.getLogger(__name__)


class FlowState(str, enum.Enum):
    IDLE = "idle"
    PROMPT_OPEN = "prompt_open"
    SUBMITTING = "submitting"


class ConfirmationFlow:
    """
    idle -> prompt_open -> submitting -> idle (success)
                                      -> prompt_open with error (failure)

    The modal that presents the prompt reads `confirm_enabled` and `error`
    and never talks to the controller itself.
    """

    def __init__(self):
        self.state = FlowState.IDLE
        self.entity_id: Any = None
        self.action_type: Optional[ActionType] = None
        self.reason = ""
        self.extra: Dict[str, Any] = {}
        self.error: Optional[str] = None

    @property
    def confirm_enabled(self) -> bool:
        return self.state == FlowState.PROMPT_OPEN

    def open(self, entity_id: Any, action_type: ActionType, extra: Optional[Dict[str, Any]] = None) -> None:
        if self.state == FlowState.SUBMITTING:
            raise RuntimeError("Cannot open a new prompt while one is submitting")
        self.state = FlowState.PROMPT_OPEN
        self.entity_id = entity_id
        self.action_type = action_type
        self.reason = ""
        self.extra = dict(extra or {})
        self.error = None

    def set_reason(self, reason: str) -> None:
        self.reason = reason or ""

    def cancel(self) -> None:
        if self.state == FlowState.SUBMITTING:
            return
        self._reset()

    def _reset(self) -> None:
        self.state = FlowState.IDLE
        self.entity_id = None
        self.action_type = None
        self.reason = ""
        self.extra = {}
        self.error = None

    async def submit(self, controller: ListController) -> ApiResponse:
        if self.state != FlowState.PROMPT_OPEN:
            return ApiResponse.fail("No action is awaiting confirmation", ErrorKind.VALIDATION)

        request = ActionRequest(
            self.entity_id,
            self.action_type,
            reason=self.reason.strip() or None,
            extra=self.extra,
        )
        problem = validate_action(request)
        if problem:
            self.error = problem
            return ApiResponse.fail(problem, ErrorKind.VALIDATION)

        self.state = FlowState.SUBMITTING
        self.error = None
        try:
            response = await controller.mutate(request)
        except Exception as e:
            logger.error(f"Unexpected error submitting {request.action_type.value}: {e}", exc_info=True)
            response = ApiResponse.fail(str(e) or "Unexpected error", ErrorKind.API)

        if response.success:
            logger.info(f"{request.action_type.value} confirmed for #{request.entity_id}")
            self._reset()
        else:
            self.state = FlowState.PROMPT_OPEN
            self.error = response.error
        return response
