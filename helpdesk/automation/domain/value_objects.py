"""
Automation Value Objects
========================

Closed vocabulary for conditions and actions.

Each action type has exactly one payload shape, expressed as a Pydantic
model. The shapes are enforced when a rule is saved and again, as a no-op
path, when an action is executed.
"""

from typing import Dict, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator

from helpdesk.config import (
    ActionType, ConditionField,
    NUMERIC_FIELDS, STRING_FIELDS, NUMERIC_OPERATORS, STRING_OPERATORS,
)
from helpdesk.automation.domain.entities import Action, Condition


PriorityStr = Literal["URGENT", "HIGH", "NORMAL", "LOW"]
StatusStr = Literal["NEW", "OPEN", "WAITING_REQUESTER", "PENDING", "RESOLVED", "CLOSED", "REOPENED"]


class ActionParams(BaseModel):
    """Base for action payloads: camelCase on the wire, no extra keys."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class AssignDepartmentParams(ActionParams):
    department_id: int = Field(alias="departmentId", gt=0)


class AssignUserParams(ActionParams):
    user_id: int = Field(alias="userId", gt=0)


class SetPriorityParams(ActionParams):
    priority: PriorityStr


class SetStatusParams(ActionParams):
    status: StatusStr


class AddTagParams(ActionParams):
    tag: str = Field(min_length=1, max_length=64)

    @field_validator("tag")
    @classmethod
    def strip_tag(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("tag must not be blank")
        return v


class SendNotificationParams(ActionParams):
    """
    Notification payload.

    ``recipient`` is either ``requester``, ``assignee`` or a literal
    address understood by the ticket service.
    """
    template: str = Field(min_length=1, max_length=128)
    recipient: str = Field(min_length=1, max_length=255)


ACTION_PARAM_MODELS: Dict[str, Type[ActionParams]] = {
    ActionType.ASSIGN_DEPARTMENT: AssignDepartmentParams,
    ActionType.ASSIGN_USER: AssignUserParams,
    ActionType.SET_PRIORITY: SetPriorityParams,
    ActionType.SET_STATUS: SetStatusParams,
    ActionType.ADD_TAG: AddTagParams,
    ActionType.SEND_NOTIFICATION: SendNotificationParams,
}


def parse_action_params(action: Action) -> ActionParams:
    """
    Validate an action's payload against its type's shape.

    Raises:
        ValueError: unknown action type or malformed payload
            (pydantic.ValidationError is a ValueError)
    """
    model = ACTION_PARAM_MODELS.get(action.type)
    if model is None:
        raise ValueError(f"unknown action type '{action.type}'")
    return model.model_validate(action.params)


def condition_problem(condition: Condition) -> Optional[str]:
    """
    Describe why a condition can never be evaluated, or None if it is valid.
    """
    if condition.field in STRING_FIELDS:
        if condition.operator not in STRING_OPERATORS:
            return f"operator '{condition.operator}' is not supported on field '{condition.field}'"
        return None

    if condition.field in NUMERIC_FIELDS:
        if condition.operator not in NUMERIC_OPERATORS:
            return f"operator '{condition.operator}' is not supported on field '{condition.field}'"
        if parse_number(condition.value, integer=condition.field == ConditionField.DEPARTMENT_ID) is None:
            return f"value '{condition.value}' is not numeric"
        return None

    return f"unknown field '{condition.field}'"


def parse_number(raw: str, integer: bool = False) -> Optional[float]:
    """Parse a condition value as a number, None if it is not one."""
    text = (raw or "").strip()
    if not text:
        return None
    try:
        return int(text) if integer else float(text)
    except ValueError:
        return None
