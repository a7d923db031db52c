"""
Automation Application DTOs
===========================

Data Transfer Objects for the automation admin API.

Conditions and actions are validated here, at rule-save time, against the
same vocabulary the engine uses at evaluation time.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from helpdesk.automation.domain import (
    Action, AutomationRule, Condition, MatchedRule,
    condition_problem, parse_action_params,
)
from helpdesk.shared.dto import TicketSnapshotDTO


# ========== Type Aliases for Literals ==========
TriggerStr = Literal["TICKET_CREATED", "TICKET_UPDATED", "HOURLY_CHECK"]
ConditionFieldStr = Literal[
    "subject", "priority", "departmentId", "status", "requesterEmail", "hoursSinceUpdate"
]
ConditionOperatorStr = Literal[
    "contains", "equals", "not_equals", "starts_with", "ends_with", "greater_than", "less_than"
]
ActionTypeStr = Literal[
    "assign_department", "assign_user", "set_priority", "set_status", "add_tag", "send_notification"
]


# ========== Building Blocks ==========

class ConditionDTO(BaseModel):
    """One condition; the field/operator/value combination must be evaluable."""
    field: ConditionFieldStr
    operator: ConditionOperatorStr
    value: str = Field(..., max_length=255)

    @model_validator(mode="after")
    def check_combination(self) -> "ConditionDTO":
        problem = condition_problem(self.to_domain())
        if problem:
            raise ValueError(problem)
        return self

    def to_domain(self) -> Condition:
        return Condition(field=self.field, operator=self.operator, value=self.value)

    @classmethod
    def from_domain(cls, condition: Condition) -> "ConditionDTO":
        # Stored conditions are echoed back as-is, even if no longer valid
        return cls.model_construct(
            field=condition.field, operator=condition.operator, value=condition.value
        )


class ActionDTO(BaseModel):
    """One action; ``params`` must match the shape of ``type``."""
    type: ActionTypeStr
    params: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_params(self) -> "ActionDTO":
        try:
            parsed = parse_action_params(self.to_domain())
        except ValueError as e:
            raise ValueError(f"invalid params for action '{self.type}': {e}")
        # Normalize to the canonical camelCase payload
        self.params = parsed.model_dump(by_alias=True)
        return self

    def to_domain(self) -> Action:
        return Action(type=self.type, params=dict(self.params))

    @classmethod
    def from_domain(cls, action: Action) -> "ActionDTO":
        return cls.model_construct(type=action.type, params=dict(action.params))


# ========== Request DTOs ==========

class RuleCreateDTO(BaseModel):
    """Request model for creating a rule."""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    trigger: TriggerStr
    conditions: List[ConditionDTO] = Field(default_factory=list)
    actions: List[ActionDTO] = Field(..., min_length=1)
    is_active: bool = True
    priority: int = Field(default=0, ge=0, description="Lower runs first")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    def to_domain(self) -> AutomationRule:
        return AutomationRule(
            id=0,
            name=self.name,
            description=self.description,
            trigger=self.trigger,
            conditions=[c.to_domain() for c in self.conditions],
            actions=[a.to_domain() for a in self.actions],
            is_active=self.is_active,
            priority=self.priority,
        )


class RuleUpdateDTO(BaseModel):
    """Request model for a partial rule update; omitted fields are unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    trigger: Optional[TriggerStr] = None
    conditions: Optional[List[ConditionDTO]] = None
    actions: Optional[List[ActionDTO]] = Field(None, min_length=1)
    is_active: Optional[bool] = None
    priority: Optional[int] = Field(None, ge=0)

    def to_changes(self) -> Dict[str, Any]:
        """Entity attributes to replace."""
        changes: Dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None and name != "description":
                continue
            if name == "conditions":
                value = [c.to_domain() for c in value]
            elif name == "actions":
                value = [a.to_domain() for a in value]
            elif name == "name":
                value = value.strip()
            changes[name] = value
        return changes


class RuleActiveDTO(BaseModel):
    """Request model for toggling a rule."""
    is_active: bool


class RulePreviewRequest(BaseModel):
    """Request model for a dry-run match."""
    trigger: TriggerStr
    ticket: TicketSnapshotDTO


# ========== Response DTOs ==========

class RuleResponse(BaseModel):
    """Response model for a rule."""
    id: int
    name: str
    description: Optional[str] = None
    trigger: str
    conditions: List[ConditionDTO]
    actions: List[ActionDTO]
    is_active: bool
    priority: int
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, rule: AutomationRule) -> "RuleResponse":
        return cls(
            id=rule.id,
            name=rule.name,
            description=rule.description,
            trigger=rule.trigger,
            conditions=[ConditionDTO.from_domain(c) for c in rule.conditions],
            actions=[ActionDTO.from_domain(a) for a in rule.actions],
            is_active=rule.is_active,
            priority=rule.priority,
            created_by=rule.created_by,
            created_at=rule.created_at,
            updated_at=rule.updated_at,
        )


class RuleListResponse(BaseModel):
    """Response model for rule listing."""
    rules: List[RuleResponse]
    total: int


class PreviewMatch(BaseModel):
    """One rule the preview would fire."""
    position: int
    rule_id: int
    name: str
    priority: int
    actions: List[ActionDTO]

    @classmethod
    def from_domain(cls, matched: MatchedRule) -> "PreviewMatch":
        return cls(
            position=matched.position,
            rule_id=matched.rule_id,
            name=matched.rule.name,
            priority=matched.rule.priority,
            actions=[ActionDTO.from_domain(a) for a in matched.actions],
        )


class RulePreviewResponse(BaseModel):
    """Response model for a dry-run match."""
    trigger: str
    ticket_id: int
    matched: List[PreviewMatch]
