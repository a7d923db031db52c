"""
Automation Domain Entities
==========================

Pure Python domain entities for the automation rule engine.

Rules are owned and edited by administrators; the engine only reads them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Condition:
    """A single predicate over a ticket field."""
    field: str
    operator: str
    value: str

    def to_dict(self) -> dict:
        return {"field": self.field, "operator": self.operator, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> "Condition":
        return cls(
            field=str(data.get("field", "")),
            operator=str(data.get("operator", "")),
            value="" if data.get("value") is None else str(data["value"]),
        )


@dataclass(frozen=True)
class Action:
    """A side effect applied when a rule matches."""
    type: str
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"type": self.type, "params": dict(self.params)}

    @classmethod
    def from_dict(cls, data: dict) -> "Action":
        params = data.get("params")
        return cls(
            type=str(data.get("type", "")),
            params=dict(params) if isinstance(params, dict) else {},
        )


@dataclass
class AutomationRule:
    """
    Automation rule entity.

    A rule matches when it is active, its trigger equals the event's
    trigger, and every condition holds (an empty list always holds).
    Lower ``priority`` runs first; ties are broken by ``id``.
    """
    id: int
    name: str
    trigger: str
    conditions: List[Condition] = field(default_factory=list)
    actions: List[Action] = field(default_factory=list)
    is_active: bool = True
    priority: int = 0
    created_by: Optional[int] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def sort_key(self) -> Tuple[int, int]:
        """Ordering key: priority ascending, then id ascending."""
        return (self.priority, self.id)

    def to_dict(self) -> dict:
        """Snapshot used for audit entries."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "trigger": self.trigger,
            "conditions": [c.to_dict() for c in self.conditions],
            "actions": [a.to_dict() for a in self.actions],
            "is_active": self.is_active,
            "priority": self.priority,
            "created_by": self.created_by,
        }


@dataclass(frozen=True)
class MatchedRule:
    """A rule selected for execution, in execution order."""
    rule: AutomationRule
    position: int

    @property
    def rule_id(self) -> int:
        return self.rule.id

    @property
    def actions(self) -> List[Action]:
        return self.rule.actions


@dataclass
class ActionResult:
    """
    Outcome of one action application.

    ``skipped`` marks malformed actions that were treated as no-ops.
    """
    rule_id: int
    action_type: str
    ok: bool
    error: Optional[str] = None
    skipped: bool = False
    old_value: Any = None
    new_value: Any = None

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "action_type": self.action_type,
            "ok": self.ok,
            "error": self.error,
            "skipped": self.skipped,
        }


@dataclass
class EngineRun:
    """Everything one triggering event produced."""
    trigger: str
    ticket_id: int
    matched: List[MatchedRule] = field(default_factory=list)
    results: List[ActionResult] = field(default_factory=list)

    @property
    def matched_rule_ids(self) -> List[int]:
        return [m.rule_id for m in self.matched]

    @property
    def failures(self) -> List[ActionResult]:
        return [r for r in self.results if not r.ok]

    @property
    def mutated(self) -> bool:
        """True if at least one ticket field was changed."""
        return any(r.ok and r.action_type != "send_notification" for r in self.results)

    def to_dict(self) -> dict:
        return {
            "trigger": self.trigger,
            "ticket_id": self.ticket_id,
            "matched_rule_ids": self.matched_rule_ids,
            "results": [r.to_dict() for r in self.results],
        }
