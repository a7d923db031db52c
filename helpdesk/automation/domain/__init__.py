"""
Automation Domain Layer
=======================

Domain layer for the automation rule engine.

Contains:
- Entities: AutomationRule, Condition, Action, MatchedRule, ActionResult
- Value Objects: one validated payload shape per action type
- Domain Services: ConditionEvaluator, RuleMatcher (pure, stateless)

This layer has no dependencies on persistence or transport.
"""

from helpdesk.automation.domain.entities import (
    Action,
    ActionResult,
    AutomationRule,
    Condition,
    EngineRun,
    MatchedRule,
)
from helpdesk.automation.domain.value_objects import (
    ACTION_PARAM_MODELS,
    ActionParams,
    condition_problem,
    parse_action_params,
)
from helpdesk.automation.domain.conditions import ConditionEvaluator
from helpdesk.automation.domain.matcher import RuleMatcher

__all__ = [
    # Entities
    "Action",
    "ActionResult",
    "AutomationRule",
    "Condition",
    "EngineRun",
    "MatchedRule",
    # Value Objects
    "ACTION_PARAM_MODELS",
    "ActionParams",
    "condition_problem",
    "parse_action_params",
    # Domain Services
    "ConditionEvaluator",
    "RuleMatcher",
]
