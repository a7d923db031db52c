"""
Automation Application Layer
============================

Use cases for the rule engine and rule administration.

Contains:
- Services: ActionExecutor, RuleEngine, AutomationRuleService
- Repository interfaces: IAutomationRuleRepository
- DTOs: request/response models for the admin API
"""

from helpdesk.automation.application.services import (
    ActionExecutor,
    AutomationRuleService,
    IAutomationRuleRepository,
    MUTATION_FIELDS,
    RuleEngine,
)
from helpdesk.automation.application.dto import (
    ActionDTO,
    ConditionDTO,
    PreviewMatch,
    RuleActiveDTO,
    RuleCreateDTO,
    RuleListResponse,
    RulePreviewRequest,
    RulePreviewResponse,
    RuleResponse,
    RuleUpdateDTO,
)

__all__ = [
    # Services
    "ActionExecutor",
    "AutomationRuleService",
    "RuleEngine",
    "MUTATION_FIELDS",
    # Interfaces
    "IAutomationRuleRepository",
    # DTOs
    "ActionDTO",
    "ConditionDTO",
    "PreviewMatch",
    "RuleActiveDTO",
    "RuleCreateDTO",
    "RuleListResponse",
    "RulePreviewRequest",
    "RulePreviewResponse",
    "RuleResponse",
    "RuleUpdateDTO",
]
