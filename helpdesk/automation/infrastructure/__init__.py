"""
Automation Infrastructure Layer
===============================

Persistence for automation rules.
"""

from helpdesk.automation.infrastructure.models import AutomationRuleModel
from helpdesk.automation.infrastructure.repositories import SQLAlchemyAutomationRuleRepository

__all__ = [
    "AutomationRuleModel",
    "SQLAlchemyAutomationRuleRepository",
]
