"""
Automation Interfaces Layer
===========================

HTTP routes for rule administration.
"""

from helpdesk.automation.interfaces.controllers import automation_router, get_rule_service

__all__ = ["automation_router", "get_rule_service"]
