"""
Helpdesk Automation
===================

Automation rule engine and SLA deadline tracking for a helpdesk.
"""

__version__ = "1.0.0"
