"""
SLA Interfaces Layer
====================

HTTP routes for SLA reporting.
"""

from helpdesk.sla.interfaces.controllers import (
    get_config_manager,
    get_reporting_service,
    sla_router,
)

__all__ = ["sla_router", "get_config_manager", "get_reporting_service"]
