"""
SLA Infrastructure Layer
========================

Persistence and configuration for SLA tracking.
"""

from helpdesk.sla.infrastructure.models import SLAPolicyModel, SLATrackingModel
from helpdesk.sla.infrastructure.repositories import (
    SQLAlchemySLAPolicyRepository,
    SQLAlchemySLATrackingRepository,
)
from helpdesk.sla.infrastructure.config_manager import SLAConfigManager

__all__ = [
    "SLAPolicyModel",
    "SLATrackingModel",
    "SQLAlchemySLAPolicyRepository",
    "SQLAlchemySLATrackingRepository",
    "SLAConfigManager",
]
