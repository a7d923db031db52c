"""
SLA Domain Layer
================

Domain layer for SLA deadline tracking.

Contains:
- Entities: SLAPolicy, SLATracking
- Value Objects: SLAConfig, DeadlineStatus
- Domain Services: SLAClock (pure, stateless)

This layer has no dependencies on persistence or transport.
"""

from helpdesk.sla.domain.value_objects import (
    DEFAULT_POLICY_MATRIX,
    DeadlineStatus,
    SLAClock,
    SLAConfig,
)
from helpdesk.sla.domain.entities import SLAPolicy, SLATracking

__all__ = [
    # Entities
    "SLAPolicy",
    "SLATracking",
    # Value Objects
    "DEFAULT_POLICY_MATRIX",
    "DeadlineStatus",
    "SLAConfig",
    # Domain Services
    "SLAClock",
]
