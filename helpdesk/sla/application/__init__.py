"""
SLA Application Layer
=====================

Use cases for SLA tracking, monitoring and reporting.

Contains:
- Services: SLATrackingService, SLAMonitor, SLAReportingService
- Repository interfaces: ISLAPolicyRepository, ISLATrackingRepository
- Ports: ISLASettingsProvider
- DTOs: response models for the reporting API
"""

from helpdesk.sla.application.services import (
    ISLAPolicyRepository,
    ISLASettingsProvider,
    ISLATrackingRepository,
    SLAMonitor,
    SLAReportingService,
    SLAStats,
    SLATrackingService,
    SweepSummary,
    TicketSLAStatus,
)
from helpdesk.sla.application.dto import (
    DeadlineStatusResponse,
    SLAPolicyListResponse,
    SLAPolicyResponse,
    SLASettingsResponse,
    SLAStatsResponse,
    SLATrackingListResponse,
    SLATrackingResponse,
    TicketSLAResponse,
)

__all__ = [
    # Services
    "SLAMonitor",
    "SLAReportingService",
    "SLATrackingService",
    "SLAStats",
    "SweepSummary",
    "TicketSLAStatus",
    # Interfaces
    "ISLAPolicyRepository",
    "ISLASettingsProvider",
    "ISLATrackingRepository",
    # DTOs
    "DeadlineStatusResponse",
    "SLAPolicyListResponse",
    "SLAPolicyResponse",
    "SLASettingsResponse",
    "SLAStatsResponse",
    "SLATrackingListResponse",
    "SLATrackingResponse",
    "TicketSLAResponse",
]
