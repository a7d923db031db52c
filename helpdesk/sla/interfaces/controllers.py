"""
SLA Controllers (API Routes)
============================

Read-only FastAPI routes for SLA reporting.

Controllers are thin - they delegate to application services.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from helpdesk.config import settings
from helpdesk.sla.application import (
    DeadlineStatusResponse,
    SLAPolicyListResponse,
    SLAPolicyResponse,
    SLAReportingService,
    SLASettingsResponse,
    SLAStatsResponse,
    SLATrackingListResponse,
    SLATrackingResponse,
    TicketSLAResponse,
)
from helpdesk.sla.application.dto import PriorityStr
from helpdesk.sla.infrastructure import SLAConfigManager

router = APIRouter(prefix="/sla", tags=["SLA Reporting"])


# ========== Example payloads for Swagger ==========

TICKET_SLA_RESPONSE_EXAMPLE = {
    "tracking": {
        "ticket_id": 42,
        "policy_id": 7,
        "department_id": 3,
        "priority": "HIGH",
        "ticket_created_at": "2024-01-15T10:00:00Z",
        "first_response_due_at": "2024-01-15T14:00:00Z",
        "resolution_due_at": "2024-01-15T18:00:00Z",
        "first_response_warning_sent_at": "2024-01-15T13:12:00Z",
        "resolution_warning_sent_at": None,
        "first_response_breached_at": None,
        "resolution_breached_at": None
    },
    "first_response": {
        "deadline_type": "first_response",
        "due_at": "2024-01-15T14:00:00Z",
        "state": "AT_RISK",
        "warning_sent_at": "2024-01-15T13:12:00Z",
        "breached_at": None,
        "remaining_seconds": 2880.0
    },
    "resolution": {
        "deadline_type": "resolution",
        "due_at": "2024-01-15T18:00:00Z",
        "state": "PENDING",
        "warning_sent_at": None,
        "breached_at": None,
        "remaining_seconds": 17280.0
    },
    "warning_percent": 80,
    "snapshot_available": True
}


# ========== Dependencies ==========

def get_reporting_service(request: Request) -> SLAReportingService:
    """Get the reporting service wired at startup."""
    return request.app.state.sla_reporting_service


def get_config_manager(request: Request) -> SLAConfigManager:
    """Get the SLA config manager wired at startup."""
    return request.app.state.sla_config_manager


# ========== Route Handlers ==========

@router.get("/policies", response_model=SLAPolicyListResponse, summary="List SLA policies")
async def list_policies(
    department_id: Optional[int] = Query(None, description="Filter by department"),
    priority: Optional[PriorityStr] = Query(None, description="Filter by priority"),
    active_only: bool = Query(False, description="Only active policies"),
    service: SLAReportingService = Depends(get_reporting_service)
):
    policies = await service.list_policies(
        department_id=department_id, priority=priority, active_only=active_only
    )
    return SLAPolicyListResponse(
        policies=[SLAPolicyResponse.from_domain(p) for p in policies],
        total=len(policies)
    )


@router.get("/tracking", response_model=SLATrackingListResponse, summary="List SLA tracking rows")
async def list_tracking(
    limit: int = Query(100, ge=1, le=1000, description="Results per page"),
    offset: int = Query(0, ge=0, description="Page offset"),
    service: SLAReportingService = Depends(get_reporting_service)
):
    rows, total = await service.list_tracking(limit=limit, offset=offset)
    return SLATrackingListResponse(
        tracking=[SLATrackingResponse.from_domain(row) for row in rows],
        total=total,
        limit=limit,
        offset=offset
    )


@router.get(
    "/tracking/{ticket_id}",
    response_model=TicketSLAResponse,
    summary="Get a ticket's SLA state",
    description="""
    Stored tracking plus the derived state of each deadline
    (`PENDING`, `AT_RISK`, `BREACHED`, `SATISFIED`), computed against the
    live ticket snapshot and the current warning threshold.
    """,
    responses={
        200: {"content": {"application/json": {"example": TICKET_SLA_RESPONSE_EXAMPLE}}},
        404: {"description": "Ticket has no SLA tracking"}
    }
)
async def get_ticket_tracking(
    ticket_id: int,
    service: SLAReportingService = Depends(get_reporting_service)
):
    status = await service.get_ticket_status(ticket_id)
    first_response, resolution = status.deadlines
    return TicketSLAResponse(
        tracking=SLATrackingResponse.from_domain(status.tracking),
        first_response=DeadlineStatusResponse.from_domain(first_response),
        resolution=DeadlineStatusResponse.from_domain(resolution),
        warning_percent=status.warning_percent,
        snapshot_available=status.snapshot_available
    )


@router.get("/stats", response_model=SLAStatsResponse, summary="SLA breach statistics")
async def get_stats(service: SLAReportingService = Depends(get_reporting_service)):
    stats = await service.stats()
    return SLAStatsResponse(
        total_tracked=stats.total_tracked,
        first_response_breached=stats.first_response_breached,
        resolution_breached=stats.resolution_breached,
        total_breached=stats.total_breached,
        at_risk=stats.at_risk
    )


@router.get("/settings", response_model=SLASettingsResponse, summary="Current SLA settings")
async def get_sla_settings(config_manager: SLAConfigManager = Depends(get_config_manager)):
    return SLASettingsResponse(
        warning_percent=config_manager.get_warning_percent(),
        sweep_interval_seconds=settings.sla_sweep_interval_seconds,
        config_path=str(config_manager.path or settings.sla_config_path),
        config_loaded=config_manager.is_loaded
    )


# Export router for inclusion in main app
sla_router = router
