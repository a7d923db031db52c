"""
SLA Application DTOs
====================

Response models for the read-only SLA reporting API.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from helpdesk.sla.domain import DeadlineStatus, SLAPolicy, SLATracking


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["URGENT", "HIGH", "NORMAL", "LOW"]
DeadlineTypeStr = Literal["first_response", "resolution"]
DeadlineStateStr = Literal["PENDING", "AT_RISK", "BREACHED", "SATISFIED"]


class SLAPolicyResponse(BaseModel):
    """Response model for an SLA policy."""
    id: int
    department_id: int
    priority: str
    first_response_minutes: int
    resolution_minutes: int
    is_active: bool

    @classmethod
    def from_domain(cls, policy: SLAPolicy) -> "SLAPolicyResponse":
        return cls(
            id=policy.id,
            department_id=policy.department_id,
            priority=policy.priority,
            first_response_minutes=policy.first_response_minutes,
            resolution_minutes=policy.resolution_minutes,
            is_active=policy.is_active,
        )


class SLAPolicyListResponse(BaseModel):
    policies: List[SLAPolicyResponse]
    total: int


class SLATrackingResponse(BaseModel):
    """Response model for a tracking row (stored state only)."""
    ticket_id: int
    policy_id: Optional[int] = None
    department_id: Optional[int] = None
    priority: Optional[str] = None
    ticket_created_at: datetime
    first_response_due_at: datetime
    resolution_due_at: datetime
    first_response_warning_sent_at: Optional[datetime] = None
    resolution_warning_sent_at: Optional[datetime] = None
    first_response_breached_at: Optional[datetime] = None
    resolution_breached_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, tracking: SLATracking) -> "SLATrackingResponse":
        return cls(
            ticket_id=tracking.ticket_id,
            policy_id=tracking.policy_id,
            department_id=tracking.department_id,
            priority=tracking.priority,
            ticket_created_at=tracking.ticket_created_at,
            first_response_due_at=tracking.first_response_due_at,
            resolution_due_at=tracking.resolution_due_at,
            first_response_warning_sent_at=tracking.first_response_warning_sent_at,
            resolution_warning_sent_at=tracking.resolution_warning_sent_at,
            first_response_breached_at=tracking.first_response_breached_at,
            resolution_breached_at=tracking.resolution_breached_at,
        )


class SLATrackingListResponse(BaseModel):
    tracking: List[SLATrackingResponse]
    total: int
    limit: int
    offset: int


class DeadlineStatusResponse(BaseModel):
    """Derived state of one deadline."""
    deadline_type: DeadlineTypeStr
    due_at: datetime
    state: DeadlineStateStr
    warning_sent_at: Optional[datetime] = None
    breached_at: Optional[datetime] = None
    remaining_seconds: float = Field(..., description="Time until due (0 once past)")

    @classmethod
    def from_domain(cls, status: DeadlineStatus) -> "DeadlineStatusResponse":
        return cls(
            deadline_type=status.deadline_type,
            due_at=status.due_at,
            state=status.state,
            warning_sent_at=status.warning_sent_at,
            breached_at=status.breached_at,
            remaining_seconds=status.remaining_seconds,
        )


class TicketSLAResponse(BaseModel):
    """Response model for one ticket's SLA state."""
    tracking: SLATrackingResponse
    first_response: DeadlineStatusResponse
    resolution: DeadlineStatusResponse
    warning_percent: int
    snapshot_available: bool = Field(
        ..., description="False if the ticket service could not be reached; state is derived from markers"
    )


class SLAStatsResponse(BaseModel):
    total_tracked: int
    first_response_breached: int
    resolution_breached: int
    total_breached: int
    at_risk: int


class SLASettingsResponse(BaseModel):
    warning_percent: int
    sweep_interval_seconds: int
    config_path: str
    config_loaded: bool
