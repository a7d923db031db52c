"""
Shared DTOs
===========

Wire shape of a ticket snapshot, as served by the ticket service and as
accepted by the rule preview endpoint (camelCase keys).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from helpdesk.shared.domain import TicketSnapshot


class TicketSnapshotDTO(BaseModel):
    """Ticket snapshot as JSON."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    ticket_id: int = Field(..., alias="ticketId", gt=0)
    subject: str = Field(default="")
    priority: str = Field(...)
    department_id: Optional[int] = Field(default=None, alias="departmentId")
    status: str = Field(...)
    requester_email: str = Field(default="", alias="requesterEmail")
    created_at: datetime = Field(..., alias="createdAt")
    first_response_at: Optional[datetime] = Field(default=None, alias="firstResponseAt")
    resolved_at: Optional[datetime] = Field(default=None, alias="resolvedAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    assigned_to_id: Optional[int] = Field(default=None, alias="assignedToId")

    def to_domain(self) -> TicketSnapshot:
        """Convert to domain snapshot."""
        return TicketSnapshot(
            ticket_id=self.ticket_id,
            subject=self.subject,
            priority=self.priority,
            department_id=self.department_id,
            status=self.status,
            requester_email=self.requester_email,
            created_at=self.created_at,
            first_response_at=self.first_response_at,
            resolved_at=self.resolved_at,
            updated_at=self.updated_at,
            assigned_to_id=self.assigned_to_id,
        )
