"""
Shared Domain Types
===================

Value types exchanged with the ticket service.

The ticket service owns tickets; this subsystem only ever sees a read-only
``TicketSnapshot`` and answers with ``TicketMutation`` and
``NotificationRequest`` values.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from helpdesk.config import CLOSED_STATUSES


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize naive datetimes to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TicketSnapshot:
    """
    Read-only projection of a ticket.

    Only the fields rule conditions and SLA clocks look at are carried.
    """
    ticket_id: int
    subject: str
    priority: str
    department_id: Optional[int]
    status: str
    requester_email: str
    created_at: datetime
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    assigned_to_id: Optional[int] = None

    def __post_init__(self):
        # frozen dataclass, normalize through object.__setattr__
        for name in ("created_at", "first_response_at", "resolved_at", "updated_at"):
            object.__setattr__(self, name, as_utc(getattr(self, name)))

    @property
    def is_open(self) -> bool:
        """A ticket is open until it is resolved or closed."""
        return self.status not in CLOSED_STATUSES

    @property
    def is_resolved(self) -> bool:
        """Resolution milestone reached (timestamp or terminal status)."""
        return self.resolved_at is not None or self.status in CLOSED_STATUSES


@dataclass(frozen=True)
class TicketMutation:
    """A single field change requested from the ticket service."""
    ticket_id: int
    field: str  # departmentId, assignedToId, priority, status, tags
    value: Any
    actor_id: Optional[int] = None  # None = system


@dataclass(frozen=True)
class MutationOutcome:
    """Old/new value reported back by the ticket service."""
    old_value: Any = None
    new_value: Any = None


@dataclass
class NotificationRequest:
    """
    Notification to be enqueued for delivery.

    Delivery itself (email, websocket, in-app) belongs to the ticket service.
    """
    kind: str
    ticket_id: int
    title: str
    message: str
    recipient: Optional[str] = None
    template: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        """Convert to the ticket service's JSON shape."""
        return {
            "kind": self.kind,
            "ticketId": self.ticket_id,
            "title": self.title,
            "message": self.message,
            "recipient": self.recipient,
            "template": self.template,
            "data": self.data,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class AuditEntry:
    """Append-only audit record."""
    action: str
    entity: str
    entity_id: Optional[int]
    old_value: Any = None
    new_value: Any = None
    actor_id: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)


__all__ = [
    "utcnow",
    "as_utc",
    "TicketSnapshot",
    "TicketMutation",
    "MutationOutcome",
    "NotificationRequest",
    "AuditEntry",
]
