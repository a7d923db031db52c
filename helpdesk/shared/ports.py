"""
Shared Ports
============

Interfaces to collaborators owned by the ticket service.

Both bounded contexts (automation, sla) depend on these abstractions;
concrete adapters live in ``helpdesk.dispatch.infrastructure`` and
``helpdesk.shared.infrastructure``.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from helpdesk.shared.domain import (
    TicketSnapshot, TicketMutation, MutationOutcome,
    NotificationRequest, AuditEntry
)


class ITicketGateway(ABC):
    """Read snapshots from and push mutations to the ticket service."""

    @abstractmethod
    async def get_snapshot(self, ticket_id: int) -> Optional[TicketSnapshot]:
        """Get the current snapshot, None if the ticket no longer exists."""

    @abstractmethod
    async def list_open_ticket_ids(self) -> List[int]:
        """Ids of all tickets that are not resolved or closed."""

    @abstractmethod
    async def apply_mutation(self, mutation: TicketMutation) -> MutationOutcome:
        """
        Apply a field change.

        Raises:
            TicketServiceException: if the ticket service rejects the change
        """


class INotificationQueue(ABC):
    """Fire-and-forget notification enqueue."""

    @abstractmethod
    def enqueue(self, request: NotificationRequest) -> bool:
        """Enqueue without blocking. Returns False if the request was dropped."""


class IAuditLog(ABC):
    """Append-only audit trail."""

    @abstractmethod
    async def record(self, entry: AuditEntry) -> None:
        """Persist an entry. Must not raise."""
