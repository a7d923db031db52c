"""
Dispatch Infrastructure Layer
=============================

Adapters for the ticket service and the periodic job scheduler.
"""

from helpdesk.dispatch.infrastructure.ticket_gateway import HttpTicketGateway, build_client
from helpdesk.dispatch.infrastructure.notifications import (
    CircuitBreaker,
    CircuitState,
    HttpNotificationSender,
    INotificationSender,
    NotificationOutbox,
)
from helpdesk.dispatch.infrastructure.scheduler import PeriodicJobs

__all__ = [
    "HttpTicketGateway",
    "build_client",
    "CircuitBreaker",
    "CircuitState",
    "HttpNotificationSender",
    "INotificationSender",
    "NotificationOutbox",
    "PeriodicJobs",
]
