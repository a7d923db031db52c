"""
SLA Application Services
========================

Application services orchestrate SLA tracking, the periodic monitor and
read-only reporting.

Following SOLID principles:
- Single Responsibility: tracking writes, monitoring and reporting are separate
- Dependency Inversion: depend on repository/port interfaces
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from helpdesk.config import (
    AuditAction, DeadlineState, DeadlineType, NotificationKind, VALID_DEADLINE_TYPES,
)
from helpdesk.core import ApplicationException, ResourceNotFoundException
from helpdesk.shared.concurrency import SerializerClosedError, TicketSerializer
from helpdesk.shared.domain import AuditEntry, NotificationRequest, TicketSnapshot, as_utc, utcnow
from helpdesk.shared.ports import IAuditLog, INotificationQueue, ITicketGateway
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.domain import DeadlineStatus, SLAClock, SLAPolicy, SLATracking

logger = get_logger(__name__)

DEADLINE_LABELS = {
    DeadlineType.FIRST_RESPONSE: "first response",
    DeadlineType.RESOLUTION: "resolution",
}


# ========== Repository Interfaces (Dependency Inversion) ==========

@dataclass
class SLAStats:
    """Aggregate breach/at-risk counts over all tracking rows."""
    total_tracked: int = 0
    first_response_breached: int = 0
    resolution_breached: int = 0
    total_breached: int = 0
    at_risk: int = 0


class ISLAPolicyRepository(ABC):
    """Interface for SLA policy data access."""

    @abstractmethod
    async def find_active(self, department_id: int, priority: str) -> Optional[SLAPolicy]:
        """The active policy for a (department, priority) pair, if any."""

    @abstractmethod
    async def list(
        self,
        department_id: Optional[int] = None,
        priority: Optional[str] = None,
        active_only: bool = False
    ) -> List[SLAPolicy]:
        """List policies with filters."""

    @abstractmethod
    async def create(self, policy: SLAPolicy) -> SLAPolicy:
        """Create a policy; the store assigns the id."""


class ISLATrackingRepository(ABC):
    """Interface for SLA tracking data access."""

    @abstractmethod
    async def get(self, ticket_id: int) -> Optional[SLATracking]:
        """Get tracking for a ticket."""

    @abstractmethod
    async def create(self, tracking: SLATracking) -> SLATracking:
        """Insert tracking for a ticket that has none."""

    @abstractmethod
    async def save(self, tracking: SLATracking) -> SLATracking:
        """Update existing tracking."""

    @abstractmethod
    async def list(self, limit: int = 100, offset: int = 0) -> List[SLATracking]:
        """List tracking rows, newest first."""

    @abstractmethod
    async def count(self) -> int:
        """Number of tracking rows."""

    @abstractmethod
    async def list_unbreached_ticket_ids(self) -> List[int]:
        """Tickets with at least one deadline that has no breach marker."""

    @abstractmethod
    async def stats(self) -> SLAStats:
        """Aggregate counts."""


class ISLASettingsProvider(ABC):
    """Source of the warning threshold, read on every sweep."""

    @abstractmethod
    def get_warning_percent(self) -> int:
        """Current warning threshold percent (0-100)."""


# ========== Tracking ==========

class SLATrackingService:
    """
    Creates and recomputes per-ticket tracking.

    A ticket whose (department, priority) has no active policy simply has
    no tracking; that is not an error.
    """

    def __init__(
        self,
        policy_repository: ISLAPolicyRepository,
        tracking_repository: ISLATrackingRepository,
        audit_log: IAuditLog
    ):
        self._policies = policy_repository
        self._tracking = tracking_repository
        self._audit_log = audit_log

    async def on_ticket_created(self, snapshot: TicketSnapshot) -> Optional[SLATracking]:
        """
        Create tracking for a new ticket.

        Returns:
            The ticket's tracking, or None if no policy applies
        """
        existing = await self._tracking.get(snapshot.ticket_id)
        if existing is not None:
            return existing

        policy = await self._resolve_policy(snapshot)
        if policy is None:
            return None

        now = utcnow()
        tracking = SLATracking(
            ticket_id=snapshot.ticket_id,
            ticket_created_at=snapshot.created_at,
            first_response_due_at=SLAClock.compute_due_at(snapshot.created_at, policy.first_response_minutes),
            resolution_due_at=SLAClock.compute_due_at(snapshot.created_at, policy.resolution_minutes),
            policy_id=policy.id,
            department_id=policy.department_id,
            priority=policy.priority,
            created_at=now,
            updated_at=now,
        )
        tracking = await self._tracking.create(tracking)

        logger.info(
            "SLA tracking created",
            extra={
                "ticket_id": snapshot.ticket_id,
                "policy_id": policy.id,
                "first_response_due_at": tracking.first_response_due_at.isoformat(),
                "resolution_due_at": tracking.resolution_due_at.isoformat(),
            }
        )
        await self._audit_log.record(AuditEntry(
            action=AuditAction.SLA_TRACKING_CREATE,
            entity="sla_tracking",
            entity_id=snapshot.ticket_id,
            new_value=tracking.to_dict(),
        ))
        return tracking

    async def on_ticket_changed(self, snapshot: TicketSnapshot) -> Optional[SLATracking]:
        """
        Recompute due timestamps after a department or priority change.

        Deadlines that already carry a warning or breach marker, or whose
        milestone has been reached, are frozen.
        A ticket without tracking gains one if a policy is now resolvable.
        """
        tracking = await self._tracking.get(snapshot.ticket_id)
        if tracking is None:
            return await self.on_ticket_created(snapshot)

        if not tracking.needs_recompute(snapshot.department_id, snapshot.priority):
            return tracking

        policy = await self._resolve_policy(snapshot)
        if policy is None:
            # Existing tracking is kept as-is
            return tracking

        before = tracking.to_dict()
        changed = tracking.recompute(policy, snapshot)
        tracking.updated_at = utcnow()
        tracking = await self._tracking.save(tracking)

        logger.info(
            "SLA tracking recomputed",
            extra={"ticket_id": snapshot.ticket_id, "policy_id": policy.id, "changed": changed}
        )
        await self._audit_log.record(AuditEntry(
            action=AuditAction.SLA_TRACKING_RECOMPUTE,
            entity="sla_tracking",
            entity_id=snapshot.ticket_id,
            old_value=before,
            new_value=tracking.to_dict(),
        ))
        return tracking

    async def _resolve_policy(self, snapshot: TicketSnapshot) -> Optional[SLAPolicy]:
        if snapshot.department_id is None:
            logger.info(
                "Ticket has no department, no SLA policy applies",
                extra={"ticket_id": snapshot.ticket_id}
            )
            return None

        policy = await self._policies.find_active(snapshot.department_id, snapshot.priority)
        if policy is None:
            logger.info(
                "No active SLA policy",
                extra={
                    "ticket_id": snapshot.ticket_id,
                    "department_id": snapshot.department_id,
                    "priority": snapshot.priority,
                }
            )
        return policy


# ========== Monitor ==========

@dataclass
class SweepSummary:
    """What one monitor sweep did."""
    started_at: datetime
    tickets_scanned: int = 0
    warnings: int = 0
    breaches: int = 0
    errors: int = 0
    warning_percent: Optional[int] = None
    interrupted: bool = False

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "tickets_scanned": self.tickets_scanned,
            "warnings": self.warnings,
            "breaches": self.breaches,
            "errors": self.errors,
            "warning_percent": self.warning_percent,
            "interrupted": self.interrupted,
        }


@dataclass
class _TicketOutcome:
    warnings: int = 0
    breaches: int = 0
    fired: List[Tuple[str, str]] = field(default_factory=list)


class SLAMonitor:
    """
    Periodic sweep raising at-risk and breached transitions exactly once.

    Markers are persisted before the notification is enqueued, so a
    repeated sweep finds them set and stays silent.
    """

    def __init__(
        self,
        tracking_repository: ISLATrackingRepository,
        ticket_gateway: ITicketGateway,
        notification_queue: INotificationQueue,
        settings_provider: ISLASettingsProvider,
        audit_log: IAuditLog,
        serializer: TicketSerializer
    ):
        self._tracking = tracking_repository
        self._gateway = ticket_gateway
        self._notifications = notification_queue
        self._settings = settings_provider
        self._audit_log = audit_log
        self._serializer = serializer

    async def sweep(self, now: Optional[datetime] = None) -> SweepSummary:
        """
        Evaluate every open ticket with tracking.

        Never raises; per-ticket failures are logged and counted.
        """
        now = as_utc(now) or utcnow()
        summary = SweepSummary(started_at=now)
        # Read at sweep time so an admin change applies to the next sweep
        summary.warning_percent = self._settings.get_warning_percent()

        try:
            open_ids = set(await self._gateway.list_open_ticket_ids())
            candidate_ids = [
                ticket_id for ticket_id in await self._tracking.list_unbreached_ticket_ids()
                if ticket_id in open_ids
            ]
        except Exception:
            logger.exception("SLA sweep could not enumerate tickets")
            summary.errors += 1
            return summary

        for ticket_id in sorted(candidate_ids):
            try:
                outcome = await self._serializer.run(
                    ticket_id, self._evaluate_ticket, ticket_id, now, summary.warning_percent
                )
            except SerializerClosedError:
                logger.info(
                    "SLA sweep stopped by shutdown",
                    extra={"pending": len(candidate_ids) - summary.tickets_scanned}
                )
                summary.interrupted = True
                break
            except Exception:
                summary.tickets_scanned += 1
                logger.exception("SLA evaluation failed", extra={"ticket_id": ticket_id})
                summary.errors += 1
                continue
            summary.tickets_scanned += 1
            summary.warnings += outcome.warnings
            summary.breaches += outcome.breaches

        logger.info("SLA sweep complete", extra=summary.to_dict())
        return summary

    async def _evaluate_ticket(
        self,
        ticket_id: int,
        now: datetime,
        warning_percent: int
    ) -> _TicketOutcome:
        outcome = _TicketOutcome()

        # Re-read under the ticket lock; automation may have just changed it
        tracking = await self._tracking.get(ticket_id)
        if tracking is None:
            return outcome
        snapshot = await self._gateway.get_snapshot(ticket_id)
        if snapshot is None:
            logger.info("Ticket no longer exists, skipping SLA evaluation", extra={"ticket_id": ticket_id})
            return outcome

        for deadline_type in VALID_DEADLINE_TYPES:
            for transition in SLAClock.pending_transitions(
                tracking, deadline_type, snapshot, now, warning_percent
            ):
                if transition == DeadlineState.AT_RISK and tracking.mark_warning(deadline_type, now):
                    outcome.warnings += 1
                    outcome.fired.append((deadline_type, transition))
                elif transition == DeadlineState.BREACHED and tracking.mark_breached(deadline_type, now):
                    outcome.breaches += 1
                    outcome.fired.append((deadline_type, transition))

        if not outcome.fired:
            return outcome

        tracking.updated_at = now
        await self._tracking.save(tracking)

        for deadline_type, transition in outcome.fired:
            await self._announce(tracking, snapshot, deadline_type, transition)
        return outcome

    async def _announce(
        self,
        tracking: SLATracking,
        snapshot: TicketSnapshot,
        deadline_type: str,
        transition: str
    ) -> None:
        breached = transition == DeadlineState.BREACHED
        label = DEADLINE_LABELS[deadline_type]
        due = tracking.due_at(deadline_type)

        accepted = self._notifications.enqueue(NotificationRequest(
            kind=NotificationKind.SLA_BREACH if breached else NotificationKind.SLA_WARNING,
            ticket_id=snapshot.ticket_id,
            title=f"SLA {'breached' if breached else 'at risk'}: {label}",
            message=f"[#{snapshot.ticket_id}] {snapshot.subject} - {label} due {due.isoformat()}",
            recipient=f"user:{snapshot.assigned_to_id}" if snapshot.assigned_to_id else None,
            data={
                "deadlineType": deadline_type,
                "dueAt": due.isoformat(),
                "departmentId": tracking.department_id,
                "priority": tracking.priority,
            },
        ))
        log = logger.warning if breached else logger.info
        log(
            "SLA breached" if breached else "SLA at risk",
            extra={
                "ticket_id": snapshot.ticket_id,
                "deadline_type": deadline_type,
                "due_at": due.isoformat(),
                "notification_enqueued": accepted,
            }
        )
        marker = tracking.breached_at(deadline_type) if breached else tracking.warning_sent_at(deadline_type)
        await self._audit_log.record(AuditEntry(
            action=AuditAction.SLA_BREACH if breached else AuditAction.SLA_WARNING,
            entity="sla_tracking",
            entity_id=snapshot.ticket_id,
            new_value={"deadline_type": deadline_type, "due_at": due, "marked_at": marker},
        ))


# ========== Reporting ==========

@dataclass
class TicketSLAStatus:
    """Tracking plus derived per-deadline state for one ticket."""
    tracking: SLATracking
    deadlines: List[DeadlineStatus]
    warning_percent: int
    snapshot_available: bool


class SLAReportingService:
    """Read-only listing of policies and tracking for the admin surface."""

    def __init__(
        self,
        policy_repository: ISLAPolicyRepository,
        tracking_repository: ISLATrackingRepository,
        ticket_gateway: ITicketGateway,
        settings_provider: ISLASettingsProvider
    ):
        self._policies = policy_repository
        self._tracking = tracking_repository
        self._gateway = ticket_gateway
        self._settings = settings_provider

    async def list_policies(
        self,
        department_id: Optional[int] = None,
        priority: Optional[str] = None,
        active_only: bool = False
    ) -> List[SLAPolicy]:
        return await self._policies.list(
            department_id=department_id, priority=priority, active_only=active_only
        )

    async def list_tracking(self, limit: int = 100, offset: int = 0) -> Tuple[List[SLATracking], int]:
        rows = await self._tracking.list(limit=limit, offset=offset)
        return rows, await self._tracking.count()

    async def get_ticket_status(self, ticket_id: int, now: Optional[datetime] = None) -> TicketSLAStatus:
        """
        Derive the state of both deadlines against the live snapshot.

        Raises:
            ResourceNotFoundException: the ticket has no tracking
        """
        tracking = await self._tracking.get(ticket_id)
        if tracking is None:
            raise ResourceNotFoundException("SLATracking", str(ticket_id))

        try:
            snapshot = await self._gateway.get_snapshot(ticket_id)
        except ApplicationException as e:
            logger.warning(
                "Snapshot unavailable, deriving SLA state from markers only",
                extra={"ticket_id": ticket_id, "error": e.message}
            )
            snapshot = None

        now = as_utc(now) or utcnow()
        warning_percent = self._settings.get_warning_percent()
        return TicketSLAStatus(
            tracking=tracking,
            deadlines=[
                DeadlineStatus.derive(tracking, deadline_type, snapshot, now, warning_percent)
                for deadline_type in VALID_DEADLINE_TYPES
            ],
            warning_percent=warning_percent,
            snapshot_available=snapshot is not None,
        )

    async def stats(self) -> SLAStats:
        return await self._tracking.stats()

    def warning_percent(self) -> int:
        return self._settings.get_warning_percent()
