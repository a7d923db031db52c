"""
SLA Domain Entities
===================

Pure Python domain entities for SLA tracking.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from helpdesk.config import DeadlineType, VALID_DEADLINE_TYPES
from helpdesk.shared.domain import TicketSnapshot, as_utc
from helpdesk.sla.domain.value_objects import SLAClock


@dataclass
class SLAPolicy:
    """
    Deadline configuration for one (department, priority) pair.

    At most one active policy exists per pair.
    """
    id: int
    department_id: int
    priority: str
    first_response_minutes: int
    resolution_minutes: int
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def minutes_for(self, deadline_type: str) -> int:
        """Window length for a deadline type."""
        if deadline_type == DeadlineType.FIRST_RESPONSE:
            return self.first_response_minutes
        return self.resolution_minutes

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "department_id": self.department_id,
            "priority": self.priority,
            "first_response_minutes": self.first_response_minutes,
            "resolution_minutes": self.resolution_minutes,
            "is_active": self.is_active,
        }


@dataclass
class SLATracking:
    """
    Per-ticket SLA state.

    Due timestamps may be recomputed; warning and breach markers are
    set-once and never cleared. Once either marker is set for a deadline,
    that deadline's due timestamp is frozen.

    ``department_id`` / ``priority`` record the basis the due timestamps
    were computed from, so that changes can be detected.
    """
    ticket_id: int
    ticket_created_at: datetime
    first_response_due_at: datetime
    resolution_due_at: datetime
    policy_id: Optional[int] = None
    department_id: Optional[int] = None
    priority: Optional[str] = None
    first_response_warning_sent_at: Optional[datetime] = None
    resolution_warning_sent_at: Optional[datetime] = None
    first_response_breached_at: Optional[datetime] = None
    resolution_breached_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        for name in (
            "ticket_created_at", "first_response_due_at", "resolution_due_at",
            "first_response_warning_sent_at", "resolution_warning_sent_at",
            "first_response_breached_at", "resolution_breached_at",
            "created_at", "updated_at",
        ):
            setattr(self, name, as_utc(getattr(self, name)))

    # ========== Per-deadline accessors ==========

    def due_at(self, deadline_type: str) -> datetime:
        return getattr(self, f"{_check(deadline_type)}_due_at")

    def warning_sent_at(self, deadline_type: str) -> Optional[datetime]:
        return getattr(self, f"{_check(deadline_type)}_warning_sent_at")

    def breached_at(self, deadline_type: str) -> Optional[datetime]:
        return getattr(self, f"{_check(deadline_type)}_breached_at")

    def is_frozen(self, deadline_type: str) -> bool:
        """True once a warning or breach marker exists for the deadline."""
        return (
            self.warning_sent_at(deadline_type) is not None
            or self.breached_at(deadline_type) is not None
        )

    # ========== Set-once markers ==========

    def mark_warning(self, deadline_type: str, when: datetime) -> bool:
        """Set the warning marker. Returns False if it was already set."""
        if self.warning_sent_at(deadline_type) is not None:
            return False
        setattr(self, f"{deadline_type}_warning_sent_at", as_utc(when))
        return True

    def mark_breached(self, deadline_type: str, when: datetime) -> bool:
        """Set the breach marker. Returns False if it was already set."""
        if self.breached_at(deadline_type) is not None:
            return False
        setattr(self, f"{deadline_type}_breached_at", as_utc(when))
        return True

    # ========== Recompute ==========

    def needs_recompute(self, department_id: Optional[int], priority: str) -> bool:
        """True if the ticket's department or priority moved off the basis."""
        return department_id != self.department_id or priority != self.priority

    def recompute(self, policy: "SLAPolicy", snapshot: Optional[TicketSnapshot] = None) -> List[str]:
        """
        Recompute due timestamps from the original creation time.

        Deadlines with a marker keep their due timestamp, as do deadlines
        whose milestone the snapshot shows as already reached.

        Returns:
            Deadline types whose due timestamp changed
        """
        changed: List[str] = []
        for deadline_type in VALID_DEADLINE_TYPES:
            if self.is_frozen(deadline_type):
                continue
            if snapshot is not None and SLAClock.milestone(deadline_type, snapshot)[0]:
                continue
            due = SLAClock.compute_due_at(self.ticket_created_at, policy.minutes_for(deadline_type))
            if due != self.due_at(deadline_type):
                setattr(self, f"{deadline_type}_due_at", due)
                changed.append(deadline_type)

        self.policy_id = policy.id
        self.department_id = policy.department_id
        self.priority = policy.priority
        return changed

    def to_dict(self) -> dict:
        """Snapshot used for audit entries."""
        return {
            "ticket_id": self.ticket_id,
            "policy_id": self.policy_id,
            "department_id": self.department_id,
            "priority": self.priority,
            "first_response_due_at": self.first_response_due_at,
            "resolution_due_at": self.resolution_due_at,
            "first_response_warning_sent_at": self.first_response_warning_sent_at,
            "resolution_warning_sent_at": self.resolution_warning_sent_at,
            "first_response_breached_at": self.first_response_breached_at,
            "resolution_breached_at": self.resolution_breached_at,
        }


def _check(deadline_type: str) -> str:
    if deadline_type not in VALID_DEADLINE_TYPES:
        raise ValueError(f"unknown deadline type '{deadline_type}'")
    return deadline_type
