"""
SLA Value Objects
=================

Immutable value objects and pure calculations for the SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from helpdesk.config import (
    DeadlineState, DeadlineType, TicketPriority,
    CLOSED_STATUSES, VALID_DEADLINE_TYPES, VALID_PRIORITIES,
)
from helpdesk.shared.domain import TicketSnapshot

if TYPE_CHECKING:
    from helpdesk.sla.domain.entities import SLATracking


# Minutes per priority: first response / resolution
DEFAULT_POLICY_MATRIX: Dict[str, Dict[str, int]] = {
    TicketPriority.URGENT: {DeadlineType.FIRST_RESPONSE: 60, DeadlineType.RESOLUTION: 240},
    TicketPriority.HIGH: {DeadlineType.FIRST_RESPONSE: 240, DeadlineType.RESOLUTION: 480},
    TicketPriority.NORMAL: {DeadlineType.FIRST_RESPONSE: 480, DeadlineType.RESOLUTION: 1440},
    TicketPriority.LOW: {DeadlineType.FIRST_RESPONSE: 1440, DeadlineType.RESOLUTION: 4320},
}


class SLAClock:
    """
    Pure functions for SLA calculations.

    Stateless utility class: all deadline arithmetic and per-deadline state
    derivation in one place. Clocks run continuously from ticket creation.
    """

    @staticmethod
    def compute_due_at(created_at: datetime, minutes: int) -> datetime:
        """Due timestamp: ``created_at + minutes``."""
        return created_at + timedelta(minutes=minutes)

    @staticmethod
    def warning_at(created_at: datetime, due_at: datetime, warning_percent: int) -> datetime:
        """
        Moment a deadline becomes at risk.

        ``due_at - (due_at - created_at) * (1 - warning_percent / 100)``
        """
        window = due_at - created_at
        return due_at - window * (1 - warning_percent / 100)

    @staticmethod
    def milestone(deadline_type: str, snapshot: TicketSnapshot) -> Tuple[bool, Optional[datetime]]:
        """
        Whether the milestone for a deadline has been reached, and when.

        Resolution is reached by ``resolved_at`` or by a closed status; a
        closed status without a timestamp gives ``(True, None)``.
        """
        if deadline_type == DeadlineType.FIRST_RESPONSE:
            return snapshot.first_response_at is not None, snapshot.first_response_at
        if snapshot.resolved_at is not None:
            return True, snapshot.resolved_at
        return snapshot.status in CLOSED_STATUSES, None

    @staticmethod
    def deadline_state(
        tracking: "SLATracking",
        deadline_type: str,
        snapshot: Optional[TicketSnapshot],
        now: datetime,
        warning_percent: int
    ) -> str:
        """
        Derive the current state of one deadline.

        A milestone reached after the due time reads as BREACHED even when
        no breach marker was recorded.
        """
        due = tracking.due_at(deadline_type)
        breached_at = tracking.breached_at(deadline_type)

        if snapshot is not None:
            reached, reached_at = SLAClock.milestone(deadline_type, snapshot)
            if reached:
                if breached_at is not None and (reached_at is None or breached_at <= reached_at):
                    return DeadlineState.BREACHED
                if reached_at is not None and reached_at > due:
                    return DeadlineState.BREACHED
                return DeadlineState.SATISFIED

        if breached_at is not None or now >= due:
            return DeadlineState.BREACHED
        warn = SLAClock.warning_at(tracking.ticket_created_at, due, warning_percent)
        if tracking.warning_sent_at(deadline_type) is not None or now >= warn:
            return DeadlineState.AT_RISK
        return DeadlineState.PENDING

    @staticmethod
    def pending_transitions(
        tracking: "SLATracking",
        deadline_type: str,
        snapshot: TicketSnapshot,
        now: datetime,
        warning_percent: int
    ) -> List[str]:
        """
        Transitions a sweep must record for one deadline, in order.

        Returns a sublist of ``[AT_RISK, BREACHED]``. Nothing fires once the
        milestone is reached, and each marker fires at most once.
        """
        reached, _ = SLAClock.milestone(deadline_type, snapshot)
        if reached:
            return []

        due = tracking.due_at(deadline_type)
        breach_unset = tracking.breached_at(deadline_type) is None
        transitions: List[str] = []

        warn = SLAClock.warning_at(tracking.ticket_created_at, due, warning_percent)
        if now >= warn and breach_unset and tracking.warning_sent_at(deadline_type) is None:
            transitions.append(DeadlineState.AT_RISK)
        if now >= due and breach_unset:
            transitions.append(DeadlineState.BREACHED)
        return transitions


@dataclass(frozen=True)
class DeadlineStatus:
    """Reporting view of one deadline."""
    deadline_type: str
    due_at: datetime
    state: str
    warning_sent_at: Optional[datetime]
    breached_at: Optional[datetime]
    remaining_seconds: float

    @classmethod
    def derive(
        cls,
        tracking: "SLATracking",
        deadline_type: str,
        snapshot: Optional[TicketSnapshot],
        now: datetime,
        warning_percent: int
    ) -> "DeadlineStatus":
        due = tracking.due_at(deadline_type)
        return cls(
            deadline_type=deadline_type,
            due_at=due,
            state=SLAClock.deadline_state(tracking, deadline_type, snapshot, now, warning_percent),
            warning_sent_at=tracking.warning_sent_at(deadline_type),
            breached_at=tracking.breached_at(deadline_type),
            remaining_seconds=max(0.0, (due - now).total_seconds()),
        )


class SLAConfig(BaseModel):
    """
    SLA configuration loaded from YAML.

    ``warning_percent`` left unset falls back to the environment setting.
    ``default_policies`` is the matrix seeded for new departments.
    """
    warning_percent: Optional[int] = Field(
        default=None,
        ge=0,
        le=100,
        description="Percent of the window after which a deadline is at risk"
    )
    default_policies: Dict[str, Dict[str, int]] = Field(
        default_factory=dict,
        description="Minutes by priority and deadline type"
    )

    @field_validator("default_policies")
    @classmethod
    def validate_default_policies(cls, v: Dict[str, Dict[str, int]]) -> Dict[str, Dict[str, int]]:
        """Fill missing priorities/deadline types from the built-in matrix."""
        unknown = set(v) - set(VALID_PRIORITIES)
        if unknown:
            raise ValueError(f"unknown priorities: {sorted(unknown)}")

        filled: Dict[str, Dict[str, int]] = {}
        for priority in VALID_PRIORITIES:
            row = dict(v.get(priority, {}))
            for deadline_type in VALID_DEADLINE_TYPES:
                minutes = row.setdefault(deadline_type, DEFAULT_POLICY_MATRIX[priority][deadline_type])
                if minutes <= 0:
                    raise ValueError(f"{priority}.{deadline_type} must be positive")
            filled[priority] = row
        return filled

    def policy_minutes(self, priority: str) -> Dict[str, int]:
        """Minutes per deadline type for a priority."""
        return self.default_policies.get(priority) or DEFAULT_POLICY_MATRIX[priority]
