"""
SLA Infrastructure Repositories
===============================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
entities from the database. Each call opens its own session.
"""

from typing import List, Optional

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.exc import IntegrityError

from helpdesk.core import RepositoryException
from helpdesk.infrastructure.database import get_session_context
from helpdesk.shared.domain import as_utc
from helpdesk.sla.application import (
    ISLAPolicyRepository, ISLATrackingRepository, SLAStats,
)
from helpdesk.sla.domain import SLAPolicy, SLATracking
from helpdesk.sla.infrastructure.models import SLAPolicyModel, SLATrackingModel

# Markers copied verbatim between entity and model
_TRACKING_FIELDS = (
    "policy_id", "department_id", "priority", "ticket_created_at",
    "first_response_due_at", "resolution_due_at",
    "first_response_warning_sent_at", "resolution_warning_sent_at",
    "first_response_breached_at", "resolution_breached_at",
)


def _policy_to_entity(model: SLAPolicyModel) -> SLAPolicy:
    return SLAPolicy(
        id=model.id,
        department_id=model.department_id,
        priority=model.priority,
        first_response_minutes=model.first_response_minutes,
        resolution_minutes=model.resolution_minutes,
        is_active=model.is_active,
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


def _tracking_to_entity(model: SLATrackingModel) -> SLATracking:
    # SLATracking normalizes naive datetimes (SQLite) to UTC
    return SLATracking(
        ticket_id=model.ticket_id,
        created_at=model.created_at,
        updated_at=model.updated_at,
        **{name: getattr(model, name) for name in _TRACKING_FIELDS},
    )


class SQLAlchemySLAPolicyRepository(ISLAPolicyRepository):
    """SQLAlchemy implementation of the SLA policy repository."""

    def __init__(self, session_scope=get_session_context):
        self._session_scope = session_scope

    async def find_active(self, department_id: int, priority: str) -> Optional[SLAPolicy]:
        """Get the active policy for a (department, priority) pair."""
        stmt = select(SLAPolicyModel).where(
            SLAPolicyModel.department_id == department_id,
            SLAPolicyModel.priority == priority,
            SLAPolicyModel.is_active.is_(True),
        )
        async with self._session_scope() as session:
            result = await session.execute(stmt)
            model = result.scalars().first()
            return _policy_to_entity(model) if model else None

    async def list(
        self,
        department_id: Optional[int] = None,
        priority: Optional[str] = None,
        active_only: bool = False
    ) -> List[SLAPolicy]:
        """List policies with filters."""
        stmt = select(SLAPolicyModel)

        conditions = []
        if department_id is not None:
            conditions.append(SLAPolicyModel.department_id == department_id)
        if priority is not None:
            conditions.append(SLAPolicyModel.priority == priority)
        if active_only:
            conditions.append(SLAPolicyModel.is_active.is_(True))
        if conditions:
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(SLAPolicyModel.department_id, SLAPolicyModel.id)
        async with self._session_scope() as session:
            result = await session.execute(stmt)
            return [_policy_to_entity(model) for model in result.scalars().all()]

    async def create(self, policy: SLAPolicy) -> SLAPolicy:
        """Create new policy."""
        model = SLAPolicyModel(
            department_id=policy.department_id,
            priority=policy.priority,
            first_response_minutes=policy.first_response_minutes,
            resolution_minutes=policy.resolution_minutes,
            is_active=policy.is_active,
        )
        try:
            async with self._session_scope() as session:
                session.add(model)
                await session.flush()
                return _policy_to_entity(model)
        except IntegrityError as e:
            raise RepositoryException(
                f"An active policy already exists for department {policy.department_id} "
                f"and priority {policy.priority}",
                {"error": str(e.orig)}
            )


class SQLAlchemySLATrackingRepository(ISLATrackingRepository):
    """SQLAlchemy implementation of the SLA tracking repository."""

    def __init__(self, session_scope=get_session_context):
        self._session_scope = session_scope

    async def get(self, ticket_id: int) -> Optional[SLATracking]:
        """Get tracking by ticket id."""
        async with self._session_scope() as session:
            model = await session.get(SLATrackingModel, ticket_id)
            return _tracking_to_entity(model) if model else None

    async def create(self, tracking: SLATracking) -> SLATracking:
        """Insert tracking."""
        model = SLATrackingModel(ticket_id=tracking.ticket_id)
        for name in _TRACKING_FIELDS:
            setattr(model, name, getattr(tracking, name))
        if tracking.created_at is not None:
            model.created_at = tracking.created_at
        if tracking.updated_at is not None:
            model.updated_at = tracking.updated_at

        try:
            async with self._session_scope() as session:
                session.add(model)
                await session.flush()
                return _tracking_to_entity(model)
        except IntegrityError as e:
            raise RepositoryException(
                f"Tracking for ticket {tracking.ticket_id} already exists",
                {"error": str(e.orig)}
            )

    async def save(self, tracking: SLATracking) -> SLATracking:
        """Update tracking."""
        async with self._session_scope() as session:
            model = await session.get(SLATrackingModel, tracking.ticket_id)
            if model is None:
                raise RepositoryException(f"Tracking for ticket {tracking.ticket_id} not found")
            for name in _TRACKING_FIELDS:
                setattr(model, name, getattr(tracking, name))
            if tracking.updated_at is not None:
                model.updated_at = tracking.updated_at
            await session.flush()
            return _tracking_to_entity(model)

    async def list(self, limit: int = 100, offset: int = 0) -> List[SLATracking]:
        """List tracking rows, newest ticket first."""
        stmt = (
            select(SLATrackingModel)
            .order_by(SLATrackingModel.ticket_created_at.desc(), SLATrackingModel.ticket_id.desc())
            .limit(limit)
            .offset(offset)
        )
        async with self._session_scope() as session:
            result = await session.execute(stmt)
            return [_tracking_to_entity(model) for model in result.scalars().all()]

    async def count(self) -> int:
        async with self._session_scope() as session:
            result = await session.execute(select(func.count()).select_from(SLATrackingModel))
            return int(result.scalar_one())

    async def list_unbreached_ticket_ids(self) -> List[int]:
        """Tickets where at least one deadline can still transition."""
        stmt = (
            select(SLATrackingModel.ticket_id)
            .where(or_(
                SLATrackingModel.first_response_breached_at.is_(None),
                SLATrackingModel.resolution_breached_at.is_(None),
            ))
            .order_by(SLATrackingModel.ticket_id)
        )
        async with self._session_scope() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def stats(self) -> SLAStats:
        """Aggregate breach/at-risk counts in one query."""
        t = SLATrackingModel
        any_breach = or_(t.first_response_breached_at.is_not(None), t.resolution_breached_at.is_not(None))
        at_risk = or_(
            and_(t.first_response_warning_sent_at.is_not(None), t.first_response_breached_at.is_(None)),
            and_(t.resolution_warning_sent_at.is_not(None), t.resolution_breached_at.is_(None)),
        )
        stmt = select(
            func.count(),
            func.count(t.first_response_breached_at),
            func.count(t.resolution_breached_at),
            func.sum(case((any_breach, 1), else_=0)),
            func.sum(case((at_risk, 1), else_=0)),
        ).select_from(t)

        async with self._session_scope() as session:
            row = (await session.execute(stmt)).one()

        return SLAStats(
            total_tracked=int(row[0] or 0),
            first_response_breached=int(row[1] or 0),
            resolution_breached=int(row[2] or 0),
            total_breached=int(row[3] or 0),
            at_risk=int(row[4] or 0),
        )
