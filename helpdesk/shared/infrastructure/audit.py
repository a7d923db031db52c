"""
Audit Log Infrastructure
========================

SQLAlchemy-backed append-only audit trail.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.infrastructure.database import Base, get_session_context
from helpdesk.shared.domain import AuditEntry
from helpdesk.shared.ports import IAuditLog
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class AuditEntryModel(Base):
    """
    Database model for audit entries.

    Maps to the 'audit_entries' table. Rows are never updated.
    """
    __tablename__ = "audit_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entity: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    old_value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    new_value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class SQLAlchemyAuditLog(IAuditLog):
    """
    Audit log writing one row per entry in its own transaction.

    Failures are logged and swallowed: the audit trail must never break
    the operation being audited.
    """

    def __init__(self, session_scope=get_session_context):
        self._session_scope = session_scope

    async def record(self, entry: AuditEntry) -> None:
        """Persist an audit entry."""
        try:
            async with self._session_scope() as session:
                session.add(AuditEntryModel(
                    actor_id=entry.actor_id,
                    action=entry.action,
                    entity=entry.entity,
                    entity_id=entry.entity_id,
                    old_value=_jsonable(entry.old_value),
                    new_value=_jsonable(entry.new_value),
                    created_at=entry.created_at,
                ))
        except Exception:
            logger.exception(
                "Failed to write audit entry",
                extra={"action": entry.action, "entity": entry.entity, "entity_id": entry.entity_id}
            )
