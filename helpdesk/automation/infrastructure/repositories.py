"""
Automation Infrastructure Repositories
======================================

Concrete implementation of the rule repository using SQLAlchemy.

Each call opens its own session so a repository instance can be shared by
the request path and the background jobs.
"""

from typing import List, Optional

from sqlalchemy import select

from helpdesk.automation.application import IAutomationRuleRepository
from helpdesk.automation.domain import Action, AutomationRule, Condition
from helpdesk.automation.infrastructure.models import AutomationRuleModel
from helpdesk.core import RepositoryException
from helpdesk.infrastructure.database import get_session_context
from helpdesk.shared.domain import as_utc


def _to_entity(model: AutomationRuleModel) -> AutomationRule:
    return AutomationRule(
        id=model.id,
        name=model.name,
        description=model.description,
        trigger=model.trigger,
        conditions=[Condition.from_dict(c) for c in (model.conditions or []) if isinstance(c, dict)],
        actions=[Action.from_dict(a) for a in (model.actions or []) if isinstance(a, dict)],
        is_active=model.is_active,
        priority=model.priority,
        created_by=model.created_by,
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


def _apply(model: AutomationRuleModel, rule: AutomationRule) -> None:
    model.name = rule.name
    model.description = rule.description
    model.trigger = rule.trigger
    model.conditions = [c.to_dict() for c in rule.conditions]
    model.actions = [a.to_dict() for a in rule.actions]
    model.is_active = rule.is_active
    model.priority = rule.priority
    if rule.updated_at is not None:
        model.updated_at = rule.updated_at


class SQLAlchemyAutomationRuleRepository(IAutomationRuleRepository):
    """
    SQLAlchemy implementation of the automation rule repository.

    Rules are re-read on every call; nothing is cached between evaluations.
    """

    def __init__(self, session_scope=get_session_context):
        self._session_scope = session_scope

    async def list(
        self,
        trigger: Optional[str] = None,
        active_only: bool = False
    ) -> List[AutomationRule]:
        """List rules ordered by priority, then id."""
        stmt = select(AutomationRuleModel)
        if trigger is not None:
            stmt = stmt.where(AutomationRuleModel.trigger == trigger)
        if active_only:
            stmt = stmt.where(AutomationRuleModel.is_active.is_(True))
        stmt = stmt.order_by(AutomationRuleModel.priority, AutomationRuleModel.id)

        async with self._session_scope() as session:
            result = await session.execute(stmt)
            return [_to_entity(model) for model in result.scalars().all()]

    async def get(self, rule_id: int) -> Optional[AutomationRule]:
        """Get rule by id."""
        async with self._session_scope() as session:
            model = await session.get(AutomationRuleModel, rule_id)
            return _to_entity(model) if model else None

    async def create(self, rule: AutomationRule) -> AutomationRule:
        """Create new rule."""
        model = AutomationRuleModel(created_by=rule.created_by)
        if rule.created_at is not None:
            model.created_at = rule.created_at
        _apply(model, rule)

        async with self._session_scope() as session:
            session.add(model)
            await session.flush()
            return _to_entity(model)

    async def update(self, rule: AutomationRule) -> AutomationRule:
        """Update existing rule."""
        async with self._session_scope() as session:
            model = await session.get(AutomationRuleModel, rule.id)
            if model is None:
                raise RepositoryException(f"Automation rule {rule.id} not found")
            _apply(model, rule)
            await session.flush()
            return _to_entity(model)

    async def delete(self, rule_id: int) -> bool:
        """Delete rule by id."""
        async with self._session_scope() as session:
            model = await session.get(AutomationRuleModel, rule_id)
            if model is None:
                return False
            await session.delete(model)
            return True
