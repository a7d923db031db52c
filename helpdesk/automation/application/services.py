"""
Automation Application Services
================================

Application services orchestrate the rule engine and coordinate between
domain logic, the ticket service and the rule store.

Following SOLID principles:
- Single Responsibility: matching, execution and administration are separate
- Dependency Inversion: depend on ports/repositories, not concrete adapters
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from helpdesk.automation.domain import (
    Action, ActionResult, AutomationRule, EngineRun, MatchedRule,
    RuleMatcher, condition_problem, parse_action_params,
)
from helpdesk.config import ActionType, AuditAction, NotificationKind, VALID_TRIGGERS
from helpdesk.core import (
    ActionFailedException, ApplicationException,
    ResourceNotFoundException, ValidationException,
)
from helpdesk.shared.domain import AuditEntry, NotificationRequest, TicketMutation, TicketSnapshot, utcnow
from helpdesk.shared.ports import IAuditLog, INotificationQueue, ITicketGateway
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IAutomationRuleRepository(ABC):
    """Interface for automation rule data access."""

    @abstractmethod
    async def list(
        self,
        trigger: Optional[str] = None,
        active_only: bool = False
    ) -> List[AutomationRule]:
        """List rules, optionally filtered by trigger and active flag."""

    @abstractmethod
    async def get(self, rule_id: int) -> Optional[AutomationRule]:
        """Get rule by id."""

    @abstractmethod
    async def create(self, rule: AutomationRule) -> AutomationRule:
        """Create a rule; the store assigns the id."""

    @abstractmethod
    async def update(self, rule: AutomationRule) -> AutomationRule:
        """Replace an existing rule."""

    @abstractmethod
    async def delete(self, rule_id: int) -> bool:
        """Delete a rule. Returns False if it did not exist."""


# ========== Action Execution ==========

# Ticket field changed by each mutating action type
MUTATION_FIELDS: Dict[str, str] = {
    ActionType.ASSIGN_DEPARTMENT: "departmentId",
    ActionType.ASSIGN_USER: "assignedToId",
    ActionType.SET_PRIORITY: "priority",
    ActionType.SET_STATUS: "status",
    ActionType.ADD_TAG: "tags",
}

# Snapshot attribute carried forward after a successful mutation
SNAPSHOT_FIELDS: Dict[str, str] = {
    ActionType.ASSIGN_DEPARTMENT: "department_id",
    ActionType.ASSIGN_USER: "assigned_to_id",
    ActionType.SET_PRIORITY: "priority",
    ActionType.SET_STATUS: "status",
}


class ActionExecutor:
    """
    Applies one action to one ticket.

    Best effort: every failure is turned into a failed ``ActionResult``;
    nothing propagates to the caller. Each application is audited with
    its old and new value.
    """

    def __init__(
        self,
        ticket_gateway: ITicketGateway,
        notification_queue: INotificationQueue,
        audit_log: IAuditLog
    ):
        self._gateway = ticket_gateway
        self._notifications = notification_queue
        self._audit_log = audit_log

    async def apply(
        self,
        action: Action,
        snapshot: TicketSnapshot,
        rule_id: int
    ) -> ActionResult:
        """
        Apply an action.

        Args:
            action: The action to apply
            snapshot: Ticket the action targets
            rule_id: Rule that produced the action (for audit)

        Returns:
            ActionResult with ok/error
        """
        try:
            params = parse_action_params(action)
        except ValueError as e:
            logger.warning(
                "Malformed action skipped",
                extra={
                    "ticket_id": snapshot.ticket_id,
                    "rule_id": rule_id,
                    "action_type": action.type,
                    "error": str(e),
                }
            )
            return ActionResult(
                rule_id=rule_id,
                action_type=action.type,
                ok=False,
                error=f"malformed action: {action.type}",
                skipped=True,
            )

        try:
            if action.type == ActionType.SEND_NOTIFICATION:
                result = self._enqueue_notification(params, snapshot, rule_id)
            else:
                result = await self._mutate(action.type, params, snapshot, rule_id)
        except ApplicationException as e:
            logger.warning(
                "Automation action failed",
                extra={
                    "ticket_id": snapshot.ticket_id,
                    "rule_id": rule_id,
                    "action_type": action.type,
                    "error": e.message,
                }
            )
            result = ActionResult(
                rule_id=rule_id, action_type=action.type, ok=False, error=e.message
            )
        except Exception as e:
            logger.exception(
                "Unexpected error applying automation action",
                extra={"ticket_id": snapshot.ticket_id, "rule_id": rule_id, "action_type": action.type}
            )
            result = ActionResult(
                rule_id=rule_id, action_type=action.type, ok=False, error=str(e) or type(e).__name__
            )

        await self._audit(result, snapshot.ticket_id)
        return result

    async def _mutate(
        self,
        action_type: str,
        params: Any,
        snapshot: TicketSnapshot,
        rule_id: int
    ) -> ActionResult:
        field = MUTATION_FIELDS[action_type]
        value = {
            ActionType.ASSIGN_DEPARTMENT: lambda p: p.department_id,
            ActionType.ASSIGN_USER: lambda p: p.user_id,
            ActionType.SET_PRIORITY: lambda p: p.priority,
            ActionType.SET_STATUS: lambda p: p.status,
            ActionType.ADD_TAG: lambda p: p.tag,
        }[action_type](params)

        outcome = await self._gateway.apply_mutation(
            TicketMutation(ticket_id=snapshot.ticket_id, field=field, value=value)
        )
        logger.info(
            "Automation action applied",
            extra={"ticket_id": snapshot.ticket_id, "rule_id": rule_id, "action_type": action_type}
        )
        return ActionResult(
            rule_id=rule_id,
            action_type=action_type,
            ok=True,
            old_value=outcome.old_value,
            new_value=outcome.new_value if outcome.new_value is not None else value,
        )

    def _enqueue_notification(
        self,
        params: Any,
        snapshot: TicketSnapshot,
        rule_id: int
    ) -> ActionResult:
        recipient = self._resolve_recipient(params.recipient, snapshot)
        accepted = self._notifications.enqueue(NotificationRequest(
            kind=NotificationKind.AUTOMATION,
            ticket_id=snapshot.ticket_id,
            title=f"Automation: {params.template}",
            message=f"[#{snapshot.ticket_id}] {snapshot.subject}",
            recipient=recipient,
            template=params.template,
            data={"ruleId": rule_id, "ticketId": snapshot.ticket_id},
        ))
        return ActionResult(
            rule_id=rule_id,
            action_type=ActionType.SEND_NOTIFICATION,
            ok=accepted,
            error=None if accepted else "notification dropped",
            new_value={"template": params.template, "recipient": recipient},
        )

    @staticmethod
    def _resolve_recipient(recipient: str, snapshot: TicketSnapshot) -> str:
        if recipient == "requester":
            return snapshot.requester_email
        if recipient == "assignee":
            if snapshot.assigned_to_id is None:
                raise ActionFailedException(
                    ActionType.SEND_NOTIFICATION, snapshot.ticket_id, "ticket has no assignee"
                )
            return f"user:{snapshot.assigned_to_id}"
        return recipient

    async def _audit(self, result: ActionResult, ticket_id: int) -> None:
        field = MUTATION_FIELDS.get(result.action_type, result.action_type)
        await self._audit_log.record(AuditEntry(
            action=AuditAction.AUTOMATION_ACTION,
            entity="ticket",
            entity_id=ticket_id,
            old_value={"field": field, "value": result.old_value},
            new_value={
                "field": field,
                "value": result.new_value,
                "rule_id": result.rule_id,
                "ok": result.ok,
                "error": result.error,
            },
        ))


class RuleEngine:
    """
    Runs matched rules for one event.

    All actions of all matched rules are applied in order before ``run``
    returns. Conflicting actions resolve as last-applied-wins.
    """

    def __init__(self, executor: ActionExecutor):
        self._executor = executor

    async def run(
        self,
        trigger: str,
        snapshot: TicketSnapshot,
        rules: List[AutomationRule],
        now: Optional[datetime] = None
    ) -> EngineRun:
        """
        Match and execute rules against a ticket.

        Args:
            trigger: The event trigger
            snapshot: Ticket snapshot taken when the event was handled
                (matching uses it as taken; later actions see earlier
                successful mutations)
            rules: Rule set sourced fresh by the caller

        Returns:
            EngineRun with the matched rules and one result per action
        """
        run = EngineRun(trigger=trigger, ticket_id=snapshot.ticket_id)
        run.matched = RuleMatcher.match(trigger, rules, snapshot, now)

        current = snapshot
        for matched in run.matched:
            for action in matched.actions:
                result = await self._executor.apply(action, current, matched.rule_id)
                run.results.append(result)
                if result.ok and result.action_type in SNAPSHOT_FIELDS:
                    current = replace(current, **{SNAPSHOT_FIELDS[result.action_type]: result.new_value})

        if run.matched:
            logger.info(
                "Automation rules executed",
                extra={
                    "ticket_id": snapshot.ticket_id,
                    "trigger": trigger,
                    "matched_rule_ids": run.matched_rule_ids,
                    "failed_actions": len(run.failures),
                }
            )
        return run


# ========== Rule Administration ==========

class AutomationRuleService:
    """
    Admin-facing CRUD over automation rules.

    Rules are validated here, at save time, so that evaluation-time
    validation is only a fallback.
    """

    def __init__(
        self,
        rule_repository: IAutomationRuleRepository,
        audit_log: IAuditLog
    ):
        self._rules = rule_repository
        self._audit_log = audit_log

    async def list_rules(
        self,
        trigger: Optional[str] = None,
        active_only: bool = False
    ) -> List[AutomationRule]:
        """List rules in execution order."""
        rules = await self._rules.list(trigger=trigger, active_only=active_only)
        return sorted(rules, key=lambda rule: rule.sort_key)

    async def get_rule(self, rule_id: int) -> AutomationRule:
        """Get a rule or raise ResourceNotFoundException."""
        rule = await self._rules.get(rule_id)
        if rule is None:
            raise ResourceNotFoundException("AutomationRule", str(rule_id))
        return rule

    async def create_rule(self, rule: AutomationRule, actor_id: Optional[int] = None) -> AutomationRule:
        """Validate and store a new rule."""
        self.validate(rule)
        now = utcnow()
        created = await self._rules.create(
            replace(rule, created_by=actor_id, created_at=now, updated_at=now)
        )
        await self._record(AuditAction.RULE_CREATE, created.id, None, created.to_dict(), actor_id)
        logger.info("Automation rule created", extra={"rule_id": created.id, "actor_id": actor_id})
        return created

    async def update_rule(
        self,
        rule_id: int,
        changes: Dict[str, Any],
        actor_id: Optional[int] = None
    ) -> AutomationRule:
        """
        Apply a partial update.

        Args:
            rule_id: Rule to change
            changes: Entity attribute names mapped to new values
        """
        current = await self.get_rule(rule_id)
        allowed = {"name", "description", "trigger", "conditions", "actions", "is_active", "priority"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationException(f"Unknown rule attributes: {sorted(unknown)}")

        updated = replace(current, **changes, updated_at=utcnow())
        self.validate(updated)
        stored = await self._rules.update(updated)

        action = AuditAction.RULE_TOGGLE if set(changes) == {"is_active"} else AuditAction.RULE_UPDATE
        await self._record(action, rule_id, current.to_dict(), stored.to_dict(), actor_id)
        return stored

    async def set_active(self, rule_id: int, is_active: bool, actor_id: Optional[int] = None) -> AutomationRule:
        """Soft-enable or soft-disable a rule."""
        return await self.update_rule(rule_id, {"is_active": is_active}, actor_id)

    async def delete_rule(self, rule_id: int, actor_id: Optional[int] = None) -> None:
        """Delete a rule."""
        current = await self.get_rule(rule_id)
        await self._rules.delete(rule_id)
        await self._record(AuditAction.RULE_DELETE, rule_id, current.to_dict(), None, actor_id)

    async def preview(
        self,
        trigger: str,
        snapshot: TicketSnapshot,
        now: Optional[datetime] = None
    ) -> List[MatchedRule]:
        """Match the active rules without executing anything."""
        rules = await self._rules.list(trigger=trigger, active_only=True)
        return RuleMatcher.match(trigger, rules, snapshot, now)

    @staticmethod
    def validate(rule: AutomationRule) -> None:
        """
        Reject rules the engine could never evaluate or execute.

        Raises:
            ValidationException: with one message per problem in details
        """
        problems: List[str] = []

        if not rule.name or not rule.name.strip():
            problems.append("name must not be blank")
        if rule.trigger not in VALID_TRIGGERS:
            problems.append(f"unknown trigger '{rule.trigger}'")
        if rule.priority < 0:
            problems.append("priority must be >= 0")
        if not rule.actions:
            problems.append("at least one action is required")

        for index, condition in enumerate(rule.conditions):
            problem = condition_problem(condition)
            if problem:
                problems.append(f"conditions[{index}]: {problem}")

        for index, action in enumerate(rule.actions):
            try:
                parse_action_params(action)
            except ValueError as e:
                problems.append(f"actions[{index}]: invalid params for '{action.type}': {e}")

        if problems:
            raise ValidationException("Invalid automation rule", {"errors": problems})

    async def _record(
        self,
        action: str,
        rule_id: int,
        old_value: Optional[dict],
        new_value: Optional[dict],
        actor_id: Optional[int]
    ) -> None:
        await self._audit_log.record(AuditEntry(
            action=action,
            entity="automation_rule",
            entity_id=rule_id,
            old_value=old_value,
            new_value=new_value,
            actor_id=actor_id,
        ))
