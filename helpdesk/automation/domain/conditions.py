"""
Condition Evaluation
====================

Pure predicate evaluation of a single condition against a ticket snapshot.

Comparison rules:
- string fields are trimmed on both sides
- ``equals`` / ``not_equals`` compare case-sensitively
- ``contains`` / ``starts_with`` / ``ends_with`` fold case
- numeric fields are parsed from the condition value; a value that is not a
  number never matches
- an unknown field/operator combination never matches and logs a warning
"""

from datetime import datetime
from typing import Optional

from helpdesk.config import ConditionField, ConditionOperator, STRING_FIELDS
from helpdesk.automation.domain.entities import Condition
from helpdesk.automation.domain.value_objects import condition_problem, parse_number
from helpdesk.shared.domain import TicketSnapshot, as_utc, utcnow
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ConditionEvaluator:
    """
    Stateless condition evaluator.

    Never raises: anything it cannot evaluate is simply not a match.
    """

    @staticmethod
    def matches(
        condition: Condition,
        snapshot: TicketSnapshot,
        now: Optional[datetime] = None
    ) -> bool:
        """
        Evaluate one condition.

        Args:
            condition: The predicate
            snapshot: Ticket being evaluated
            now: Evaluation time for derived fields (defaults to now, UTC)

        Returns:
            True if the condition holds
        """
        problem = condition_problem(condition)
        if problem:
            logger.warning(
                "Condition cannot be evaluated",
                extra={
                    "ticket_id": snapshot.ticket_id,
                    "field": condition.field,
                    "operator": condition.operator,
                    "reason": problem,
                }
            )
            return False

        if condition.field in STRING_FIELDS:
            return ConditionEvaluator._match_string(
                condition.operator,
                ConditionEvaluator._string_value(condition.field, snapshot),
                condition.value,
            )

        actual = ConditionEvaluator._numeric_value(condition.field, snapshot, now)
        expected = parse_number(
            condition.value,
            integer=condition.field == ConditionField.DEPARTMENT_ID
        )
        return ConditionEvaluator._match_number(condition.operator, actual, expected)

    @staticmethod
    def _string_value(field: str, snapshot: TicketSnapshot) -> str:
        value = {
            ConditionField.SUBJECT: snapshot.subject,
            ConditionField.PRIORITY: snapshot.priority,
            ConditionField.STATUS: snapshot.status,
            ConditionField.REQUESTER_EMAIL: snapshot.requester_email,
        }[field]
        return value or ""

    @staticmethod
    def _numeric_value(
        field: str,
        snapshot: TicketSnapshot,
        now: Optional[datetime]
    ) -> Optional[float]:
        if field == ConditionField.DEPARTMENT_ID:
            return snapshot.department_id

        # hoursSinceUpdate; a ticket never updated counts from creation
        reference = snapshot.updated_at or snapshot.created_at
        elapsed = (as_utc(now) or utcnow()) - reference
        return elapsed.total_seconds() / 3600

    @staticmethod
    def _match_string(operator: str, actual: str, expected: str) -> bool:
        actual = actual.strip()
        expected = expected.strip()

        if operator == ConditionOperator.EQUALS:
            return actual == expected
        if operator == ConditionOperator.NOT_EQUALS:
            return actual != expected

        actual = actual.casefold()
        expected = expected.casefold()
        if operator == ConditionOperator.CONTAINS:
            return expected in actual
        if operator == ConditionOperator.STARTS_WITH:
            return actual.startswith(expected)
        if operator == ConditionOperator.ENDS_WITH:
            return actual.endswith(expected)
        return False

    @staticmethod
    def _match_number(
        operator: str,
        actual: Optional[float],
        expected: Optional[float]
    ) -> bool:
        if expected is None:
            return False
        if actual is None:
            # A ticket without a department is "not equal" to any department
            return operator == ConditionOperator.NOT_EQUALS

        if operator == ConditionOperator.EQUALS:
            return actual == expected
        if operator == ConditionOperator.NOT_EQUALS:
            return actual != expected
        if operator == ConditionOperator.GREATER_THAN:
            return actual > expected
        if operator == ConditionOperator.LESS_THAN:
            return actual < expected
        return False
