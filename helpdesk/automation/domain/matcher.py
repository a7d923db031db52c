"""
Rule Matching
=============

Selects the rules that fire for one event.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from helpdesk.automation.domain.conditions import ConditionEvaluator
from helpdesk.automation.domain.entities import AutomationRule, MatchedRule
from helpdesk.shared.domain import TicketSnapshot, utcnow


class RuleMatcher:
    """
    Pure rule selection.

    A rule matches iff it is active, listens to the trigger and all of its
    conditions hold (conjunction). Matched rules come back ordered by
    priority ascending, then id ascending.
    """

    @staticmethod
    def match(
        trigger: str,
        rules: Iterable[AutomationRule],
        snapshot: TicketSnapshot,
        now: Optional[datetime] = None
    ) -> List[MatchedRule]:
        """
        Match rules against a ticket snapshot.

        Args:
            trigger: The event trigger
            rules: Candidate rules in any order
            snapshot: Ticket being evaluated
            now: Evaluation time shared by every condition of this call

        Returns:
            Ordered list of matched rules
        """
        now = now or utcnow()
        candidates = sorted(
            (rule for rule in rules if rule.is_active and rule.trigger == trigger),
            key=lambda rule: rule.sort_key,
        )

        matched: List[MatchedRule] = []
        for rule in candidates:
            if all(ConditionEvaluator.matches(c, snapshot, now) for c in rule.conditions):
                matched.append(MatchedRule(rule=rule, position=len(matched)))
        return matched
