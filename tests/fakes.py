"""In-memory stand-ins for the ports and repositories."""

import copy
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from helpdesk.automation.application import IAutomationRuleRepository
from helpdesk.automation.domain import Action, AutomationRule, Condition
from helpdesk.core import TicketServiceException
from helpdesk.shared.domain import (
    AuditEntry, MutationOutcome, NotificationRequest, TicketMutation, TicketSnapshot,
)
from helpdesk.shared.ports import IAuditLog, INotificationQueue, ITicketGateway
from helpdesk.sla.application import (
    ISLAPolicyRepository, ISLASettingsProvider, ISLATrackingRepository, SLAStats,
)
from helpdesk.sla.domain import SLAPolicy, SLATracking

T0 = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

MISSING_USER_ID = 9999

_SNAPSHOT_ATTRS = {
    "departmentId": "department_id",
    "assignedToId": "assigned_to_id",
    "priority": "priority",
    "status": "status",
}


def make_snapshot(**overrides) -> TicketSnapshot:
    values = dict(
        ticket_id=1,
        subject="Cannot connect to VPN",
        priority="HIGH",
        department_id=3,
        status="OPEN",
        requester_email="alice@example.com",
        created_at=T0,
    )
    values.update(overrides)
    return TicketSnapshot(**values)


def make_rule(rule_id: int, conditions=(), actions=None, **overrides) -> AutomationRule:
    values = dict(
        id=rule_id,
        name=f"rule {rule_id}",
        trigger="TICKET_CREATED",
        conditions=[Condition(*c) if isinstance(c, tuple) else c for c in conditions],
        actions=actions if actions is not None else [Action("add_tag", {"tag": f"r{rule_id}"})],
    )
    values.update(overrides)
    return AutomationRule(**values)


def make_policy(policy_id: int = 1, department_id: int = 3, priority: str = "HIGH",
                first_response: int = 60, resolution: int = 100, **overrides) -> SLAPolicy:
    return SLAPolicy(
        id=policy_id,
        department_id=department_id,
        priority=priority,
        first_response_minutes=first_response,
        resolution_minutes=resolution,
        **overrides,
    )


class FakeTicketGateway(ITicketGateway):
    """Tickets held in a dict; assigning user 9999 fails like a deleted user."""

    def __init__(self):
        self.tickets: Dict[int, TicketSnapshot] = {}
        self.tags: Dict[int, List[str]] = {}
        self.mutations: List[TicketMutation] = []
        self.fail_listing = False
        self.snapshot_reads = 0

    def add(self, snapshot: TicketSnapshot) -> TicketSnapshot:
        self.tickets[snapshot.ticket_id] = snapshot
        return snapshot

    async def get_snapshot(self, ticket_id: int) -> Optional[TicketSnapshot]:
        self.snapshot_reads += 1
        return self.tickets.get(ticket_id)

    async def list_open_ticket_ids(self) -> List[int]:
        if self.fail_listing:
            raise TicketServiceException("connection refused")
        return sorted(tid for tid, snap in self.tickets.items() if snap.is_open)

    async def apply_mutation(self, mutation: TicketMutation) -> MutationOutcome:
        snapshot = self.tickets.get(mutation.ticket_id)
        if snapshot is None:
            raise TicketServiceException("ticket not found", status_code=404)
        if mutation.field == "assignedToId" and mutation.value == MISSING_USER_ID:
            raise TicketServiceException(f"user {mutation.value} does not exist", status_code=422)

        self.mutations.append(mutation)
        if mutation.field == "tags":
            tags = self.tags.setdefault(mutation.ticket_id, [])
            old = list(tags)
            if mutation.value not in tags:
                tags.append(mutation.value)
            return MutationOutcome(old_value=old, new_value=list(tags))

        attr = _SNAPSHOT_ATTRS[mutation.field]
        old = getattr(snapshot, attr)
        self.tickets[mutation.ticket_id] = replace(snapshot, **{attr: mutation.value})
        return MutationOutcome(old_value=old, new_value=mutation.value)


class FakeNotificationQueue(INotificationQueue):
    def __init__(self, accept: bool = True):
        self.accept = accept
        self.requests: List[NotificationRequest] = []

    def enqueue(self, request: NotificationRequest) -> bool:
        if not self.accept:
            return False
        self.requests.append(request)
        return True

    def kinds(self) -> List[str]:
        return [r.kind for r in self.requests]


class InMemoryAuditLog(IAuditLog):
    def __init__(self):
        self.entries: List[AuditEntry] = []

    async def record(self, entry: AuditEntry) -> None:
        self.entries.append(entry)

    def actions(self) -> List[str]:
        return [e.action for e in self.entries]


class InMemoryRuleRepository(IAutomationRuleRepository):
    def __init__(self, rules=()):
        self.rules: Dict[int, AutomationRule] = {r.id: r for r in rules}
        self.list_calls = 0

    async def list(self, trigger=None, active_only=False) -> List[AutomationRule]:
        self.list_calls += 1
        rules = [
            copy.deepcopy(r) for r in self.rules.values()
            if (trigger is None or r.trigger == trigger) and (not active_only or r.is_active)
        ]
        return sorted(rules, key=lambda r: r.sort_key)

    async def get(self, rule_id: int) -> Optional[AutomationRule]:
        rule = self.rules.get(rule_id)
        return copy.deepcopy(rule) if rule else None

    async def create(self, rule: AutomationRule) -> AutomationRule:
        created = replace(rule, id=max(self.rules, default=0) + 1)
        self.rules[created.id] = created
        return copy.deepcopy(created)

    async def update(self, rule: AutomationRule) -> AutomationRule:
        self.rules[rule.id] = copy.deepcopy(rule)
        return copy.deepcopy(rule)

    async def delete(self, rule_id: int) -> bool:
        return self.rules.pop(rule_id, None) is not None


class InMemoryPolicyRepository(ISLAPolicyRepository):
    def __init__(self, policies=()):
        self.policies: List[SLAPolicy] = list(policies)

    async def find_active(self, department_id: int, priority: str) -> Optional[SLAPolicy]:
        for policy in self.policies:
            if policy.is_active and policy.department_id == department_id and policy.priority == priority:
                return policy
        return None

    async def list(self, department_id=None, priority=None, active_only=False) -> List[SLAPolicy]:
        return [
            p for p in self.policies
            if (department_id is None or p.department_id == department_id)
            and (priority is None or p.priority == priority)
            and (not active_only or p.is_active)
        ]

    async def create(self, policy: SLAPolicy) -> SLAPolicy:
        created = replace(policy, id=len(self.policies) + 1)
        self.policies.append(created)
        return created


class InMemoryTrackingRepository(ISLATrackingRepository):
    """Stores copies, so unsaved changes to an entity are not visible."""

    def __init__(self):
        self.rows: Dict[int, SLATracking] = {}
        self.saves = 0

    async def get(self, ticket_id: int) -> Optional[SLATracking]:
        row = self.rows.get(ticket_id)
        return copy.deepcopy(row) if row else None

    async def create(self, tracking: SLATracking) -> SLATracking:
        assert tracking.ticket_id not in self.rows
        self.rows[tracking.ticket_id] = copy.deepcopy(tracking)
        return copy.deepcopy(tracking)

    async def save(self, tracking: SLATracking) -> SLATracking:
        self.saves += 1
        self.rows[tracking.ticket_id] = copy.deepcopy(tracking)
        return copy.deepcopy(tracking)

    async def list(self, limit: int = 100, offset: int = 0) -> List[SLATracking]:
        rows = sorted(self.rows.values(), key=lambda t: t.ticket_id, reverse=True)
        return [copy.deepcopy(r) for r in rows[offset:offset + limit]]

    async def count(self) -> int:
        return len(self.rows)

    async def list_unbreached_ticket_ids(self) -> List[int]:
        return sorted(
            tid for tid, t in self.rows.items()
            if t.first_response_breached_at is None or t.resolution_breached_at is None
        )

    async def stats(self) -> SLAStats:
        stats = SLAStats(total_tracked=len(self.rows))
        for t in self.rows.values():
            fr = t.first_response_breached_at is not None
            res = t.resolution_breached_at is not None
            stats.first_response_breached += fr
            stats.resolution_breached += res
            stats.total_breached += fr or res
            if (t.first_response_warning_sent_at and not fr) or (t.resolution_warning_sent_at and not res):
                stats.at_risk += 1
        return stats


class StaticSettingsProvider(ISLASettingsProvider):
    def __init__(self, percent: int = 80):
        self.percent = percent
        self.reads = 0

    def get_warning_percent(self) -> int:
        self.reads += 1
        return self.percent
