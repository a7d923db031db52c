"""
Trigger Dispatcher
==================

Internal entry point for ticket events and the hourly sweep.

Every event for a ticket runs inside that ticket's serializer slot:
snapshot fetch, rule execution and SLA tracking writes for one ticket
never interleave with another event for the same ticket.
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional

from helpdesk.automation.application import IAutomationRuleRepository, RuleEngine
from helpdesk.automation.domain import EngineRun
from helpdesk.config import Trigger, VALID_TRIGGERS
from helpdesk.shared.concurrency import SerializerClosedError, TicketSerializer
from helpdesk.shared.domain import TicketSnapshot
from helpdesk.shared.ports import ITicketGateway
from helpdesk.shared.infrastructure.logging import get_logger, log_latency
from helpdesk.sla.application import SLATrackingService

logger = get_logger(__name__)

# Tickets submitted to the serializer at once during an hourly sweep
HOURLY_BATCH_SIZE = 100


class DispatchStatus(str):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class DispatchResult:
    """Outcome of one event. Produced for every event, never raised."""
    trigger: str
    ticket_id: int
    status: str
    reason: Optional[str] = None
    run: Optional[EngineRun] = None
    sla_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "trigger": self.trigger,
            "ticket_id": self.ticket_id,
            "status": self.status,
            "reason": self.reason,
            "matched_rule_ids": self.run.matched_rule_ids if self.run else [],
            "results": [r.to_dict() for r in self.run.results] if self.run else [],
            "sla_error": self.sla_error,
        }


@dataclass
class HourlyCheckSummary:
    tickets: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    actions_failed: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "tickets": self.tickets,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "actions_failed": self.actions_failed,
            "errors": self.errors,
        }


class TriggerDispatcher:
    """
    Routes a (trigger, ticket) event through the rule engine and SLA tracking.

    Nothing here may fail the ticket operation that produced the event:
    ``on_event`` always returns a ``DispatchResult``.
    """

    def __init__(
        self,
        rule_repository: IAutomationRuleRepository,
        engine: RuleEngine,
        sla_tracking_service: SLATrackingService,
        ticket_gateway: ITicketGateway,
        serializer: TicketSerializer
    ):
        self._rules = rule_repository
        self._engine = engine
        self._sla = sla_tracking_service
        self._gateway = ticket_gateway
        self._serializer = serializer

    async def on_event(self, trigger: str, ticket_id: int) -> DispatchResult:
        """
        Handle one ticket event.

        Returns once every matched action has been applied (or has failed).
        """
        if trigger not in VALID_TRIGGERS:
            logger.warning("Unknown trigger ignored", extra={"trigger": trigger, "ticket_id": ticket_id})
            return DispatchResult(trigger, ticket_id, DispatchStatus.SKIPPED, reason="unknown trigger")

        try:
            return await self._serializer.run(ticket_id, self._handle, trigger, ticket_id)
        except SerializerClosedError:
            logger.warning("Event rejected during shutdown", extra={"trigger": trigger, "ticket_id": ticket_id})
            return DispatchResult(trigger, ticket_id, DispatchStatus.SKIPPED, reason="shutting down")
        except Exception as e:
            logger.exception("Automation dispatch failed", extra={"trigger": trigger, "ticket_id": ticket_id})
            return DispatchResult(trigger, ticket_id, DispatchStatus.FAILED, reason=str(e) or type(e).__name__)

    async def hourly_check(self) -> HourlyCheckSummary:
        """Run HOURLY_CHECK once for every open ticket."""
        summary = HourlyCheckSummary()
        try:
            ticket_ids = await self._gateway.list_open_ticket_ids()
        except Exception as e:
            logger.exception("Hourly check could not enumerate open tickets")
            summary.errors.append(str(e) or type(e).__name__)
            return summary

        summary.tickets = len(ticket_ids)
        with log_latency(logger, "hourly_check", job="hourly_check", tickets=len(ticket_ids)):
            for start in range(0, len(ticket_ids), HOURLY_BATCH_SIZE):
                batch = ticket_ids[start:start + HOURLY_BATCH_SIZE]
                results = await asyncio.gather(
                    *(self.on_event(Trigger.HOURLY_CHECK, ticket_id) for ticket_id in batch)
                )
                for result in results:
                    if result.status == DispatchStatus.PROCESSED:
                        summary.processed += 1
                        summary.actions_failed += len(result.run.failures) if result.run else 0
                    elif result.status == DispatchStatus.SKIPPED:
                        summary.skipped += 1
                    else:
                        summary.failed += 1
        return summary

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """Stop accepting events and wait for in-flight ones."""
        return await self._serializer.drain(timeout)

    async def _handle(self, trigger: str, ticket_id: int) -> DispatchResult:
        snapshot = await self._gateway.get_snapshot(ticket_id)
        if snapshot is None:
            logger.info("Ticket not found, event skipped", extra={"trigger": trigger, "ticket_id": ticket_id})
            return DispatchResult(trigger, ticket_id, DispatchStatus.SKIPPED, reason="ticket not found")

        # Rules are read fresh for every event
        rules = await self._rules.list(trigger=trigger, active_only=True)
        run = await self._engine.run(trigger, snapshot, rules)

        if run.mutated:
            snapshot = await self._gateway.get_snapshot(ticket_id) or snapshot

        result = DispatchResult(trigger, ticket_id, DispatchStatus.PROCESSED, run=run)
        result.sla_error = await self._track_sla(trigger, snapshot, run)
        return result

    async def _track_sla(self, trigger: str, snapshot: TicketSnapshot, run: EngineRun) -> Optional[str]:
        try:
            if trigger == Trigger.TICKET_CREATED:
                await self._sla.on_ticket_created(snapshot)
            elif trigger == Trigger.TICKET_UPDATED or run.mutated:
                await self._sla.on_ticket_changed(snapshot)
        except Exception as e:
            logger.exception(
                "SLA tracking update failed",
                extra={"trigger": trigger, "ticket_id": snapshot.ticket_id}
            )
            return str(e) or type(e).__name__
        return None
