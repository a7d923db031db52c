"""
Concurrency Primitives
======================

Per-ticket serialization and single-flight guards for asyncio.

Usage:
    serializer = TicketSerializer(max_concurrency=8)
    await serializer.run(ticket_id, engine_step, ticket_id)

    guard = SingleFlight("sla_sweep")
    outcome = await guard.run(monitor.sweep)
    if outcome.skipped:
        ...
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class SerializerClosedError(RuntimeError):
    """Raised when work is submitted after drain() started."""


class TicketSerializer:
    """
    Runs mutating work strictly one-at-a-time per ticket.

    Work for distinct tickets runs in parallel up to ``max_concurrency``.
    Locks are reference counted and dropped once no caller holds or waits
    on them, so the lock table only grows with live tickets.
    """

    def __init__(self, max_concurrency: int = 8):
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._locks: Dict[int, asyncio.Lock] = {}
        self._refcounts: Dict[int, int] = {}
        self._inflight = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._closing = False

    @property
    def inflight(self) -> int:
        """Number of submitted units that have not finished yet."""
        return self._inflight

    @property
    def tracked_tickets(self) -> int:
        """Number of tickets that currently own a lock."""
        return len(self._locks)

    async def run(
        self,
        ticket_id: int,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any
    ) -> T:
        """
        Run ``func(*args, **kwargs)`` under the ticket's lock.

        The ticket lock is taken before a concurrency slot, so a caller
        queued behind another unit of the same ticket does not hold a slot.
        """
        if self._closing:
            raise SerializerClosedError("serializer is draining")

        lock = self._checkout(ticket_id)
        self._inflight += 1
        self._idle.clear()
        try:
            async with lock:
                async with self._semaphore:
                    return await func(*args, **kwargs)
        finally:
            self._checkin(ticket_id)
            self._inflight -= 1
            if self._inflight == 0:
                self._idle.set()

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Stop accepting work and wait for in-flight units.

        Returns:
            True if everything finished before the timeout
        """
        self._closing = True
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(
                "Serializer drain timed out",
                extra={"inflight": self._inflight, "timeout": timeout}
            )
            return False

    def _checkout(self, ticket_id: int) -> asyncio.Lock:
        lock = self._locks.get(ticket_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[ticket_id] = lock
        self._refcounts[ticket_id] = self._refcounts.get(ticket_id, 0) + 1
        return lock

    def _checkin(self, ticket_id: int) -> None:
        remaining = self._refcounts[ticket_id] - 1
        if remaining:
            self._refcounts[ticket_id] = remaining
            return
        del self._refcounts[ticket_id]
        del self._locks[ticket_id]


@dataclass
class FlightOutcome:
    """Result of a single-flight run."""
    skipped: bool
    result: Any = None


class SingleFlight:
    """
    Cooperative reentrancy guard for periodic jobs.

    A tick that arrives while the previous run is still executing is
    skipped, not queued.
    """

    def __init__(self, name: str):
        self.name = name
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if a run is in progress."""
        return self._running

    async def run(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any
    ) -> FlightOutcome:
        """Run ``func`` unless a previous run is still in progress."""
        if self._running:
            logger.info("Job still running, skipping tick", extra={"job": self.name})
            return FlightOutcome(skipped=True)

        self._running = True
        try:
            return FlightOutcome(skipped=False, result=await func(*args, **kwargs))
        finally:
            self._running = False
