"""
Notification Outbox
===================

Fire-and-forget notification delivery to the ticket service.

``NotificationOutbox.enqueue`` never blocks: requests go into a bounded
queue drained by a single background worker. A full queue drops the
request (logged). Delivery is attempted once, behind a circuit breaker.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from helpdesk.shared.domain import NotificationRequest
from helpdesk.shared.ports import INotificationQueue
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock=time.monotonic
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: Optional[float] = None

    @property
    def state(self) -> str:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            if self._clock() - self._opened_at >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        """Check if request should be allowed."""
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        """Record successful request."""
        self._failure_count = 0
        self._opened_at = None
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        """Record failed request; a failed half-open probe reopens at once."""
        self._failure_count += 1
        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            self._opened_at = self._clock()
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class INotificationSender(ABC):
    """Delivers one notification request. Returns True on success."""

    @abstractmethod
    async def send(self, request: NotificationRequest) -> bool:
        ...


class HttpNotificationSender(INotificationSender):
    """
    POSTs notification requests to the ticket service.

    Single attempt; failures are logged and counted by the breaker.
    """

    def __init__(self, client: httpx.AsyncClient, circuit_breaker: Optional[CircuitBreaker] = None):
        self._client = client
        self._circuit_breaker = circuit_breaker or CircuitBreaker(failure_threshold=5, recovery_timeout=60)

    @property
    def circuit_state(self) -> str:
        return self._circuit_breaker.state

    async def send(self, request: NotificationRequest) -> bool:
        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Circuit breaker open, skipping notification",
                extra={"ticket_id": request.ticket_id, "kind": request.kind}
            )
            return False

        try:
            response = await self._client.post("/notifications", json=request.to_dict())
        except httpx.HTTPError as e:
            self._circuit_breaker.record_failure()
            logger.error(
                "Notification delivery failed",
                extra={"ticket_id": request.ticket_id, "kind": request.kind, "error": str(e)}
            )
            return False

        if response.is_success:
            self._circuit_breaker.record_success()
            logger.info(
                "Notification delivered",
                extra={"ticket_id": request.ticket_id, "kind": request.kind}
            )
            return True

        self._circuit_breaker.record_failure()
        logger.warning(
            "Ticket service rejected notification",
            extra={"ticket_id": request.ticket_id, "kind": request.kind, "status_code": response.status_code}
        )
        return False


class NotificationOutbox(INotificationQueue):
    """
    Bounded in-memory queue with one delivery worker.

    Must be started from inside the running event loop.
    """

    def __init__(self, sender: INotificationSender, maxsize: int = 1000):
        self._sender = sender
        self._queue: "asyncio.Queue[NotificationRequest]" = asyncio.Queue(maxsize=maxsize)
        self._worker: Optional[asyncio.Task] = None
        self.delivered = 0
        self.failed = 0
        self.dropped = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def enqueue(self, request: NotificationRequest) -> bool:
        try:
            self._queue.put_nowait(request)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Notification queue full, request dropped",
                extra={"ticket_id": request.ticket_id, "kind": request.kind, "dropped": self.dropped}
            )
            return False
        return True

    def start(self) -> None:
        if self.is_running:
            return
        self._worker = asyncio.create_task(self._run(), name="notification-outbox")
        logger.info("Notification outbox started", extra={"maxsize": self._queue.maxsize})

    async def stop(self, timeout: float = 10.0) -> None:
        """Deliver what is queued (up to ``timeout``), then stop the worker."""
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Notification outbox stopped with pending requests", extra={"pending": self.pending})

        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info(
            "Notification outbox stopped",
            extra={"delivered": self.delivered, "failed": self.failed, "dropped": self.dropped}
        )

    async def _run(self) -> None:
        while True:
            request = await self._queue.get()
            try:
                if await self._sender.send(request):
                    self.delivered += 1
                else:
                    self.failed += 1
            except Exception:
                self.failed += 1
                logger.exception(
                    "Unexpected error delivering notification",
                    extra={"ticket_id": request.ticket_id, "kind": request.kind}
                )
            finally:
                self._queue.task_done()
