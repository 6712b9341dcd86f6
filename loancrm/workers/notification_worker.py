import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Deque, List, Optional

from loancrm.schemas.customer_schema import CustomerRecord
from loancrm.services.realtime import NEW_CUSTOMER_EVENT

logger = logging.getLogger(__name__)


@dataclass
class RegistrationNotice:
    customer: CustomerRecord


@dataclass
class NotificationFailure:
    step: str
    customer_id: str
    error: str
    at: datetime = field(default_factory=datetime.utcnow)


class NotificationWorker:
    """Runs post-registration notifications off the request path.

    ``submit`` never blocks and never raises. A single background task drains
    the queue; each step (confirmation email, realtime event) fails on its own,
    is logged, and is recorded in ``recent_errors``.
    """

    def __init__(
        self,
        notifier,
        hub=None,
        maxsize: int = 100,
        error_history: int = 50,
        on_error: Optional[Callable[[NotificationFailure], None]] = None,
    ):
        self.notifier = notifier
        self.hub = hub
        self.queue: "asyncio.Queue[RegistrationNotice]" = asyncio.Queue(maxsize=maxsize)
        self.recent_errors: Deque[NotificationFailure] = deque(maxlen=error_history)
        self.on_error = on_error
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="notification-worker")
        logger.info("Notification worker started")

    async def stop(self, timeout: float = 5.0) -> None:
        """Give queued notices up to ``timeout`` seconds to finish, then stop."""
        if self._task is None:
            return
        try:
            await asyncio.wait_for(self.queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Notification worker stopped with %s notice(s) pending", self.queue.qsize())
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Notification worker stopped")

    def submit(self, notice: RegistrationNotice) -> bool:
        try:
            self.queue.put_nowait(notice)
        except asyncio.QueueFull:
            logger.warning("Notification queue full; dropping notice for customer %s", notice.customer.id)
            return False
        return True

    async def process(self, notice: RegistrationNotice) -> List[NotificationFailure]:
        failures: List[NotificationFailure] = []
        customer = notice.customer

        try:
            await self.notifier.send_registration_confirmation(customer)
        except Exception as e:
            failures.append(self._record("email", customer, e))

        if self.hub is not None:
            try:
                await self.hub.broadcast(NEW_CUSTOMER_EVENT, customer.to_response())
            except Exception as e:
                failures.append(self._record("realtime", customer, e))

        return failures

    async def _run(self) -> None:
        while True:
            notice = await self.queue.get()
            try:
                await self.process(notice)
            except Exception:
                # process() isolates each step; anything else must not kill the loop
                logger.exception("Notification worker failed on customer %s", notice.customer.id)
            finally:
                self.queue.task_done()

    def _record(self, step: str, customer: CustomerRecord, error: Exception) -> NotificationFailure:
        failure = NotificationFailure(step=step, customer_id=customer.id, error=str(error))
        logger.error("Registration %s notification failed for customer %s: %s", step, customer.id, error)
        self.recent_errors.append(failure)
        if self.on_error is not None:
            try:
                self.on_error(failure)
            except Exception:
                logger.exception("Notification error callback failed")
        return failure
