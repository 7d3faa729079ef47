"""Best-effort notification about new responses.

Intake publishes a `ResponseSummary` and returns. A consumer task, started
with the application, sends it through the notification channel. Whatever
happens on that side (no configuration, Telegram errors, timeouts) is logged
and dropped; it never reaches the respondent.
"""
# surveydesk/services/notification.py
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from surveydesk.services.telegram import TextChannel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResponseSummary:
    survey_id: str
    survey_title: str
    response_id: str
    name: str
    phone: str
    answer_count: int
    submitted_at: datetime

    def to_message(self) -> str:
        return (
            f"📝 New response to «{self.survey_title}»\n"
            f"Name: {self.name}\n"
            f"Phone: {self.phone}\n"
            f"Answers: {self.answer_count}\n"
            f"Submitted: {self.submitted_at:%Y-%m-%d %H:%M:%S}"
        )


class NotificationDispatcher:
    """Queue of response summaries drained by one background consumer."""

    def __init__(self, channel: Optional[TextChannel], timeout: float, max_pending: int = 1000):
        self.channel = channel
        self.timeout = timeout
        self.max_pending = max_pending
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self.max_pending)
        self._task = asyncio.create_task(self._consume())
        if self.channel is None or not self.channel.configured:
            logger.warning("Notification channel is not configured. New responses will not be announced.")
        logger.info("Notification dispatcher started")

    async def stop(self, grace: float = 5.0) -> None:
        if not self.running:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=grace)
        except asyncio.TimeoutError:
            logger.warning("Notification dispatcher stopped with %d pending summary(ies)", self._queue.qsize())
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Notification dispatcher stopped")

    async def drain(self) -> None:
        """Wait until every published summary has been handled."""
        if self._queue is not None:
            await self._queue.join()

    def notify(self, summary: ResponseSummary) -> None:
        """Publish `summary` without waiting. Safe to call from any thread."""
        loop = self._loop
        if loop is None or loop.is_closed() or not self.running:
            logger.warning("Notification dispatcher is not running. Summary for response %s dropped.", summary.response_id)
            return
        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None
        if running_loop is loop:
            # on the loop thread: queued before notify returns, so drain() sees it
            self._enqueue(summary)
            return
        try:
            loop.call_soon_threadsafe(self._enqueue, summary)
        except RuntimeError as e:
            logger.warning("Could not publish summary for response %s: %s", summary.response_id, e)

    def _enqueue(self, summary: ResponseSummary) -> None:
        try:
            self._queue.put_nowait(summary)
        except asyncio.QueueFull:
            logger.warning("Notification queue is full. Summary for response %s dropped.", summary.response_id)

    async def _consume(self) -> None:
        while True:
            summary = await self._queue.get()
            try:
                await self._deliver(summary)
            finally:
                self._queue.task_done()

    async def _deliver(self, summary: ResponseSummary) -> None:
        if self.channel is None or not self.channel.configured:
            logger.debug("Notification skipped for response %s: channel not configured", summary.response_id)
            return
        try:
            await asyncio.wait_for(self.channel.send_message(summary.to_message()), timeout=self.timeout)
            logger.info("Notification sent for response %s (survey %s)", summary.response_id, summary.survey_id)
        except asyncio.TimeoutError:
            logger.warning("Notification for response %s timed out after %.1fs", summary.response_id, self.timeout)
        except Exception as e:
            logger.error("Failed to send notification for response %s: %s", summary.response_id, e)
