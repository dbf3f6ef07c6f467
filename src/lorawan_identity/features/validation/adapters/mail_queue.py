"""Background mail dispatch.

Requests never wait for mail delivery: messages go to a bounded queue that
a single worker task drains. When the queue is full the message is logged
and dropped, and delivery errors are logged and never reach the request
that queued the message.
"""

import asyncio
import logging
from typing import Optional

from ..entities.protocols import MailMessage, MailSender

logger = logging.getLogger(__name__)


class LoggingMailSender(MailSender):
    """Mail sender that only logs messages, for development setups."""

    async def send(self, message: MailMessage) -> None:
        logger.info(f"Mail `{message.template}` to {message.recipient}: {message.subject}")


class EmailQueue:
    """Bounded queue of outgoing mail with one worker task."""

    def __init__(self, sender: MailSender, queue_size: int = 1024):
        self.sender = sender
        self.queue_size = queue_size
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    def _ensure_queue(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue(maxsize=self.queue_size)
        return self._queue

    async def start(self) -> None:
        """Start the worker task."""
        self._ensure_queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="email-queue-worker")
            logger.debug("Started email queue worker")

    async def stop(self, drain: bool = True) -> None:
        """Stop the worker, optionally after delivering the queued messages."""
        if self._worker is None:
            return
        if drain and self._queue is not None:
            await self._queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.debug("Stopped email queue worker")

    def enqueue(self, message: MailMessage) -> bool:
        """Queue a message without waiting.

        Returns:
            Whether the message was queued
        """
        queue = self._ensure_queue()
        try:
            queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(f"Email queue full, dropped `{message.template}` mail to {message.recipient}")
            return False
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._run(), name="email-queue-worker")
        return True

    async def join(self) -> None:
        """Wait until every queued message has been handled."""
        if self._queue is not None:
            await self._queue.join()

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def _run(self) -> None:
        queue = self._ensure_queue()
        while True:
            message = await queue.get()
            try:
                await self.sender.send(message)
                logger.debug(f"Sent `{message.template}` mail to {message.recipient}")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Failed to send `{message.template}` mail to {message.recipient}: {e}")
            finally:
                queue.task_done()
