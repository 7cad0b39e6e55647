import asyncio
import logging
from typing import Optional
from app.services.notification_service import NotificationDispatcher, notification_dispatcher

logger = logging.getLogger(__name__)


class NotificationWorker:
    """Consumes the notification queue for the lifetime of the application"""

    def __init__(self, dispatcher: NotificationDispatcher, stop_timeout: float = 30):
        self.dispatcher = dispatcher
        self.stop_timeout = stop_timeout
        self.running = False
        self._task: Optional[asyncio.Task] = None
        self._idle: Optional[asyncio.Event] = None

    async def start(self):
        """Start consuming queued notifications"""
        self.dispatcher.open()
        self.running = True
        self._idle = asyncio.Event()
        self._idle.set()
        self._task = asyncio.create_task(self._consume())
        logger.info("Notification worker started")

    async def stop(self):
        """Finish the event in hand, stop consuming, then deliver whatever is still queued"""
        self.running = False
        if self._task is not None:
            try:
                await asyncio.wait_for(self._idle.wait(), self.stop_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Notification still in flight after {self.stop_timeout}s, cancelling it")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        remaining = await self.dispatcher.drain()
        if remaining:
            logger.info(f"Delivered {remaining} queued notifications on shutdown")
        logger.info(f"Notification worker stopped: {self.dispatcher.stats()}")

    async def _consume(self):
        queue = self.dispatcher.queue
        while self.running:
            event = await queue.get()
            self._idle.clear()
            try:
                await self.dispatcher.handle(event)
            except Exception as e:
                logger.error(f"Error delivering notification for {event.request_id}: {str(e)}")
            finally:
                queue.task_done()
                self._idle.set()


# Global instance
notification_worker = NotificationWorker(notification_dispatcher)
