"""Background hand-off of webhook deliveries to the conversation engine."""

import asyncio

import structlog

from leadline.core.diagnostics import RecentErrors
from leadline.models import InboundMessage
from leadline.services.conversation.engine import ConversationEngine

logger = structlog.get_logger()


class WebhookDispatcher:
    """Runs each webhook delivery in its own task.

    The webhook answers as soon as the batch is handed over. Tasks are kept
    in a tracked set until they finish so they aren't garbage collected, and
    failures are logged and recorded from the done-callback.
    """

    def __init__(self, engine: ConversationEngine, errors: RecentErrors) -> None:
        self.engine = engine
        self.errors = errors
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, messages: list[InboundMessage]) -> asyncio.Task[None] | None:
        """Schedule processing of one delivery's messages."""
        if not messages:
            return None

        task = asyncio.create_task(self._process_batch(messages), name="webhook-delivery")
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def _process_batch(self, messages: list[InboundMessage]) -> None:
        for message in messages:
            try:
                await self.engine.process_message(message, deliver=True)
            except Exception as e:
                # One bad message must not stop its siblings
                logger.error(
                    "Failed to process webhook message",
                    external_id=message.external_id,
                    message_id=message.message_id,
                    error=str(e),
                    exc_info=True,
                )
                self.errors.record(
                    "webhook",
                    e,
                    external_id=message.external_id,
                    message_id=message.message_id,
                )

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Webhook delivery task failed", error=str(error))
            self.errors.record("dispatcher", error)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for outstanding deliveries, cancelling any left after timeout."""
        if not self._tasks:
            return

        logger.info("Draining webhook deliveries", pending=len(self._tasks))
        _, still_running = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning("Cancelled unfinished webhook deliveries", count=len(still_running))
