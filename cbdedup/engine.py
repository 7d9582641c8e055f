"""Broadcast receive engine."""

import asyncio
from typing import Awaitable, Callable, Iterable, List, Optional

from loguru import logger

from cbdedup.config import Settings, DedupStrategy, settings as default_settings
from cbdedup.detector import DuplicateDetector, now_ms
from cbdedup.exceptions import HistoryStoreError
from cbdedup.history import HistoryStore, SqliteHistoryStore
from cbdedup.processors import DedupProcessor, ProcessorPipeline
from cbdedup.schemas import BroadcastMessage

AlertHandler = Callable[[BroadcastMessage], Awaitable[None]]


class BroadcastEngine:
    """Runs each received broadcast through the pipeline and hands new ones to the handlers."""

    def __init__(
        self,
        pipeline: ProcessorPipeline,
        history: Optional[HistoryStore] = None,
        handlers: Iterable[AlertHandler] = (),
        clock: Callable[[], int] = now_ms,
    ):
        self.pipeline = pipeline
        self.history = history
        self.handlers: List[AlertHandler] = list(handlers)
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        handlers: Iterable[AlertHandler] = (),
        clock: Callable[[], int] = now_ms,
    ) -> "BroadcastEngine":
        settings = settings or default_settings

        history: Optional[HistoryStore] = None
        detector: Optional[DuplicateDetector] = None
        if settings.dedup.strategy == DedupStrategy.WINDOWED_DATABASE:
            try:
                history = SqliteHistoryStore(settings.history.db_path)
            except HistoryStoreError as e:
                logger.warning(f"Message history unavailable, duplicate window starts empty: {e}")
                detector = DuplicateDetector(
                    strategy=settings.dedup.strategy,
                    capacity=settings.dedup.capacity,
                    window_ms=settings.dedup.window_ms,
                    clock=clock,
                )

        if detector is None:
            detector = DuplicateDetector.from_settings(settings.dedup, history=history, clock=clock)
        pipeline = ProcessorPipeline([DedupProcessor(detector)])
        return cls(pipeline, history=history, handlers=handlers, clock=clock)

    def add_handler(self, handler: AlertHandler) -> None:
        self.handlers.append(handler)

    async def handle(self, message: BroadcastMessage) -> bool:
        """
        Process one received broadcast.
        Returns True if it was new and dispatched, False if it was dropped.
        """
        if message.delivery_time is None:
            message = message.model_copy(update={"delivery_time": self._clock()})

        processed = await self.pipeline.run(message)
        if processed is None:
            return False

        if self.history is not None:
            try:
                await asyncio.to_thread(self.history.insert, processed)
            except HistoryStoreError as e:
                # Still show the alert; it just won't seed the window after a restart
                logger.error(f"Failed to persist broadcast: {e}")

        for handler in self.handlers:
            try:
                await handler(processed)
            except Exception as e:
                logger.error(f"Alert handler error {handler}: {e}")

        logger.info(
            f"[{processed.message_format.value.upper()}] new broadcast "
            f"category={processed.service_category} serial={processed.serial_number}"
        )
        return True
