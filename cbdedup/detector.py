"""Duplicate detection façade used by the alert pipeline."""

import time
from typing import Callable, Optional

from loguru import logger

from cbdedup.cache import BoundedIdentitySet, SlidingWindowLog, DEFAULT_CAPACITY, TWELVE_HOURS_MS
from cbdedup.config import DedupSettings, DedupStrategy, settings
from cbdedup.exceptions import HistoryStoreError
from cbdedup.history import HistoryRow, HistoryStore
from cbdedup.schemas import (
    BroadcastMessage,
    MessageFormat,
    SetFingerprint,
    WindowFingerprint,
    body_hash,
)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class DuplicateDetector:
    """
    Decides whether a broadcast message has been seen before.

    Exactly one strategy is active for the lifetime of an instance:

    * ``memory_set``: a :class:`BoundedIdentitySet` of :class:`SetFingerprint`.
      Identity survives until ``capacity`` later arrivals push it out.
    * ``windowed_database``: a :class:`SlidingWindowLog` of
      :class:`WindowFingerprint`, seeded from message history. Identity
      survives for ``window_ms`` of delivery time.
    * ``disabled``: every message is new.
    """

    def __init__(
        self,
        strategy: DedupStrategy = DedupStrategy.MEMORY_SET,
        capacity: int = DEFAULT_CAPACITY,
        window_ms: int = TWELVE_HOURS_MS,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.strategy = strategy
        self._clock = clock or now_ms
        self._identity_set: Optional[BoundedIdentitySet[SetFingerprint]] = None
        self._window_log: Optional[SlidingWindowLog] = None

        if strategy == DedupStrategy.MEMORY_SET:
            self._identity_set = BoundedIdentitySet(capacity)
            logger.info(f"Duplicate detection: in-memory set (capacity {capacity})")
        elif strategy == DedupStrategy.WINDOWED_DATABASE:
            self._window_log = SlidingWindowLog(window_ms)
            logger.info(f"Duplicate detection: sliding window ({window_ms} ms)")
        else:
            logger.info("Duplicate detection disabled")

    @classmethod
    def from_settings(
        cls,
        dedup: Optional[DedupSettings] = None,
        history: Optional[HistoryStore] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> "DuplicateDetector":
        """Build a detector from settings, seeding the window from ``history`` when it applies."""
        if dedup is None:
            dedup = settings.dedup

        detector = cls(
            strategy=dedup.strategy,
            capacity=dedup.capacity,
            window_ms=dedup.window_ms,
            clock=clock,
        )
        if detector.strategy == DedupStrategy.WINDOWED_DATABASE:
            if history is None:
                logger.warning("No message history configured, duplicate window starts empty")
            else:
                detector.load_history(history)
        return detector

    @property
    def identity_set(self) -> Optional[BoundedIdentitySet[SetFingerprint]]:
        return self._identity_set

    @property
    def window_log(self) -> Optional[SlidingWindowLog]:
        return self._window_log

    def now(self) -> int:
        return self._clock()

    def load_history(self, history: HistoryStore) -> int:
        """
        Seed the sliding window with messages delivered within the last window.

        An unreadable store is not fatal: the window starts empty, which can
        only let an old duplicate through, never hide a new alert.
        Returns the number of seeded entries.
        """
        if self._window_log is None:
            raise RuntimeError(f"History seeding needs the windowed strategy, not {self.strategy.value}")

        since = self.now() - self._window_log.window_ms
        try:
            rows = history.recent(since)
        except HistoryStoreError as e:
            logger.warning(f"Could not load message history, duplicate window starts empty: {e}")
            self._window_log.seed([])
            return 0

        fingerprints = []
        for row in rows:
            fp = self._fingerprint_from_row(row)
            if fp is not None:
                fingerprints.append(fp)

        self._window_log.seed(fingerprints)
        logger.info(f"Seeded duplicate window with {len(fingerprints)} message(s) from history")
        return len(fingerprints)

    @staticmethod
    def _fingerprint_from_row(row: HistoryRow) -> Optional[WindowFingerprint]:
        if row.service_category is None or row.serial_number is None or row.delivery_time is None:
            logger.debug(f"Skipping incomplete history row: {row!r}")
            return None
        hash_code = body_hash(row.message_body) if row.message_format == MessageFormat.ETWS else 0
        return WindowFingerprint(
            service_category=row.service_category,
            serial_number=row.serial_number,
            location=row.location,
            body_hash=hash_code,
            message_body=row.message_body,
            delivery_time=row.delivery_time,
        )

    def is_new(self, message: BroadcastMessage) -> bool:
        """Return True if the message should be shown, False if it is a duplicate."""
        if self._identity_set is not None:
            fingerprint = SetFingerprint.from_message(message)
            is_new = self._identity_set.admit(fingerprint)
        elif self._window_log is not None:
            delivery_time = message.delivery_time if message.delivery_time is not None else self.now()
            fingerprint = WindowFingerprint.from_message(message, delivery_time)
            is_new = self._window_log.admit(fingerprint)
        else:
            return True

        if not is_new:
            logger.debug(f"Ignoring duplicate alert {fingerprint!r}")
        return is_new
