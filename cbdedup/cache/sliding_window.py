"""Time-windowed log of recently delivered messages."""

import threading
from typing import Iterable, Iterator

from cbdedup.schemas import WindowFingerprint

TWELVE_HOURS_MS = 12 * 60 * 60 * 1000


class SlidingWindowLog:
    """
    Recency-ordered log of fingerprints (most recent first).

    A message is a duplicate only if an equal fingerprint was delivered less
    than ``window_ms`` before it. Older entries are dropped lazily while
    scanning, so the log never holds more than one window of history.
    """

    def __init__(self, window_ms: int = TWELVE_HOURS_MS):
        if window_ms <= 0:
            raise ValueError(f"window_ms must be > 0, got {window_ms}")
        self.window_ms = window_ms
        self._entries: list[WindowFingerprint] = []
        self._lock = threading.Lock()

    def seed(self, fingerprints: Iterable[WindowFingerprint]) -> None:
        """Replace the log content. Expects most-recent-first order."""
        entries = list(fingerprints)
        for fp in entries:
            self._check_type(fp)
        with self._lock:
            self._entries = entries

    def admit(self, fingerprint: WindowFingerprint) -> bool:
        """
        Check a fingerprint against the window and record it.
        Returns True if no equal fingerprint is in the window, False for a duplicate.
        """
        self._check_type(fingerprint)
        with self._lock:
            survivors: list[WindowFingerprint] = []
            for entry in self._entries:
                # Exactly one window old counts as stale
                if fingerprint.delivery_time - entry.delivery_time >= self.window_ms:
                    break
                if entry == fingerprint:
                    return False
                survivors.append(entry)

            survivors.insert(0, fingerprint)
            self._entries = survivors
            return True

    @staticmethod
    def _check_type(fingerprint: object) -> None:
        if not isinstance(fingerprint, WindowFingerprint):
            raise TypeError(
                f"SlidingWindowLog only accepts WindowFingerprint, got {type(fingerprint).__name__}"
            )

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return any(entry == fingerprint for entry in self._entries)

    def __iter__(self) -> Iterator[WindowFingerprint]:
        with self._lock:
            snapshot = list(self._entries)
        return iter(snapshot)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        with self._lock:
            return f"SlidingWindowLog(window_ms={self.window_ms}, size={len(self._entries)})"
