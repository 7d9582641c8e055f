"""Deduplication processor."""

from typing import Optional

from cbdedup.detector import DuplicateDetector
from cbdedup.schemas import BroadcastMessage
from .base import BaseProcessor

class DedupProcessor(BaseProcessor):
    """Drops broadcasts the detector has already seen."""

    def __init__(self, detector: DuplicateDetector):
        self.detector = detector

    async def process(self, message: BroadcastMessage) -> Optional[BroadcastMessage]:
        if not self.detector.is_new(message):
            return None
        return message
