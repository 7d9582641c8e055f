"""Processor chain run on every received broadcast."""

from abc import ABC, abstractmethod
from typing import List, Optional
from cbdedup.schemas import BroadcastMessage

class BaseProcessor(ABC):
    """One step between decoding a broadcast and showing it."""

    @abstractmethod
    async def process(self, message: BroadcastMessage) -> Optional[BroadcastMessage]:
        """
        Handle a decoded broadcast.
        Returns the broadcast to hand to the next step, or None to suppress it.
        """
        pass

class ProcessorPipeline:
    """Runs processors in order until one suppresses the broadcast."""

    def __init__(self, processors: List[BaseProcessor]):
        self.processors = processors

    async def run(self, message: BroadcastMessage) -> Optional[BroadcastMessage]:
        current = message
        for step in self.processors:
            current = await step.process(current)
            if current is None:
                return None
        return current
