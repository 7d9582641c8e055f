"""Message processors."""

from .base import BaseProcessor, ProcessorPipeline
from .dedup import DedupProcessor

__all__ = ["BaseProcessor", "ProcessorPipeline", "DedupProcessor"]
