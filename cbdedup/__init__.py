"""cbdedup - duplicate detection for cell broadcast alerts."""

from .config import DedupStrategy, Settings
from .detector import DuplicateDetector
from .schemas import BroadcastMessage, EtwsInfo, Location, MessageFormat

__all__ = [
    "BroadcastMessage",
    "DedupStrategy",
    "DuplicateDetector",
    "EtwsInfo",
    "Location",
    "MessageFormat",
    "Settings",
]
