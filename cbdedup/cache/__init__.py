"""Duplicate detection caches."""

from .bounded_set import BoundedIdentitySet, DEFAULT_CAPACITY
from .sliding_window import SlidingWindowLog, TWELVE_HOURS_MS

__all__ = ["BoundedIdentitySet", "SlidingWindowLog", "DEFAULT_CAPACITY", "TWELVE_HOURS_MS"]
